"""
工具显示组件
显示工具调用请求、执行结果和错误
"""

from typing import Any, Dict

from rich.markup import escape

from . import console as console_module


STATUS_STYLES = {
    'success': ('✓', 'success'),
    'error': ('✗', 'error'),
    'cancelled': ('⊘', 'warning'),
}


def format_args(args: Dict[str, Any], max_length: int = 80) -> str:
    """把参数压缩成一行，长参数截断"""
    parts = []
    for key, value in args.items():
        value_str = str(value).replace('\n', ' ')
        if len(value_str) > max_length:
            value_str = value_str[:max_length - 3] + "..."
        parts.append(f"{key}={value_str}")
    return ", ".join(parts)


def show_tool_request(tool_name: str, args: Dict[str, Any]):
    console_module.console.print(
        f"\n[info]→ {escape(tool_name)}[/info] [dim]({escape(format_args(args))})[/dim]"
    )


def show_tool_status(tool_name: str, status: str):
    indicator, style = STATUS_STYLES.get(status, ('•', 'dim'))
    console_module.console.print(f"[{style}]{indicator} {escape(tool_name)}[/{style}]")


def show_tool_result(result_display: Any, max_lines: int = 20):
    """显示工具执行结果，超过 max_lines 时只显示前面部分"""
    if result_display is None:
        return
    lines = str(result_display).splitlines()
    for line in lines[:max_lines]:
        console_module.console.print(f"  [dim]{escape(line)}[/dim]")
    if len(lines) > max_lines:
        console_module.console.print(f"  [dim]... ({len(lines) - max_lines} more lines)[/dim]")


def show_tool_error(tool_name: str, error: str):
    console_module.console.print(f"[error]✗ {escape(f'[{tool_name}] {error}')}[/error]")
