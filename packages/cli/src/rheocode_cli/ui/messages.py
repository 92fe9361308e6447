"""
消息显示组件
- 用户输入
- 系统消息
- 错误消息
"""

from rich.markup import escape

from . import console as console_module


MESSAGE_PREFIXES = {
    'user': '> ',
    'system': '# ',
    'error': '✗ ',
}


def show_user_message(message: str):
    console_module.console.print(f"\n[bold]{MESSAGE_PREFIXES['user']}{escape(message)}[/bold]\n")


def show_system_message(message: str):
    console_module.console.print(f"[dim]{MESSAGE_PREFIXES['system']}{escape(message)}[/dim]")


def show_error_message(message: str):
    console_module.console.print(f"[error]{MESSAGE_PREFIXES['error']}{escape(message)}[/error]")


def show_warning_message(message: str):
    console_module.console.print(f"[warning]{escape(message)}[/warning]")
