"""
Tool - 工具基类
所有工具共享的接口：名称、描述、参数schema、参数验证与执行
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..types.core_types import AbortSignal
from ..types.tool_types import ToolResult


def resolve_workspace_path(root: str, path: str) -> Path:
    """相对路径按工作区根目录解析"""
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = Path(root) / candidate
    return candidate.resolve()


def is_within_workspace(root: str, path: Path) -> bool:
    try:
        path.relative_to(Path(root).resolve())
        return True
    except ValueError:
        return False


class Tool(ABC):
    """
    工具基类
    - name: 模型调用时使用的函数名
    - parameter_schema: JSON Schema，作为函数声明的 parameters 发给模型
    """

    def __init__(
        self,
        name: str,
        display_name: str,
        description: str,
        parameter_schema: Dict[str, Any],
        is_output_markdown: bool = False,
        can_update_output: bool = False
    ):
        self.name = name
        self.display_name = display_name
        self.description = description
        self.parameter_schema = parameter_schema
        self.is_output_markdown = is_output_markdown
        self.can_update_output = can_update_output

    @property
    def function_declaration(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameter_schema,
        }

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        """
        验证参数，返回错误信息；None 表示通过
        默认只检查 required 字段是否存在
        """
        for key in self.parameter_schema.get("required", []):
            if params.get(key) in (None, ""):
                return f"Missing required parameter: {key}"
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        """面向用户的一行执行描述"""
        return f"{self.display_name}: {params}"

    @abstractmethod
    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Callable[[str], None]] = None
    ) -> ToolResult:
        pass
