"""
DirectoryListTool - 文件目录浏览工具
列出工作区内某个目录的直接子项，目录在前，按名称排序
"""

import fnmatch
from typing import Dict, Any, Optional, List

from ..types.tool_types import ToolResult
from ..types.core_types import AbortSignal
from .base import Tool, resolve_workspace_path, is_within_workspace
from ..config.base import AgentConfig


class DirectoryListTool(Tool):
    """
    目录浏览工具
    只允许访问工作区内的路径
    """

    DEFAULT_LIMIT = 200

    def __init__(self, config: AgentConfig):
        super().__init__(
            name="list_directory",
            display_name="ReadFolder",
            description="Lists the names of files and subdirectories directly within a specified directory path. Can optionally ignore entries matching provided glob patterns.",
            parameter_schema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Directory path to list (absolute, or relative to the workspace root)"
                    },
                    "ignore": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "List of glob patterns to ignore"
                    },
                    "show_hidden": {
                        "type": "boolean",
                        "description": "Whether to show hidden entries (starting with .)"
                    }
                },
                "required": ["path"]
            },
            is_output_markdown=True
        )
        self.config = config
        self.root = config.get_working_dir()

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        error = super().validate_tool_params(params)
        if error:
            return error
        path = resolve_workspace_path(self.root, params["path"])
        if not is_within_workspace(self.root, path):
            return f"Path must be within the workspace root ({self.root}): {params['path']}"
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        return f"List {params.get('path', '.')}"

    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Any] = None
    ) -> ToolResult:
        """执行目录浏览"""
        error = self.validate_tool_params(params)
        if error:
            return ToolResult(error=error, llm_content=f"Error: {error}")

        path = resolve_workspace_path(self.root, params["path"])
        ignore: List[str] = params.get("ignore") or []
        show_hidden = bool(params.get("show_hidden", False))

        if not path.exists():
            return ToolResult(error=f"Directory not found: {path}")
        if not path.is_dir():
            return ToolResult(error=f"Path is not a directory: {path}")

        entries = []
        for child in path.iterdir():
            if not show_hidden and child.name.startswith("."):
                continue
            if any(fnmatch.fnmatch(child.name, pattern) for pattern in ignore):
                continue
            entries.append(child)

        # 目录在前，按名称排序
        entries.sort(key=lambda p: (not p.is_dir(), p.name.lower()))
        truncated = len(entries) > self.DEFAULT_LIMIT
        entries = entries[:self.DEFAULT_LIMIT]

        if not entries:
            message = f"Directory {path} is empty."
            return ToolResult(summary=message, llm_content=message, return_display=message)

        lines = [f"[DIR] {p.name}" if p.is_dir() else p.name for p in entries]
        listing = "\n".join(lines)
        if truncated:
            listing += f"\n... (showing first {self.DEFAULT_LIMIT} entries)"

        return ToolResult(
            summary=f"Listed {len(entries)} item(s).",
            llm_content=f"Directory listing for {path}:\n{listing}",
            return_display=listing
        )
