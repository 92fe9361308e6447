"""
FileWriteTool - 文件写入工具
写入或追加工作区内的文件，自动创建父目录，返回差异摘要
"""

import difflib
from pathlib import Path
from typing import Dict, Any, Optional

import aiofiles

from ..types.tool_types import ToolResult
from ..types.core_types import AbortSignal
from .base import Tool, resolve_workspace_path, is_within_workspace
from ..config.base import AgentConfig


class FileWriteTool(Tool):
    """文件写入工具"""

    MODES = ("overwrite", "append", "create_new")

    def __init__(self, config: AgentConfig):
        super().__init__(
            name="write_file",
            display_name="WriteFile",
            description="Writes content to a specified file. Creates parent directories when needed. Modes: overwrite (default), append, create_new.",
            parameter_schema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "File path (absolute, or relative to the workspace root)"
                    },
                    "content": {
                        "type": "string",
                        "description": "The content to write"
                    },
                    "mode": {
                        "type": "string",
                        "enum": list(self.MODES),
                        "description": "Write mode"
                    }
                },
                "required": ["path", "content"]
            },
            is_output_markdown=True
        )
        self.config = config
        self.root = config.get_working_dir()

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        if not params.get("path"):
            return "Missing required parameter: path"
        if params.get("content") is None:
            return "Missing required parameter: content"
        mode = params.get("mode", "overwrite")
        if mode not in self.MODES:
            return f"Invalid mode: {mode}. Supported modes: {', '.join(self.MODES)}"
        path = resolve_workspace_path(self.root, params["path"])
        if not is_within_workspace(self.root, path):
            return f"File path must be within the workspace root ({self.root}): {params['path']}"
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        return f"Write to {params.get('path', '')}"

    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Any] = None
    ) -> ToolResult:
        """执行文件写入"""
        error = self.validate_tool_params(params)
        if error:
            return ToolResult(error=error, llm_content=f"Error: {error}")

        path = resolve_workspace_path(self.root, params["path"])
        content = params["content"]
        mode = params.get("mode", "overwrite")

        if path.exists() and path.is_dir():
            return ToolResult(error=f"Path is a directory: {path}")
        if mode == "create_new" and path.exists():
            return ToolResult(error=f"File already exists: {path}")

        old_content = ""
        if path.exists():
            async with aiofiles.open(path, mode="r", encoding="utf-8", errors="replace") as f:
                old_content = await f.read()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, mode="a" if mode == "append" else "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as write_error:
            return ToolResult(
                error=f"Failed to write file: {write_error}",
                llm_content=f"Error writing to {path}: {write_error}"
            )

        new_content = old_content + content if mode == "append" else content
        diff = self._generate_diff(old_content, new_content, path.name)
        action = "Created" if not old_content and mode != "append" else "Updated"

        return ToolResult(
            summary=f"{action} {path.name}",
            llm_content=f"Successfully wrote {len(content)} characters to {path} ({mode}).",
            return_display=diff or f"{action} {path}"
        )

    def _generate_diff(self, old_content: str, new_content: str, filename: str) -> str:
        diff = difflib.unified_diff(
            old_content.splitlines(keepends=True),
            new_content.splitlines(keepends=True),
            fromfile=f"{filename} (original)",
            tofile=f"{filename} (written)"
        )
        return "".join(diff)
