"""
FileReadTool - 文件读取工具
按行分页读取工作区内的文本文件，输出带行号的内容
"""

from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import aiofiles

from ..types.tool_types import ToolResult
from ..types.core_types import AbortSignal
from .base import Tool, resolve_workspace_path, is_within_workspace
from ..config.base import AgentConfig


class FileReadTool(Tool):
    """
    文件读取工具
    - offset / limit 分页
    - 超长行截断
    - 二进制文件拒绝读取
    """

    DEFAULT_LINE_LIMIT = 2000
    MAX_LINE_LENGTH = 2000
    MAX_TEXT_FILE_SIZE = 20 * 1024 * 1024  # 20MB

    def __init__(self, config: AgentConfig):
        super().__init__(
            name="read_file",
            display_name="ReadFile",
            description="Reads and returns the content of a specified text file. For large files, use 'offset' and 'limit' to page through the lines.",
            parameter_schema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "File path (absolute, or relative to the workspace root)"
                    },
                    "offset": {
                        "type": "integer",
                        "description": "0-based line number to start reading from"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of lines to read"
                    }
                },
                "required": ["path"]
            }
        )
        self.config = config
        self.root = config.get_working_dir()

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        error = super().validate_tool_params(params)
        if error:
            return error
        path = resolve_workspace_path(self.root, params["path"])
        if not is_within_workspace(self.root, path):
            return f"File path must be within the workspace root ({self.root}): {params['path']}"
        for key in ("offset", "limit"):
            value = params.get(key)
            if value is not None and int(value) < 0:
                return f"{key} must be a non-negative number"
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        return f"Read {params.get('path', '')}"

    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Any] = None
    ) -> ToolResult:
        """执行文件读取"""
        error = self.validate_tool_params(params)
        if error:
            return ToolResult(error=error, llm_content=f"Error: {error}")

        path = resolve_workspace_path(self.root, params["path"])
        # 模型可能传递字符串形式的数字
        offset = int(params["offset"]) if params.get("offset") is not None else 0
        limit = int(params["limit"]) if params.get("limit") is not None else self.DEFAULT_LINE_LIMIT

        if not path.exists():
            return ToolResult(error=f"File not found: {path}")
        if not path.is_file():
            return ToolResult(error=f"Path is not a file: {path}")

        file_size = path.stat().st_size
        if file_size > self.MAX_TEXT_FILE_SIZE:
            return ToolResult(error=f"File too large: {file_size} bytes (max: {self.MAX_TEXT_FILE_SIZE} bytes)")
        if self._is_binary(path):
            return ToolResult(error=f"Cannot read binary file: {path}")

        try:
            content, lines_read, total_lines = await self._read_file_content(path, offset, limit)
        except (OSError, UnicodeDecodeError) as read_error:
            return ToolResult(
                error=f"Failed to read file: {read_error}",
                llm_content=f"Error reading {path}: {read_error}"
            )

        llm_content = content
        if offset + lines_read < total_lines:
            llm_content = (
                f"[File content truncated: showing lines {offset + 1}-{offset + lines_read} "
                f"of {total_lines} total lines. Use offset/limit to read more.]\n{content}"
            )

        return ToolResult(
            summary=f"Read {lines_read} line(s) from {path.name}",
            llm_content=llm_content,
            return_display=f"Read {lines_read} of {total_lines} line(s) from {path}"
        )

    def _is_binary(self, path: Path) -> bool:
        """前4KB中出现NUL字节视为二进制"""
        with open(path, "rb") as f:
            return b"\x00" in f.read(4096)

    async def _read_file_content(self, path: Path, offset: int, limit: int) -> Tuple[str, int, int]:
        async with aiofiles.open(path, mode="r", encoding="utf-8", errors="replace") as f:
            all_lines = await f.readlines()

        total_lines = len(all_lines)
        start = min(offset, total_lines)
        selected = all_lines[start:start + limit]

        output = []
        for line in selected:
            if len(line) > self.MAX_LINE_LENGTH:
                line = line[:self.MAX_LINE_LENGTH] + "... [truncated]\n"
            output.append(line)

        return "".join(output), len(selected), total_lines
