"""
Grep工具 - 文件内容搜索
在工作区内按正则表达式搜索文件内容，返回 文件:行号:内容
"""

import fnmatch
import os
import re
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass

from ..types.tool_types import ToolResult
from ..types.core_types import AbortSignal
from .base import Tool, resolve_workspace_path, is_within_workspace
from ..config.base import AgentConfig


@dataclass
class GrepMatch:
    """搜索匹配结果"""
    file_path: str
    line_number: int
    line_content: str


class GrepTool(Tool):
    """
    文件内容搜索工具
    - 跳过隐藏目录、常见依赖目录和二进制文件
    - include 参数按文件名glob过滤
    """

    MAX_RESULTS = 200
    MAX_FILE_SIZE = 5 * 1024 * 1024
    SKIP_DIRS = {"node_modules", "__pycache__", ".git", ".venv", "venv", "dist", "build"}

    def __init__(self, config: AgentConfig):
        super().__init__(
            name="grep",
            display_name="SearchText",
            description="Searches for a regular expression pattern within the content of files in a directory. Returns matching lines with file paths and line numbers. Much faster than reading entire files with read_file.",
            parameter_schema={
                "type": "object",
                "properties": {
                    "pattern": {
                        "type": "string",
                        "description": "The regular expression to search for"
                    },
                    "path": {
                        "type": "string",
                        "description": "Directory to search in (defaults to the workspace root)"
                    },
                    "include": {
                        "type": "string",
                        "description": "Glob pattern to filter files (e.g. '*.py')"
                    }
                },
                "required": ["pattern"]
            }
        )
        self.config = config
        self.root = config.get_working_dir()

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        error = super().validate_tool_params(params)
        if error:
            return error
        try:
            re.compile(params["pattern"])
        except re.error as e:
            return f"Invalid regular expression pattern: {e}"
        search_path = resolve_workspace_path(self.root, params.get("path") or ".")
        if not is_within_workspace(self.root, search_path):
            return f"Path must be within the workspace root ({self.root}): {params.get('path')}"
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        description = f"'{params.get('pattern', '')}'"
        if params.get("include"):
            description += f" in {params['include']}"
        if params.get("path"):
            description += f" within {params['path']}"
        return description

    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Any] = None
    ) -> ToolResult:
        error = self.validate_tool_params(params)
        if error:
            return ToolResult(error=error, llm_content=f"Error: {error}")

        regex = re.compile(params["pattern"])
        search_path = resolve_workspace_path(self.root, params.get("path") or ".")
        include = params.get("include")

        if not search_path.is_dir():
            return ToolResult(error=f"Path is not a directory: {search_path}")

        matches: List[GrepMatch] = []
        for file_path in self._iter_files(search_path, include):
            if signal is not None and signal.aborted:
                return ToolResult(error="Search was cancelled")
            if len(matches) >= self.MAX_RESULTS:
                break
            matches.extend(self._search_file(file_path, regex, self.MAX_RESULTS - len(matches)))

        return self._format_results(matches, params["pattern"], search_path)

    def _iter_files(self, search_path: Path, include: Optional[str]):
        for dirpath, dirnames, filenames in os.walk(search_path):
            dirnames[:] = sorted(
                d for d in dirnames if not d.startswith(".") and d not in self.SKIP_DIRS
            )
            for filename in sorted(filenames):
                if include and not fnmatch.fnmatch(filename, include):
                    continue
                yield Path(dirpath) / filename

    def _search_file(self, file_path: Path, regex, max_results: int) -> List[GrepMatch]:
        try:
            if file_path.stat().st_size > self.MAX_FILE_SIZE:
                return []
            data = file_path.read_bytes()
        except OSError:
            return []
        if b"\x00" in data[:4096]:
            return []

        results = []
        text = data.decode("utf-8", errors="replace")
        for line_number, line in enumerate(text.splitlines(), 1):
            if regex.search(line):
                results.append(GrepMatch(str(file_path), line_number, line.strip()))
                if len(results) >= max_results:
                    break
        return results

    def _format_results(self, matches: List[GrepMatch], pattern: str, search_path: Path) -> ToolResult:
        if not matches:
            message = f"No matches found for pattern \"{pattern}\" in {search_path}."
            return ToolResult(summary="No matches found", llm_content=message, return_display=message)

        lines = []
        current_file = None
        for match in matches:
            relative = os.path.relpath(match.file_path, search_path)
            if relative != current_file:
                current_file = relative
                lines.append(f"File: {relative}")
            lines.append(f"L{match.line_number}: {match.line_content}")

        noun = "match" if len(matches) == 1 else "matches"
        header = f"Found {len(matches)} {noun} for pattern \"{pattern}\" in {search_path}:"
        return ToolResult(
            summary=f"Found {len(matches)} {noun}",
            llm_content=header + "\n---\n" + "\n".join(lines),
            return_display=f"Found {len(matches)} {noun}"
        )
