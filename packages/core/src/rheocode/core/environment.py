"""
EnvironmentCollector - 环境上下文收集器
新会话开始时收集日期、系统、工作目录和目录结构，作为第一条用户消息发送
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..config.base import AgentConfig
from ..types.core_types import Part, SimpleAbortSignal
from ..tools.registry import ToolRegistry
from ..utils.debug_logger import log_info


IGNORED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", ".mypy_cache", ".pytest_cache"}


class EnvironmentCollector:
    """
    环境上下文收集器
    full_context 开启时，额外通过 read_file 工具读入工作区内的文本文件（有上限）
    """

    MAX_FOLDER_ITEMS = 200
    MAX_FULL_CONTEXT_FILES = 50

    def __init__(self, config: AgentConfig, tool_registry: Optional[ToolRegistry] = None):
        self.config = config
        self.tool_registry = tool_registry

    async def get_environment(self) -> List[Part]:
        """返回环境上下文的Part列表"""
        cwd = self.config.get_working_dir()
        today = datetime.now().strftime("%A, %B %d, %Y")
        python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        folder_structure = self._get_folder_structure(cwd)

        context = f"""This is RheoCode, a command-line coding agent. We are setting up the context for our chat.
Today's date is {today}.
My operating system is: {sys.platform}
Python version: {python_version}
I'm currently working in the directory: {cwd}
{folder_structure}"""

        initial_parts = [Part(text=context.strip())]

        if self.config.get("full_context"):
            full_context = await self._read_full_context(cwd)
            if full_context:
                initial_parts.append(Part(text=full_context))

        return initial_parts

    def _walk(self, directory: str):
        """广度优先遍历，跳过隐藏目录和常见依赖目录"""
        root = Path(directory)
        queue = [root]
        count = 0
        while queue and count < self.MAX_FOLDER_ITEMS:
            current = queue.pop(0)
            try:
                children = sorted(current.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower()))
            except OSError:
                continue
            for child in children:
                if child.name.startswith(".") or child.name in IGNORED_DIRS:
                    continue
                yield child
                count += 1
                if count >= self.MAX_FOLDER_ITEMS:
                    return
                if child.is_dir():
                    queue.append(child)

    def _get_folder_structure(self, directory: str) -> str:
        """有上限的目录结构"""
        lines = [f"Showing up to {self.MAX_FOLDER_ITEMS} items (files + folders).", "", f"{directory}/"]
        items = list(self._walk(directory))
        for item in sorted(items, key=lambda p: str(p.relative_to(directory))):
            relative = item.relative_to(directory)
            indent = "   " * (len(relative.parts) - 1)
            suffix = "/" if item.is_dir() else ""
            lines.append(f"{indent}├───{item.name}{suffix}")
        if len(items) >= self.MAX_FOLDER_ITEMS:
            lines.append("...")
        return "Here is the folder structure of the current working directories:\n\n" + "\n".join(lines)

    async def _read_full_context(self, directory: str) -> Optional[str]:
        """通过 read_file 工具读取工作区文件"""
        read_tool = self.tool_registry.get_tool("read_file") if self.tool_registry else None
        if read_tool is None:
            log_info("Environment", "full_context requested but read_file tool is not available")
            return None

        signal = SimpleAbortSignal()
        sections = []
        files = [p for p in self._walk(directory) if p.is_file()][:self.MAX_FULL_CONTEXT_FILES]
        for file_path in files:
            result = await read_tool.execute({"path": str(file_path)}, signal)
            if result.error:
                continue
            sections.append(f"--- {os.path.relpath(file_path, directory)} ---\n{result.llm_content}")

        if not sections:
            return None
        return "\n--- Full File Context ---\n" + "\n\n".join(sections)
