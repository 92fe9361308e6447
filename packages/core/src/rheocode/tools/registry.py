"""
ToolRegistry - 工具注册表
管理工具的注册、发现和获取，并生成发给模型的函数声明
"""

from typing import Dict, List, Optional, Set, Any
from enum import Enum
from dataclasses import dataclass, field

from .base import Tool
from ..config.base import AgentConfig
from ..utils.debug_logger import log_info


class ToolCapability(Enum):
    """工具能力枚举 - 支持按能力而非名称查找工具"""
    READ = "read"                      # 读取文件
    WRITE = "write"                    # 写入文件
    EXPLORE = "explore"                # 浏览工作区
    SEARCH = "search"                  # 内容搜索
    CODE_EXECUTION = "code_execution"  # 命令执行
    WEB_ACCESS = "web_access"          # Web访问


@dataclass
class ToolInfo:
    """工具信息扩展 - 包含能力标签和优先级"""
    tool: Tool
    capabilities: Set[ToolCapability]
    tags: Set[str] = field(default_factory=set)
    priority: int = 50                 # 优先级（0-100），越高越靠前


class ToolRegistry:
    """
    工具注册表
    - 注册核心工具（遵循 core_tools 白名单）
    - 按优先级输出函数声明
    - 按名称 / 能力 / 标签查询
    """

    def __init__(self, config: AgentConfig, register_core_tools: bool = True):
        self.config = config
        self.tools: Dict[str, ToolInfo] = {}
        self._capability_index: Dict[ToolCapability, Set[str]] = {}
        self._tag_index: Dict[str, Set[str]] = {}

        if register_core_tools:
            self._register_core_tools()

    def _is_enabled(self, name: str) -> bool:
        core_tools = self.config.get_core_tools()
        return core_tools is None or name in core_tools

    def _register_core_tools(self):
        """注册核心工具 - 编码Agent的基础工具集"""
        from .directory_list_tool import DirectoryListTool
        from .file_read_tool import FileReadTool
        from .file_write_tool import FileWriteTool
        from .grep_tool import GrepTool
        from .shell_tool import ShellTool
        from .web_fetch_tool import WebFetchTool

        core = [
            (DirectoryListTool, {ToolCapability.READ, ToolCapability.EXPLORE},
             {"directory", "list", "filesystem"}, 80),
            (FileReadTool, {ToolCapability.READ},
             {"file", "read", "filesystem"}, 75),
            (FileWriteTool, {ToolCapability.WRITE},
             {"file", "write", "filesystem"}, 75),
            (GrepTool, {ToolCapability.SEARCH, ToolCapability.EXPLORE},
             {"search", "grep", "regex"}, 70),
            (ShellTool, {ToolCapability.CODE_EXECUTION},
             {"shell", "command", "execute"}, 65),
            (WebFetchTool, {ToolCapability.WEB_ACCESS, ToolCapability.READ},
             {"web", "fetch", "url"}, 60),
        ]

        for tool_class, capabilities, tags, priority in core:
            tool = tool_class(self.config)
            if not self._is_enabled(tool.name):
                continue
            self.register_tool(tool, capabilities, tags, priority)

        log_info("ToolRegistry", f"Registered core tools: {', '.join(self.tools)}")

    def register_tool(
        self,
        tool: Tool,
        capabilities: Set[ToolCapability],
        tags: Optional[Set[str]] = None,
        priority: int = 50
    ):
        """
        注册工具及其能力信息

        Args:
            tool: 工具实例
            capabilities: 工具具备的能力集合
            tags: 额外的标签
            priority: 优先级（0-100）
        """
        tool_info = ToolInfo(
            tool=tool,
            capabilities=set(capabilities),
            tags=set(tags or ()),
            priority=priority
        )

        self.tools[tool.name] = tool_info

        for capability in tool_info.capabilities:
            self._capability_index.setdefault(capability, set()).add(tool.name)

        for tag in tool_info.tags:
            self._tag_index.setdefault(tag, set()).add(tool.name)

    def get_tool(self, name: str) -> Optional[Tool]:
        """按名称获取工具"""
        tool_info = self.tools.get(name)
        return tool_info.tool if tool_info else None

    def get_all_tools(self) -> List[Tool]:
        """按优先级从高到低返回所有工具"""
        infos = sorted(self.tools.values(), key=lambda info: info.priority, reverse=True)
        return [info.tool for info in infos]

    def get_tools_by_capability(self, capability: ToolCapability) -> List[Tool]:
        names = self._capability_index.get(capability, set())
        infos = sorted((self.tools[n] for n in names), key=lambda info: info.priority, reverse=True)
        return [info.tool for info in infos]

    def get_tools_by_tag(self, tag: str) -> List[Tool]:
        names = self._tag_index.get(tag, set())
        return [self.tools[n].tool for n in sorted(names)]

    def get_function_declarations(self) -> List[Dict[str, Any]]:
        """
        获取所有工具的函数声明
        顺序与 get_all_tools 一致：[{name, description, parameters}]
        """
        return [tool.function_declaration for tool in self.get_all_tools()]
