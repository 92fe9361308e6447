"""
类型定义系统
提供核心类型、工具类型、事件类型等定义
"""

from .core_types import *
from .tool_types import *
from .event_types import *

__all__ = [
    # 核心类型
    "Part",
    "PartListUnion",
    "Content",
    "Candidate",
    "GenerateContentResponse",
    "AbortSignal",
    "SimpleAbortSignal",
    "to_parts",
    "create_user_content",

    # 工具类型
    "ToolResult",
    "ToolCallRequestInfo",
    "ToolCallResponseInfo",
    "ToolCall",

    # 事件类型
    "AgentEventType",
    "AgentEvent",
]
