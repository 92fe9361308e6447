"""
事件类型 - AgentClient 向调用方输出的事件流
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class AgentEventType(Enum):
    CONTENT = "content"
    THOUGHT = "thought"
    TOOL_CALL_REQUEST = "tool_call_request"
    TOOL_CALL_RESPONSE = "tool_call_response"
    CHAT_COMPRESSED = "chat_compressed"
    USER_CANCELLED = "user_cancelled"
    ERROR = "error"


@dataclass
class AgentEvent:
    """
    value 随类型不同：
    - CONTENT / THOUGHT: str
    - TOOL_CALL_REQUEST: ToolCallRequestInfo
    - TOOL_CALL_RESPONSE: ToolCallResponseInfo
    - CHAT_COMPRESSED: ChatCompressionInfo
    - ERROR: {"message": str, "status": Optional[int]}
    - USER_CANCELLED: None
    """
    type: AgentEventType
    value: Any = None
