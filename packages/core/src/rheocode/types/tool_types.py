"""
工具相关类型定义
包括工具结果、调用请求/响应、调度状态等类型
"""

from typing import Union, Optional, Dict, List, Any
from dataclasses import dataclass, field
from .core_types import Part


@dataclass
class ToolResult:
    """
    工具执行结果
    """
    summary: Optional[str] = None           # 可选的简短摘要
    llm_content: str = ""                   # LLM看到的内容
    return_display: Optional[str] = None    # 用户看到的格式化内容
    error: Optional[str] = None             # 错误信息


@dataclass
class ToolCallRequestInfo:
    """模型发起的一次工具调用"""
    call_id: str
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    is_client_initiated: bool = False
    prompt_id: str = ""


@dataclass
class ToolCallResponseInfo:
    """工具调用响应信息"""
    call_id: str
    response_parts: List[Part]              # 发回给模型的function_response
    result_display: Optional[str] = None
    error: Optional[Exception] = None


# 工具调用状态类型（调度器的状态机）
@dataclass
class ValidatingToolCall:
    request: Optional[ToolCallRequestInfo] = None
    tool: Optional[Any] = None
    status: str = 'validating'
    start_time: Optional[float] = None


@dataclass
class ScheduledToolCall:
    request: Optional[ToolCallRequestInfo] = None
    tool: Optional[Any] = None
    status: str = 'scheduled'
    start_time: Optional[float] = None


@dataclass
class ExecutingToolCall:
    request: Optional[ToolCallRequestInfo] = None
    tool: Optional[Any] = None
    status: str = 'executing'
    live_output: Optional[str] = None
    start_time: Optional[float] = None


@dataclass
class SuccessfulToolCall:
    request: Optional[ToolCallRequestInfo] = None
    tool: Optional[Any] = None
    response: Optional[ToolCallResponseInfo] = None
    status: str = 'success'
    duration_ms: Optional[float] = None


@dataclass
class ErroredToolCall:
    request: Optional[ToolCallRequestInfo] = None
    response: Optional[ToolCallResponseInfo] = None
    status: str = 'error'
    duration_ms: Optional[float] = None


@dataclass
class CancelledToolCall:
    request: Optional[ToolCallRequestInfo] = None
    tool: Optional[Any] = None
    response: Optional[ToolCallResponseInfo] = None
    status: str = 'cancelled'
    duration_ms: Optional[float] = None


ToolCall = Union[
    ValidatingToolCall,
    ScheduledToolCall,
    ExecutingToolCall,
    SuccessfulToolCall,
    ErroredToolCall,
    CancelledToolCall
]

TERMINAL_STATUSES = ('success', 'error', 'cancelled')
