"""
RheoCode 核心包
导出对话引擎的主要API
"""

# 核心组件
from .core.client import AgentClient
from .core.chat import AgentChat
from .core.turn import AgentTurn
from .core.scheduler import ToolScheduler
from .core.prompts import PromptManager

# 工具系统
from .tools.registry import ToolRegistry
from .tools.base import Tool

# 服务层
from .services.base import ModelService
from .services.gemini_service import GeminiService

# 监控遥测
from .telemetry.tracer import AgentTracer
from .telemetry.logger import AgentLogger

# 配置
from .config.base import AgentConfig

# 工具函数
from .utils.retry_with_backoff import RetryOptions, retry_with_backoff
from .utils.errors import AgentError, ApiCallError, AbortError, ToolExecutionError

# 类型定义
from .types.core_types import *
from .types.tool_types import *
from .types.event_types import *

__version__ = "1.0.0"
__all__ = [
    # 核心组件
    "AgentClient",
    "AgentChat",
    "AgentTurn",
    "ToolScheduler",
    "PromptManager",

    # 工具系统
    "ToolRegistry",
    "Tool",

    # 服务层
    "ModelService",
    "GeminiService",

    # 监控遥测
    "AgentTracer",
    "AgentLogger",

    # 配置
    "AgentConfig",

    # 工具函数
    "RetryOptions",
    "retry_with_backoff",
    "AgentError",
    "ApiCallError",
    "AbortError",
    "ToolExecutionError",

    # 事件
    "AgentEvent",
    "AgentEventType",
]
