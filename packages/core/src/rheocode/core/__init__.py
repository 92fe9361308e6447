"""
核心逻辑层 - 回合编排、会话历史、工具调度与历史压缩
"""

from .client import AgentClient
from .chat import AgentChat, ChatStream
from .turn import AgentTurn
from .scheduler import ToolScheduler
from .prompts import PromptManager
from .next_speaker import check_next_speaker
from .compression import ChatCompressionInfo, try_compress_chat

__all__ = [
    "AgentClient",
    "AgentChat",
    "ChatStream",
    "AgentTurn",
    "ToolScheduler",
    "PromptManager",
    "check_next_speaker",
    "ChatCompressionInfo",
    "try_compress_chat"
]
