"""
历史压缩
精选历史的token数达到上下文窗口的阈值（默认95%）时，
让模型总结当前对话，并用 [总结请求, 总结] 两条记录替换整个会话
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .prompts import COMPRESSION_PROMPT
from ..types.core_types import Content, Part
from ..utils.errors import AbortError, ApiCallError, get_error_message, get_error_status
from ..utils.error_reporting import report_error
from ..utils.debug_logger import DebugLogger

if TYPE_CHECKING:
    from .client import AgentClient

logger = logging.getLogger(__name__)


@dataclass
class ChatCompressionInfo:
    original_token_count: int
    new_token_count: Optional[int]


async def _count_tokens(client: "AgentClient", contents) -> Optional[int]:
    try:
        return await client.service.count_tokens(client.model, contents)
    except Exception as error:
        logger.warning(f"Could not determine token count for model {client.model}: {error}")
        return None


async def try_compress_chat(client: "AgentClient", force: bool = False) -> Optional[ChatCompressionInfo]:
    """
    尝试压缩当前会话，返回压缩信息；未压缩时返回 None

    token数无法确定或模型上下文窗口未知时静默跳过
    force=True 时忽略阈值（/compress 命令）
    总结请求失败时写错误报告并抛出 ApiCallError，会话保持不变
    """
    chat = client.get_chat()
    curated_history = chat.get_history(curated=True)
    if not curated_history:
        return None

    original_token_count = await _count_tokens(client, curated_history)
    if original_token_count is None:
        logger.warning(f"Could not determine token count for model {client.model}. Skipping compression.")
        return None

    limit = client.get_token_limit()
    if limit is None:
        logger.warning(f"Unknown token limit for model {client.model}. Skipping compression.")
        return None

    threshold = float(client.config.get("compression_threshold", 0.95))
    if not force and original_token_count < threshold * limit:
        return None

    with client.tracer.span("chat.compress", {"original_token_count": original_token_count}):
        try:
            response = await chat.send_message(COMPRESSION_PROMPT)
        except (AbortError, ApiCallError):
            raise
        except Exception as error:
            context = [c.to_dict() for c in curated_history]
            report_error(error, "Error during chat compression.", context, "tryCompressChat")
            raise ApiCallError(
                f"Failed to compress chat history: {get_error_message(error)}",
                status=get_error_status(error),
                original_error=error
            ) from error
        summary = response.text
        if not summary:
            logger.warning("Compression request returned an empty summary. Keeping the current history.")
            return None

        client.chat = await client.start_chat(
            extra_history=[
                Content(role="user", parts=[Part(text=COMPRESSION_PROMPT)]),
                Content(role="model", parts=[Part(text=summary)]),
            ],
            seed_environment=False,
        )

    new_token_count = await _count_tokens(client, client.chat.get_history(curated=True))
    info = ChatCompressionInfo(original_token_count, new_token_count)
    DebugLogger.log_client_event("compressed", f"{original_token_count} -> {new_token_count}")
    return info
