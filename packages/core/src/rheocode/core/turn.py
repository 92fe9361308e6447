"""
AgentTurn - 单个回合的流式处理
把会话返回的响应块转换为 AgentEvent：文本、思考、工具调用请求、取消和错误
回合结束后 pending_tool_calls 中保存本回合模型请求的工具调用
"""

import time
import uuid
from typing import AsyncIterator, List, Optional

from .chat import AgentChat
from ..types.core_types import AbortSignal, GenerateContentResponse, PartListUnion
from ..types.event_types import AgentEvent, AgentEventType
from ..types.tool_types import ToolCallRequestInfo
from ..utils.errors import AbortError, get_error_message, get_error_status
from ..utils.error_reporting import report_error
from ..utils.debug_logger import DebugLogger


class AgentTurn:
    """
    一次模型回合
    同一个 AgentTurn 只运行一次
    """

    def __init__(self, chat: AgentChat, prompt_id: str = ""):
        self.chat = chat
        self.prompt_id = prompt_id
        self.pending_tool_calls: List[ToolCallRequestInfo] = []
        self.debug_responses: List[GenerateContentResponse] = []

    async def run(self, request: PartListUnion, signal: Optional[AbortSignal] = None) -> AsyncIterator[AgentEvent]:
        chunk_count = 0
        try:
            stream = await self.chat.send_message_stream(request, signal=signal)
            try:
                async for response in stream:
                    if signal is not None and signal.aborted:
                        yield AgentEvent(AgentEventType.USER_CANCELLED)
                        return

                    chunk_count += 1
                    self.debug_responses.append(response)
                    DebugLogger.log_turn_event("chunk_received", response.text)

                    content = response.first_content()
                    if content is None:
                        continue

                    for part in content.parts:
                        if part.thought:
                            if part.text:
                                yield AgentEvent(AgentEventType.THOUGHT, part.text)
                        elif part.text:
                            yield AgentEvent(AgentEventType.CONTENT, part.text)
                        elif part.function_call is not None:
                            yield self._handle_function_call(part.function_call)
            finally:
                await stream.aclose()

        except AbortError:
            yield AgentEvent(AgentEventType.USER_CANCELLED)
            return

        except Exception as error:
            if signal is not None and signal.aborted:
                yield AgentEvent(AgentEventType.USER_CANCELLED)
                return

            context = [c.to_dict() for c in self.chat.get_history(curated=True)]
            report_error(error, "Error when talking to the model.", context, "Turn.run-sendMessageStream")
            yield AgentEvent(AgentEventType.ERROR, {
                "message": get_error_message(error),
                "status": get_error_status(error),
            })
            return

        DebugLogger.log_turn_event("summary", chunk_count)

    def _handle_function_call(self, function_call: dict) -> AgentEvent:
        name = function_call.get("name") or "undefined_tool_name"
        call_id = function_call.get("id") or f"{name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        args = function_call.get("args") or {}

        request = ToolCallRequestInfo(
            call_id=call_id,
            name=name,
            args=args,
            is_client_initiated=False,
            prompt_id=self.prompt_id,
        )
        self.pending_tool_calls.append(request)
        DebugLogger.log_turn_event("tool_request", request)
        return AgentEvent(AgentEventType.TOOL_CALL_REQUEST, request)
