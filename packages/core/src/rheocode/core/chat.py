"""
AgentChat - 对话会话与历史管理
维护两套历史视图：
- 完整历史（comprehensive）：记录所有回合，包括模型返回的无效/空回合
- 精选历史（curated）：只保留有效回合，用于下一次请求发送给模型

同一个会话上的发送严格按调用顺序串行执行（asyncio.Lock，FIFO）
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from ..services.base import ModelService
from ..types.core_types import (
    AbortSignal, Content, GenerateContentResponse, PartListUnion, create_user_content
)
from ..utils.errors import ValidationError
from ..utils.retry_with_backoff import RetryOptions, retry_with_backoff
from ..utils.debug_logger import DebugLogger, log_info, summarize_parts


def is_valid_content(content: Content) -> bool:
    """有效回合：至少一个Part，没有空Part，没有非思考的空字符串文本"""
    if not content.parts:
        return False
    for part in content.parts:
        if part is None or part.is_empty():
            return False
        if not part.thought and part.text is not None and part.text == "":
            return False
    return True


def is_valid_response(response: GenerateContentResponse) -> bool:
    content = response.first_content()
    if content is None:
        return False
    return is_valid_content(content)


def is_function_response(content: Content) -> bool:
    return (
        content.role == "user"
        and len(content.parts) > 0
        and all(part.function_response is not None for part in content.parts)
    )


def is_text_content(content: Optional[Content]) -> bool:
    """模型回合且首个Part为非空文本"""
    return bool(
        content is not None
        and content.role == "model"
        and content.parts
        and isinstance(content.parts[0].text, str)
        and content.parts[0].text != ""
    )


def strip_thoughts(content: Content) -> Content:
    """去掉思考Part，返回新的回合"""
    return Content(role=content.role, parts=[part.copy() for part in content.parts if not part.thought])


def validate_history(history: List[Content]):
    """历史中只允许 user / model 两种角色"""
    for content in history:
        if content.role not in ("user", "model"):
            raise ValidationError(
                "history",
                f"Role must be user or model, but got {content.role}.",
                invalid_value=content.role
            )


def extract_curated_history(comprehensive_history: List[Content]) -> List[Content]:
    """
    从完整历史中提取精选历史

    连续的模型回合只有全部有效时才保留；
    否则丢弃这一段模型回合以及它前面的那个用户回合
    """
    curated: List[Content] = []
    length = len(comprehensive_history)
    i = 0
    while i < length:
        if comprehensive_history[i].role == "user":
            curated.append(comprehensive_history[i])
            i += 1
        else:
            model_output = []
            is_valid = True
            while i < length and comprehensive_history[i].role == "model":
                model_output.append(comprehensive_history[i])
                if is_valid and not is_valid_content(comprehensive_history[i]):
                    is_valid = False
                i += 1
            if is_valid:
                curated.extend(model_output)
            elif curated:
                curated.pop()
    return curated


class AgentChat:
    """
    对话会话
    - 持有模型标识、生成配置和历史
    - send_message / send_message_stream 共用一把锁，保证历史按调用顺序合并
    - 对外只暴露历史的拷贝
    """

    def __init__(
        self,
        service: ModelService,
        model: str,
        config: Optional[Dict[str, Any]] = None,
        history: Optional[List[Content]] = None,
        retry_options: Optional[RetryOptions] = None
    ):
        history = history or []
        validate_history(history)

        self.service = service
        self.model = model
        self.config = dict(config or {})
        self.retry_options = retry_options or RetryOptions()
        self.history: List[Content] = [c.copy() for c in history]
        self._lock = asyncio.Lock()

    def _request_config(self, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = dict(self.config)
        if config:
            merged.update(config)
        return merged

    async def send_message(
        self,
        message: PartListUnion,
        config: Optional[Dict[str, Any]] = None,
        signal: Optional[AbortSignal] = None
    ) -> GenerateContentResponse:
        """
        发送消息并返回完整响应
        等待之前的发送完成后才开始；失败时历史保持不变
        """
        async with self._lock:
            user_content, curated, pending = self._build_request(message)
            request_config = self._request_config(config)
            log_info("Chat", f"Sending request with {len(curated)} history turns: {summarize_parts(user_content.parts)}")

            async def api_call():
                return await self.service.generate_content(
                    self.model, curated + [user_content], request_config
                )

            response = await retry_with_backoff(api_call, self.retry_options, signal)

            # AFC记录包含了整个精选历史，去掉已知的前缀
            afc_history: List[Content] = []
            if response.automatic_function_calling_history is not None:
                afc_history = response.automatic_function_calling_history[len(curated):]

            output = response.first_content()
            model_output = [output] if output is not None else []
            self._record_history(user_content, model_output, afc_history, replaces_pending=pending)
            return response

    async def send_message_stream(
        self,
        message: PartListUnion,
        config: Optional[Dict[str, Any]] = None,
        signal: Optional[AbortSignal] = None
    ) -> "ChatStream":
        """
        发送消息并返回流式响应
        只对建立连接的调用做重试（429/5xx）；流中途出错不会重启
        返回的 ChatStream 迭代结束、出错或被关闭时释放会话锁
        """
        await self._lock.acquire()
        try:
            user_content, curated, pending = self._build_request(message)
            request_config = self._request_config(config)
            log_info("Chat", f"Streaming request with {len(curated)} history turns: {summarize_parts(user_content.parts)}")

            async def api_call():
                return await self.service.generate_content_stream(
                    self.model, curated + [user_content], request_config
                )

            stream = await retry_with_backoff(api_call, self.retry_options, signal)
        except BaseException:
            self._lock.release()
            raise

        return ChatStream(self, user_content, stream, replaces_pending=pending)

    def get_history(self, curated: bool = False) -> List[Content]:
        """
        返回历史的拷贝
        curated=True 时返回精选历史，否则返回完整历史
        """
        history = extract_curated_history(self.history) if curated else self.history
        return [content.copy() for content in history]

    def add_history(self, content: Content):
        validate_history([content])
        self.history.append(content.copy())

    def set_history(self, history: List[Content]):
        validate_history(history)
        self.history = [content.copy() for content in history]

    def _build_request(self, message: PartListUnion) -> Tuple[Content, List[Content], bool]:
        """
        组装本次请求的用户回合和精选历史
        历史末尾是没有发出去的工具结果时（轮次用尽或中止后记入），
        新消息并入这个回合一起发送，保持user/model交替
        """
        user_content = create_user_content(message)
        curated = self.get_history(curated=True)
        pending = bool(self.history) and is_function_response(self.history[-1])
        if pending:
            tool_results = curated.pop()
            user_content = Content(role="user", parts=tool_results.parts + user_content.parts)
        return user_content, curated, pending

    def _record_history(
        self,
        user_input: Content,
        model_output: List[Content],
        automatic_function_calling_history: Optional[List[Content]] = None,
        replaces_pending: bool = False
    ):
        # 思考Part不进入历史，去掉后没有剩余内容的回合整个丢弃
        output_contents: List[Content] = []
        if model_output and all(c.role for c in model_output):
            output_contents = [c for c in (strip_thoughts(c) for c in model_output) if c.parts]
        if not output_contents and not is_function_response(user_input):
            # 模型没有返回内容时补一个空的模型回合，保持user/model交替
            output_contents.append(Content(role="model", parts=[]))

        if replaces_pending:
            # 末尾的工具结果回合已并入本次的用户回合
            self.history.pop()
        if automatic_function_calling_history:
            self.history.extend(
                c.copy() for c in extract_curated_history(automatic_function_calling_history)
            )
        else:
            self.history.append(user_input.copy())

        # 合并相邻的纯文本模型回合
        consolidated: List[Content] = []
        for content in output_contents:
            last = consolidated[-1] if consolidated else None
            if is_text_content(last) and is_text_content(content):
                last.parts[0].text += content.parts[0].text or ""
                last.parts.extend(content.parts[1:])
            else:
                consolidated.append(content)

        if consolidated:
            last_entry = self.history[-1] if self.history else None
            can_merge = not automatic_function_calling_history
            if can_merge and is_text_content(last_entry) and is_text_content(consolidated[0]):
                first = consolidated.pop(0)
                last_entry.parts[0].text += first.parts[0].text or ""
                last_entry.parts.extend(first.parts[1:])
            self.history.extend(consolidated)


class ChatStream:
    """
    一次流式发送的响应迭代器
    - 原样转发每个响应块，只有有效块计入模型输出
    - 迭代结束时合并历史（只合并一次）
    - 结束、出错或 aclose() 时释放会话锁；中途出错或关闭不记录历史
    """

    def __init__(
        self,
        chat: AgentChat,
        user_content: Content,
        stream: AsyncIterator[GenerateContentResponse],
        replaces_pending: bool = False
    ):
        self._chat = chat
        self._user_content = user_content
        self._replaces_pending = replaces_pending
        self._stream = stream
        self._output: List[Content] = []
        self._total_chunks = 0
        self._finished = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> GenerateContentResponse:
        if self._finished:
            raise StopAsyncIteration

        try:
            chunk = await self._stream.__anext__()
        except StopAsyncIteration:
            self._chat._record_history(self._user_content, self._output, replaces_pending=self._replaces_pending)
            DebugLogger.log_chat_summary(self._total_chunks, len(self._output), len(self._chat.history))
            self._finish()
            raise
        except BaseException:
            self._finish()
            raise

        self._total_chunks += 1
        if is_valid_response(chunk):
            self._output.append(chunk.first_content())
        return chunk

    async def aclose(self):
        """提前结束：关闭底层流并释放锁，不记录历史"""
        if self._finished:
            return
        self._finish()
        close = getattr(self._stream, "aclose", None)
        if close is not None:
            await close()

    def _finish(self):
        if not self._finished:
            self._finished = True
            self._chat._lock.release()
