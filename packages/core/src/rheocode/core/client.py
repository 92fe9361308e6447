"""
AgentClient - 回合编排
驱动一次顶层请求：历史压缩 → 模型回合 → 工具执行 / next speaker 判断 → 继续或结束
同时提供一次性的 generate_json / generate_content 调用
"""

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional

from .chat import AgentChat
from .turn import AgentTurn
from .scheduler import ToolScheduler
from .prompts import PromptManager, CONTINUE_PROMPT, ENVIRONMENT_ACK
from .environment import EnvironmentCollector
from .memory import MemoryManager
from .next_speaker import check_next_speaker
from .compression import try_compress_chat
from .token_limits import token_limit
from ..config.base import AgentConfig
from ..services.base import ModelService
from ..telemetry.tracer import AgentTracer
from ..tools.registry import ToolRegistry
from ..types.core_types import (
    AbortSignal, Content, GenerateContentResponse, Part, PartListUnion, SimpleAbortSignal
)
from ..types.event_types import AgentEvent, AgentEventType
from ..utils.errors import (
    AbortError, AgentError, ApiCallError, EmptyResponseError, get_error_message, get_error_status
)
from ..utils.error_reporting import report_error
from ..utils.retry_with_backoff import RetryOptions, retry_with_backoff
from ..utils.debug_logger import DebugLogger, log_info

logger = logging.getLogger(__name__)

_DONE = object()


class AgentClient:
    """
    Agent客户端
    - 持有当前会话（AgentChat），压缩后会被替换
    - send_message_stream 是对外的主入口，返回事件流
    - 自动继续的次数受 max_session_turns 限制
    """

    def __init__(
        self,
        config: AgentConfig,
        service: Optional[ModelService] = None,
        tool_registry: Optional[ToolRegistry] = None
    ):
        self.config = config
        if service is None:
            from ..services.gemini_service import GeminiService
            service = GeminiService(config)
        self.service = service
        self.model = config.get_model()

        self.tool_registry = tool_registry or ToolRegistry(config)
        self.scheduler = ToolScheduler(config, self.tool_registry)
        self.prompt_manager = PromptManager()
        self.memory_manager = MemoryManager(config)
        self.environment = EnvironmentCollector(config, self.tool_registry)
        self.tracer = AgentTracer(config)

        self.generate_content_config: Dict[str, Any] = {
            "temperature": float(config.get("temperature", 0)),
            "top_p": float(config.get("top_p", 1)),
        }
        self.retry_options = RetryOptions(
            max_attempts=int(config.get("retry_max_attempts", 5)),
            initial_delay_ms=int(config.get("retry_initial_delay_ms", 5000)),
            max_delay_ms=int(config.get("retry_max_delay_ms", 30000)),
        )

        self.chat: Optional[AgentChat] = None

    async def initialize(self):
        self.chat = await self.start_chat()

    def get_chat(self) -> AgentChat:
        if self.chat is None:
            raise AgentError("Chat not initialized", error_code="chat_not_initialized")
        return self.chat

    def get_history(self, curated: bool = False) -> List[Content]:
        return self.get_chat().get_history(curated)

    def add_history(self, content: Content):
        self.get_chat().add_history(content)

    def set_history(self, history: List[Content]):
        self.get_chat().set_history(history)

    async def reset_chat(self):
        self.chat = await self.start_chat()

    def get_token_limit(self) -> Optional[int]:
        configured = self.config.get("token_limit")
        if configured:
            return int(configured)
        return token_limit(self.model)

    async def _get_system_instruction(self) -> str:
        user_memory = await self.memory_manager.load_hierarchical_memory()
        return self.prompt_manager.get_core_system_prompt(user_memory)

    async def start_chat(
        self,
        extra_history: Optional[List[Content]] = None,
        seed_environment: bool = True
    ) -> AgentChat:
        """
        创建新会话
        seed_environment=True 时历史以 [环境上下文, 确认] 两条开头
        """
        history: List[Content] = []
        try:
            if seed_environment:
                env_parts = await self.environment.get_environment()
                history = [
                    Content(role="user", parts=env_parts),
                    Content(role="model", parts=[Part(text=ENVIRONMENT_ACK)]),
                ]
            history.extend(extra_history or [])

            chat_config = dict(self.generate_content_config)
            chat_config["system_instruction"] = await self._get_system_instruction()
            declarations = self.tool_registry.get_function_declarations()
            if declarations:
                chat_config["tools"] = declarations

            return AgentChat(self.service, self.model, chat_config, history, self.retry_options)
        except Exception as error:
            report_error(
                error,
                "Error initializing chat session.",
                [c.to_dict() for c in history],
                "startChat"
            )
            raise ApiCallError(
                f"Failed to initialize chat: {get_error_message(error)}",
                original_error=error
            ) from error

    async def send_message_stream(
        self,
        request: PartListUnion,
        signal: Optional[AbortSignal] = None,
        turns: Optional[int] = None
    ) -> AsyncIterator[AgentEvent]:
        """
        发送一次顶层请求，产出事件流；事件流结束即表示本次请求完成
        提前关闭事件流会取消后台的编排任务
        """
        signal = signal or SimpleAbortSignal()
        max_turns = self.config.get_max_session_turns()
        budget = max_turns if turns is None else min(turns, max_turns)

        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.ensure_future(self._run(request, signal, budget, queue))
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                yield item
            await task
        finally:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    async def _run(self, request: PartListUnion, signal: AbortSignal, budget: int, queue: asyncio.Queue):
        """编排任务：结果写入队列，结束时总是写入结束标记"""
        try:
            await self._orchestrate(request, signal, budget, queue)
        finally:
            queue.put_nowait(_DONE)

    async def _orchestrate(self, request: PartListUnion, signal: AbortSignal, budget: int, queue: asyncio.Queue):
        prompt_id = uuid.uuid4().hex[:12]
        remaining = budget

        # 压缩开始后不响应中止，只在开始前检查
        if not signal.aborted:
            try:
                compressed = await try_compress_chat(self)
            except ApiCallError as error:
                logger.error(f"Chat compression failed: {error.message}")
                await queue.put(AgentEvent(AgentEventType.ERROR, {"message": error.message, "status": error.status}))
                return
            if compressed is not None:
                await queue.put(AgentEvent(AgentEventType.CHAT_COMPRESSED, compressed))

        current_request = request
        while True:
            turn = AgentTurn(self.get_chat(), prompt_id)
            stopped = False
            with self.tracer.span("agent.turn", {"prompt_id": prompt_id, "remaining_turns": remaining}):
                async for event in turn.run(current_request, signal):
                    await queue.put(event)
                    if event.type in (AgentEventType.ERROR, AgentEventType.USER_CANCELLED):
                        stopped = True

            if stopped:
                return
            if signal.aborted:
                await queue.put(AgentEvent(AgentEventType.USER_CANCELLED))
                return

            if turn.pending_tool_calls:
                DebugLogger.log_client_event("tools_found", [r.name for r in turn.pending_tool_calls])
                completed = await self.scheduler.schedule(turn.pending_tool_calls, signal)

                response_parts: List[Part] = []
                for tool_call in completed:
                    await queue.put(AgentEvent(AgentEventType.TOOL_CALL_RESPONSE, tool_call.response))
                    response_parts.extend(tool_call.response.response_parts)

                if signal.aborted or remaining <= 0:
                    # 工具结果不再发送，但要记入历史，保证函数调用都有对应的结果
                    self.get_chat().add_history(Content(role="user", parts=response_parts))
                    if signal.aborted:
                        await queue.put(AgentEvent(AgentEventType.USER_CANCELLED))
                    else:
                        log_info("Client", "Session turn limit reached with pending tool results")
                    return

                remaining -= 1
                DebugLogger.log_client_event("continuation", remaining)
                current_request = response_parts
                continue

            if remaining <= 0:
                return

            next_speaker = await check_next_speaker(self.get_chat(), self, signal)
            DebugLogger.log_client_event("history_update", len(self.get_chat().history))
            if next_speaker and next_speaker["next_speaker"] == "model" and not signal.aborted:
                remaining -= 1
                DebugLogger.log_client_event("continuation", remaining)
                current_request = CONTINUE_PROMPT
                continue
            return

    async def generate_json(
        self,
        contents: List[Content],
        schema: Dict[str, Any],
        signal: Optional[AbortSignal] = None,
        model: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        一次性生成JSON
        空响应抛出 EmptyResponseError，解析失败或请求失败抛出 ApiCallError
        """
        model = model or self.model
        context = [c.to_dict() for c in contents]
        try:
            request_config = dict(self.generate_content_config)
            request_config.update(config or {})
            request_config.update({
                "system_instruction": await self._get_system_instruction(),
                "response_schema": schema,
                "response_mime_type": "application/json",
            })

            async def api_call():
                return await self.service.generate_content(model, contents, request_config)

            result = await retry_with_backoff(api_call, self.retry_options, signal)
            text = result.text
            if not text:
                error = EmptyResponseError("API returned an empty response for generate_json.")
                report_error(error, "Error in generate_json: API returned an empty response.", context, "generateJson-empty-response")
                raise error

            try:
                return json.loads(text)
            except json.JSONDecodeError as parse_error:
                report_error(
                    parse_error,
                    "Failed to parse JSON response from generate_json.",
                    {"response_text_failed_to_parse": text, "original_request_contents": context},
                    "generateJson-parse"
                )
                raise ApiCallError(
                    f"Failed to parse API response as JSON: {parse_error}",
                    original_error=parse_error
                ) from parse_error

        except (AbortError, ApiCallError):
            raise
        except Exception as error:
            if signal is not None and signal.aborted:
                raise
            report_error(error, "Error generating JSON content via API.", context, "generateJson-api")
            raise ApiCallError(
                f"Failed to generate JSON content: {get_error_message(error)}",
                status=get_error_status(error),
                original_error=error
            ) from error

    async def generate_content(
        self,
        contents: List[Content],
        config: Optional[Dict[str, Any]] = None,
        signal: Optional[AbortSignal] = None
    ) -> GenerateContentResponse:
        """一次性生成内容，不经过会话历史"""
        context = [c.to_dict() for c in contents]
        try:
            request_config = dict(self.generate_content_config)
            request_config.update(config or {})
            request_config["system_instruction"] = await self._get_system_instruction()

            async def api_call():
                return await self.service.generate_content(self.model, contents, request_config)

            return await retry_with_backoff(api_call, self.retry_options, signal)

        except (AbortError, ApiCallError):
            raise
        except Exception as error:
            if signal is not None and signal.aborted:
                raise
            report_error(error, f"Error generating content via API with model {self.model}.", context, "generateContent-api")
            raise ApiCallError(
                f"Failed to generate content with model {self.model}: {get_error_message(error)}",
                status=get_error_status(error),
                original_error=error
            ) from error
