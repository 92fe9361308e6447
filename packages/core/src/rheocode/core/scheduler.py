"""
ToolScheduler - 工具调度器
管理工具从验证到执行的完整生命周期：
validating → scheduled → executing → success | error | cancelled

调度器从不抛出异常：未知工具、参数错误、执行异常、中止信号
都会变成带 {"error": ...} 的 function_response，交还给模型
"""

import time
from typing import List, Optional, Dict, Any

from ..types.core_types import AbortSignal, Part
from ..types.tool_types import (
    ToolCallRequestInfo, ToolCall, ToolCallResponseInfo, ToolResult,
    ValidatingToolCall, ScheduledToolCall, ExecutingToolCall,
    SuccessfulToolCall, ErroredToolCall, CancelledToolCall, TERMINAL_STATUSES
)
from ..config.base import AgentConfig
from ..tools.registry import ToolRegistry
from ..utils.errors import ToolExecutionError
from ..utils.debug_logger import DebugLogger, log_info


def convert_to_function_response(name: str, call_id: str, result: ToolResult) -> Part:
    """把 ToolResult 转换为发回模型的 function_response"""
    response: Dict[str, Any] = {}
    if result.llm_content:
        response["output"] = result.llm_content
    if result.error:
        response["error"] = result.error
    if not response:
        response["output"] = result.summary or ""
    return Part(function_response={"id": call_id, "name": name, "response": response})


def create_error_response(request: ToolCallRequestInfo, error: Exception) -> ToolCallResponseInfo:
    return ToolCallResponseInfo(
        call_id=request.call_id,
        response_parts=[Part(function_response={
            "id": request.call_id,
            "name": request.name,
            "response": {"error": str(error)},
        })],
        result_display=str(error),
        error=error
    )


class ToolScheduler:
    """
    工具调度器
    - 工具状态机管理
    - 按请求顺序依次执行
    - UI回调：on_tool_calls_update(tool_calls)、output_update_handler(call_id, output)
    """

    def __init__(self, config: AgentConfig, tool_registry: Optional[ToolRegistry] = None, **callbacks):
        self.config = config
        self.tool_registry = tool_registry or ToolRegistry(config)
        self.tool_calls: List[ToolCall] = []

        self.output_update_handler = callbacks.get('output_update_handler')
        self.on_tool_calls_update = callbacks.get('on_tool_calls_update')

    async def schedule(self, requests: List[ToolCallRequestInfo], signal: Optional[AbortSignal]) -> List[ToolCall]:
        """
        调度并执行一批工具调用，返回全部处于终止状态的调用（与请求顺序一致）
        """
        if self._is_running():
            raise ToolExecutionError("scheduler", "Cannot schedule new tool calls while others are running")

        self.tool_calls = []

        # 1. 创建工具调用
        for request in requests:
            tool = self.tool_registry.get_tool(request.name)
            if tool is None:
                error = ToolExecutionError(request.name, f"Tool '{request.name}' not found in registry.")
                self.tool_calls.append(ErroredToolCall(
                    request=request,
                    response=create_error_response(request, error),
                    duration_ms=0
                ))
                continue
            self.tool_calls.append(ValidatingToolCall(request=request, tool=tool, start_time=time.time()))
        self._notify_tool_calls_update()

        # 2. 验证参数
        for tool_call in list(self.tool_calls):
            if tool_call.status != 'validating':
                continue
            try:
                error_message = tool_call.tool.validate_tool_params(tool_call.request.args)
            except Exception as e:
                error_message = f"Validation failed: {e}"
            if error_message:
                error = ToolExecutionError(tool_call.request.name, f"Invalid parameters: {error_message}")
                self._set_status(tool_call.request.call_id, 'error', create_error_response(tool_call.request, error))
            else:
                self._set_status(tool_call.request.call_id, 'scheduled')

        # 3. 执行
        await self._attempt_execution_of_scheduled_calls(signal)

        completed = list(self.tool_calls)
        self.tool_calls = []
        return completed

    async def _attempt_execution_of_scheduled_calls(self, signal: Optional[AbortSignal]):
        """依次执行所有已调度的工具调用"""
        scheduled = [tc for tc in self.tool_calls if tc.status == 'scheduled']
        DebugLogger.log_scheduler_event("execution_start", len(scheduled))

        for tool_call in scheduled:
            request = tool_call.request

            if signal is not None and signal.aborted:
                self._set_status(request.call_id, 'cancelled', ToolCallResponseInfo(
                    call_id=request.call_id,
                    response_parts=[Part(function_response={
                        "id": request.call_id,
                        "name": request.name,
                        "response": {"error": "Tool call cancelled by user."},
                    })],
                    result_display="Cancelled"
                ))
                continue

            self._set_status(request.call_id, 'executing')
            try:
                result = await tool_call.tool.execute(
                    request.args,
                    signal,
                    self._create_output_updater(request.call_id)
                )
            except Exception as e:
                log_info("Scheduler", f"Tool {request.name} raised {type(e).__name__}: {e}")
                error = ToolExecutionError(request.name, str(e), original_error=e)
                self._set_status(request.call_id, 'error', create_error_response(request, error))
                continue

            function_response = convert_to_function_response(request.name, request.call_id, result)
            response = ToolCallResponseInfo(
                call_id=request.call_id,
                response_parts=[function_response],
                result_display=result.return_display,
                error=ToolExecutionError(request.name, result.error) if result.error else None
            )

            if signal is not None and signal.aborted:
                self._set_status(request.call_id, 'cancelled', response)
            elif result.error:
                self._set_status(request.call_id, 'error', response)
            else:
                DebugLogger.log_scheduler_event("tool_complete", {
                    "name": request.name,
                    "response": function_response.function_response
                })
                self._set_status(request.call_id, 'success', response)

    def _create_output_updater(self, call_id: str):
        """创建输出更新器，用于流式输出"""
        def update_output(output: str):
            for tool_call in self.tool_calls:
                if tool_call.request.call_id == call_id and tool_call.status == 'executing':
                    tool_call.live_output = output
            if self.output_update_handler:
                self.output_update_handler(call_id, output)
        return update_output

    def _is_running(self) -> bool:
        return any(call.status == 'executing' for call in self.tool_calls)

    def _notify_tool_calls_update(self):
        if self.on_tool_calls_update:
            self.on_tool_calls_update(list(self.tool_calls))

    def _set_status(self, call_id: str, status: str, response: Optional[ToolCallResponseInfo] = None):
        """更新工具调用状态 - 终止状态不再变化"""
        for i, tool_call in enumerate(self.tool_calls):
            if tool_call.request.call_id != call_id:
                continue
            if tool_call.status in TERMINAL_STATUSES:
                return

            start_time = getattr(tool_call, 'start_time', None)
            tool = getattr(tool_call, 'tool', None)
            duration_ms = (time.time() - start_time) * 1000 if start_time else 0

            if status == 'scheduled':
                new_call = ScheduledToolCall(request=tool_call.request, tool=tool, start_time=start_time)
            elif status == 'executing':
                new_call = ExecutingToolCall(request=tool_call.request, tool=tool, start_time=start_time)
            elif status == 'success':
                new_call = SuccessfulToolCall(request=tool_call.request, tool=tool, response=response, duration_ms=duration_ms)
            elif status == 'error':
                new_call = ErroredToolCall(request=tool_call.request, response=response, duration_ms=duration_ms)
            elif status == 'cancelled':
                new_call = CancelledToolCall(request=tool_call.request, tool=tool, response=response, duration_ms=duration_ms)
            else:
                return

            self.tool_calls[i] = new_call
            break

        self._notify_tool_calls_update()
