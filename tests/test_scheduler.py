from typing import Any, Dict

import pytest

from rheocode.core.scheduler import ToolScheduler, convert_to_function_response
from rheocode.tools.base import Tool
from rheocode.tools.registry import ToolCapability, ToolRegistry
from rheocode.types.core_types import SimpleAbortSignal
from rheocode.types.tool_types import ToolCallRequestInfo, ToolResult


class ScriptedTool(Tool):
    def __init__(self, name="scripted", result=None, raises=None):
        super().__init__(
            name=name,
            display_name="Scripted",
            description="Returns a scripted result",
            parameter_schema={"type": "object", "properties": {"value": {"type": "string"}}, "required": ["value"]},
        )
        self.result = result or ToolResult(llm_content="fine", return_display="fine")
        self.raises = raises
        self.executed = 0

    async def execute(self, params: Dict[str, Any], signal, update_output=None) -> ToolResult:
        self.executed += 1
        if update_output:
            update_output("working")
        if self.raises:
            raise self.raises
        return self.result


@pytest.fixture
def registry(config):
    return ToolRegistry(config, register_core_tools=False)


def request(name, args=None, call_id="c1"):
    return ToolCallRequestInfo(call_id=call_id, name=name, args=args if args is not None else {"value": "v"})


def add(registry, tool):
    registry.register_tool(tool, {ToolCapability.READ})
    return tool


def response_of(tool_call):
    return tool_call.response.response_parts[0].function_response["response"]


async def test_successful_call(config, registry):
    tool = add(registry, ScriptedTool())
    updates = []
    scheduler = ToolScheduler(config, registry, output_update_handler=lambda call_id, out: updates.append((call_id, out)))

    [call] = await scheduler.schedule([request("scripted")], SimpleAbortSignal())

    assert call.status == "success"
    assert response_of(call) == {"output": "fine"}
    assert call.response.result_display == "fine"
    assert tool.executed == 1
    assert updates == [("c1", "working")]
    assert scheduler.tool_calls == []


async def test_unknown_tool_is_error(config, registry):
    scheduler = ToolScheduler(config, registry)

    [call] = await scheduler.schedule([request("missing")], None)

    assert call.status == "error"
    assert "not found" in response_of(call)["error"]


async def test_invalid_params_are_error_and_not_executed(config, registry):
    tool = add(registry, ScriptedTool())
    scheduler = ToolScheduler(config, registry)

    [call] = await scheduler.schedule([request("scripted", args={})], None)

    assert call.status == "error"
    assert "Missing required parameter: value" in response_of(call)["error"]
    assert tool.executed == 0


async def test_exception_becomes_error_response(config, registry):
    add(registry, ScriptedTool(raises=RuntimeError("disk on fire")))
    scheduler = ToolScheduler(config, registry)

    [call] = await scheduler.schedule([request("scripted")], None)

    assert call.status == "error"
    assert response_of(call) == {"error": "disk on fire"}


async def test_tool_result_error_is_error_status(config, registry):
    add(registry, ScriptedTool(result=ToolResult(llm_content="partial", error="exit code 1")))
    scheduler = ToolScheduler(config, registry)

    [call] = await scheduler.schedule([request("scripted")], None)

    assert call.status == "error"
    assert response_of(call) == {"output": "partial", "error": "exit code 1"}


async def test_aborted_signal_cancels_without_executing(config, registry):
    tool = add(registry, ScriptedTool())
    scheduler = ToolScheduler(config, registry)
    signal = SimpleAbortSignal()
    signal.abort()

    calls = await scheduler.schedule([request("scripted", call_id="a"), request("scripted", call_id="b")], signal)

    assert [c.status for c in calls] == ["cancelled", "cancelled"]
    assert tool.executed == 0
    assert "cancelled" in response_of(calls[0])["error"]


async def test_results_keep_request_order_and_status_updates_are_reported(config, registry):
    add(registry, ScriptedTool(name="first"))
    add(registry, ScriptedTool(name="second"))
    snapshots = []
    scheduler = ToolScheduler(config, registry, on_tool_calls_update=lambda calls: snapshots.append([c.status for c in calls]))

    calls = await scheduler.schedule([request("first", call_id="1"), request("second", call_id="2")], None)

    assert [c.request.call_id for c in calls] == ["1", "2"]
    assert snapshots[0] == ["validating", "validating"]
    assert snapshots[-1] == ["success", "success"]


def test_convert_to_function_response_falls_back_to_summary():
    part = convert_to_function_response("t", "id-1", ToolResult(summary="nothing to say"))
    assert part.function_response == {"id": "id-1", "name": "t", "response": {"output": "nothing to say"}}
