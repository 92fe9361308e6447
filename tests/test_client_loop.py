import asyncio
from typing import Any, Dict

import pytest

from rheocode.core.client import AgentClient
from rheocode.core.prompts import CONTINUE_PROMPT, ENVIRONMENT_ACK
from rheocode.tools.base import Tool
from rheocode.tools.registry import ToolCapability, ToolRegistry
from rheocode.types.core_types import Content, Part, SimpleAbortSignal
from rheocode.types.event_types import AgentEventType
from rheocode.types.tool_types import ToolResult
from rheocode.utils.errors import AgentError, ApiCallError, EmptyResponseError

from conftest import (
    FakeModelService, StatusError, function_call_response, json_response, text_response
)

MODEL_NEXT = {"reasoning": "keep going", "next_speaker": "model"}
USER_NEXT = {"reasoning": "question asked", "next_speaker": "user"}


class EchoTool(Tool):
    def __init__(self, on_execute=None):
        super().__init__(
            name="echo",
            display_name="Echo",
            description="Echoes the text back",
            parameter_schema={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        )
        self.calls = []
        self.on_execute = on_execute

    async def execute(self, params: Dict[str, Any], signal, update_output=None) -> ToolResult:
        self.calls.append(params)
        if self.on_execute:
            self.on_execute()
        return ToolResult(summary="echoed", llm_content=f"echo: {params['text']}", return_display=params["text"])


def echo_registry(config, tool):
    registry = ToolRegistry(config, register_core_tools=False)
    registry.register_tool(tool, {ToolCapability.READ})
    return registry


async def collect(stream):
    return [event async for event in stream]


def types_of(events):
    return [event.type for event in events]


async def test_new_chat_is_seeded_with_environment(make_client, workspace):
    client = await make_client()

    history = client.get_history()
    assert [c.role for c in history] == ["user", "model"]
    assert str(workspace) in history[0].parts[0].text
    assert history[1].parts[0].text == ENVIRONMENT_ACK


async def test_simple_reply_stops_when_user_should_speak(make_client):
    service = FakeModelService(streams=[[text_response("Hi "), text_response("there")]],
                               responses=[json_response(USER_NEXT)])
    client = await make_client(service)

    events = await collect(client.send_message_stream("hello"))

    assert types_of(events) == [AgentEventType.CONTENT, AgentEventType.CONTENT]
    assert len(service.stream_requests) == 1
    assert len(service.generate_requests) == 1
    assert client.get_history()[-1].parts[0].text == "Hi there"


async def test_continuation_is_bounded_by_max_session_turns(config, make_client):
    config.set_test_config("max_session_turns", 3)
    service = FakeModelService(default_response=json_response(MODEL_NEXT))
    client = await make_client(service)

    events = await collect(client.send_message_stream("start"))

    # 一次初始回合 + 恰好3次自动继续
    assert len(service.stream_requests) == 4
    assert len(service.generate_requests) == 3
    assert len([e for e in events if e.type == AgentEventType.CONTENT]) == 4
    continue_turns = [c for c in client.get_history() if c.role == "user" and c.parts[0].text == CONTINUE_PROMPT]
    assert len(continue_turns) == 3


async def test_turns_argument_is_capped_by_config(config, make_client):
    config.set_test_config("max_session_turns", 2)
    service = FakeModelService(default_response=json_response(MODEL_NEXT))
    client = await make_client(service)

    await collect(client.send_message_stream("start", turns=10))
    assert len(service.stream_requests) == 3

    service.stream_requests.clear()
    await collect(client.send_message_stream("again", turns=1))
    assert len(service.stream_requests) == 2


async def test_tool_calls_are_executed_and_results_sent_back(config, make_client):
    tool = EchoTool()
    service = FakeModelService(
        streams=[
            [text_response("Calling."), function_call_response("echo", {"text": "ping"}, "call-1")],
            [text_response("Got pong.")],
        ],
        responses=[json_response(USER_NEXT)],
    )
    client = await make_client(service, echo_registry(config, tool))

    events = await collect(client.send_message_stream("use the tool"))

    assert types_of(events) == [
        AgentEventType.CONTENT,
        AgentEventType.TOOL_CALL_REQUEST,
        AgentEventType.TOOL_CALL_RESPONSE,
        AgentEventType.CONTENT,
    ]
    assert tool.calls == [{"text": "ping"}]
    assert events[1].value.call_id == "call-1"
    assert events[2].value.error is None

    second_request = service.stream_requests[1][-1]
    assert second_request.role == "user"
    function_response = second_request.parts[0].function_response
    assert function_response == {"id": "call-1", "name": "echo", "response": {"output": "echo: ping"}}


async def test_missing_call_id_is_generated(config, make_client):
    service = FakeModelService(
        streams=[[function_call_response("echo", {"text": "x"})], [text_response("done")]],
        responses=[json_response(USER_NEXT)],
    )
    client = await make_client(service, echo_registry(config, EchoTool()))

    events = await collect(client.send_message_stream("go"))

    request = events[0].value
    assert request.call_id.startswith("echo-")
    assert events[1].value.call_id == request.call_id


async def test_unknown_tool_becomes_error_response_and_conversation_continues(config, make_client):
    service = FakeModelService(
        streams=[[function_call_response("nope", {}, "c1")], [text_response("sorry")]],
        responses=[json_response(USER_NEXT)],
    )
    client = await make_client(service, echo_registry(config, EchoTool()))

    events = await collect(client.send_message_stream("go"))

    response = events[1].value
    assert response.error is not None
    assert "not found" in response.response_parts[0].function_response["response"]["error"]
    assert events[-1].type == AgentEventType.CONTENT


async def test_tool_results_recorded_when_budget_exhausted(config, make_client):
    config.set_test_config("max_session_turns", 0)
    service = FakeModelService(streams=[[function_call_response("echo", {"text": "x"}, "c1")]])
    client = await make_client(service, echo_registry(config, EchoTool()))

    events = await collect(client.send_message_stream("go"))

    assert types_of(events) == [AgentEventType.TOOL_CALL_REQUEST, AgentEventType.TOOL_CALL_RESPONSE]
    assert len(service.stream_requests) == 1
    last = client.get_history()[-1]
    assert last.role == "user"
    assert last.parts[0].function_response["id"] == "c1"


async def test_next_request_after_exhausted_budget_keeps_alternation(config, make_client):
    config.set_test_config("max_session_turns", 0)
    service = FakeModelService(streams=[
        [function_call_response("echo", {"text": "x"}, "c1")],
        [text_response("done")],
    ])
    client = await make_client(service, echo_registry(config, EchoTool()))

    await collect(client.send_message_stream("go"))
    await collect(client.send_message_stream("next"))

    roles = [c.role for c in client.get_history()]
    assert all(a != b for a, b in zip(roles, roles[1:]))
    merged = client.get_history()[-2]
    assert merged.parts[0].function_response["id"] == "c1"
    assert merged.parts[1].text == "next"
    sent = service.stream_requests[1]
    assert sent[-1].parts[0].function_response["id"] == "c1"
    assert sent[-1].parts[1].text == "next"


async def test_abort_during_tool_execution_cancels(config, make_client):
    signal = SimpleAbortSignal()
    tool = EchoTool(on_execute=signal.abort)
    service = FakeModelService(streams=[[function_call_response("echo", {"text": "x"}, "c1")]])
    client = await make_client(service, echo_registry(config, tool))

    events = await collect(client.send_message_stream("go", signal))

    assert types_of(events) == [
        AgentEventType.TOOL_CALL_REQUEST,
        AgentEventType.TOOL_CALL_RESPONSE,
        AgentEventType.USER_CANCELLED,
    ]
    assert len(service.stream_requests) == 1
    # 函数调用仍然有对应的结果记录
    assert client.get_history()[-1].parts[0].function_response["id"] == "c1"


async def test_already_aborted_signal_cancels_without_compression(make_client):
    signal = SimpleAbortSignal()
    signal.abort()
    service = FakeModelService()
    client = await make_client(service)
    service.count_requests.clear()

    events = await collect(client.send_message_stream("hi", signal))

    assert types_of(events) == [AgentEventType.USER_CANCELLED]
    assert service.count_requests == []
    assert service.stream_requests == []


async def test_turn_error_is_reported_as_error_event(make_client):
    service = FakeModelService(streams=[StatusError(400, "invalid argument")])
    client = await make_client(service)

    events = await collect(client.send_message_stream("hi"))

    assert types_of(events) == [AgentEventType.ERROR]
    assert events[0].value == {"message": "invalid argument", "status": 400}
    assert service.generate_requests == []


async def test_closing_event_stream_cancels_loop(config, make_client):
    config.set_test_config("max_session_turns", 50)
    service = FakeModelService(default_response=json_response(MODEL_NEXT))
    client = await make_client(service)

    stream = client.send_message_stream("start")
    first = await stream.__anext__()
    assert first.type == AgentEventType.CONTENT
    await stream.aclose()
    await asyncio.sleep(0.05)
    count = len(service.stream_requests)

    await asyncio.sleep(0.05)
    assert len(service.stream_requests) == count
    assert count < 50
    # 会话锁没有被遗留
    await asyncio.wait_for(client.get_chat().send_message("still usable"), timeout=1)


async def test_session_is_not_reset_between_requests(make_client):
    service = FakeModelService(streams=[[text_response("one")], [text_response("two")]])
    client = await make_client(service)

    await collect(client.send_message_stream("first", turns=0))
    await collect(client.send_message_stream("second", turns=0))

    texts = [c.parts[0].text for c in client.get_history()[2:]]
    assert texts == ["first", "one", "second", "two"]


async def test_reset_chat_starts_fresh(make_client):
    client = await make_client()
    await collect(client.send_message_stream("first", turns=0))

    await client.reset_chat()

    assert len(client.get_history()) == 2


async def test_generate_json_parses_response(make_client):
    service = FakeModelService(responses=[json_response({"a": 1})])
    client = await make_client(service)

    result = await client.generate_json([Content(role="user", parts=[Part(text="q")])], {"type": "object"})

    assert result == {"a": 1}
    config = service.generate_configs[0]
    assert config["response_mime_type"] == "application/json"
    assert config["response_schema"] == {"type": "object"}
    assert "system_instruction" in config


async def test_generate_json_empty_response_raises(make_client):
    service = FakeModelService(responses=[text_response("")])
    client = await make_client(service)

    with pytest.raises(EmptyResponseError):
        await client.generate_json([Content(role="user", parts=[Part(text="q")])], {"type": "object"})


async def test_generate_json_invalid_json_raises_api_error(make_client, tmp_path):
    service = FakeModelService(responses=[text_response("not json")])
    client = await make_client(service)

    with pytest.raises(ApiCallError):
        await client.generate_json([Content(role="user", parts=[Part(text="q")])], {"type": "object"})

    reports = list((tmp_path / "reports").glob("rheocode-client-error-generateJson-parse-*.json"))
    assert len(reports) == 1


async def test_generate_content_wraps_failures(make_client):
    service = FakeModelService(responses=[StatusError(400, "bad")])
    client = await make_client(service)

    with pytest.raises(ApiCallError) as exc_info:
        await client.generate_content([Content(role="user", parts=[Part(text="q")])])

    assert exc_info.value.status == 400


async def test_client_without_chat_raises(config, fake_service):
    client = AgentClient(config, service=fake_service)
    with pytest.raises(AgentError):
        client.get_chat()
