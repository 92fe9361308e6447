import asyncio
import json
import tempfile
from typing import Any, Dict, List, Optional

import pytest

from rheocode.config.test_config import TestConfig
from rheocode.core.client import AgentClient
from rheocode.services.base import ModelService
from rheocode.tools.registry import ToolRegistry
from rheocode.types.core_types import Candidate, Content, GenerateContentResponse, Part


def response_of(*parts: Part) -> GenerateContentResponse:
    return GenerateContentResponse(candidates=[Candidate(content=Content(role="model", parts=list(parts)))])


def text_response(text: str) -> GenerateContentResponse:
    return response_of(Part(text=text))


def empty_response() -> GenerateContentResponse:
    return GenerateContentResponse(candidates=[])


def function_call_response(name: str, args: Dict[str, Any], call_id: Optional[str] = None) -> GenerateContentResponse:
    return response_of(Part(function_call={"id": call_id, "name": name, "args": args}))


def json_response(data: Dict[str, Any]) -> GenerateContentResponse:
    return text_response(json.dumps(data))


class StatusError(Exception):
    """带HTTP状态码的远程错误"""

    def __init__(self, status: int, message: str = ""):
        super().__init__(message or f"HTTP {status}")
        self.status = status


class FakeModelService(ModelService):
    """
    按脚本返回响应的模型服务
    - streams: 每次 generate_content_stream 消费一项；项为响应块列表（块可以是异常，表示流中途出错）或异常
    - responses: 每次 generate_content 消费一项；响应或异常
    - token_counts: 每次 count_tokens 消费一项；耗尽后重复 default_token_count
    """

    def __init__(
        self,
        streams: Optional[List[Any]] = None,
        responses: Optional[List[Any]] = None,
        token_counts: Optional[List[Optional[int]]] = None,
        default_stream: Optional[List[Any]] = None,
        default_response: Optional[GenerateContentResponse] = None,
        default_token_count: Optional[int] = 10,
    ):
        self.streams = list(streams or [])
        self.responses = list(responses or [])
        self.token_counts = list(token_counts or [])
        self.default_stream = default_stream if default_stream is not None else [text_response("ok")]
        self.default_response = default_response or json_response({"reasoning": "done", "next_speaker": "user"})
        self.default_token_count = default_token_count

        self.stream_requests: List[List[Content]] = []
        self.generate_requests: List[List[Content]] = []
        self.generate_configs: List[Dict[str, Any]] = []
        self.count_requests: List[List[Content]] = []

    async def generate_content(self, model, contents, config=None):
        self.generate_requests.append([c.copy() for c in contents])
        self.generate_configs.append(dict(config or {}))
        await asyncio.sleep(0)
        item = self.responses.pop(0) if self.responses else self.default_response
        if isinstance(item, BaseException):
            raise item
        return item

    async def generate_content_stream(self, model, contents, config=None):
        self.stream_requests.append([c.copy() for c in contents])
        item = self.streams.pop(0) if self.streams else self.default_stream
        if isinstance(item, BaseException):
            raise item

        async def chunks():
            for chunk in item:
                await asyncio.sleep(0)
                if isinstance(chunk, BaseException):
                    raise chunk
                yield chunk

        return chunks()

    async def count_tokens(self, model, contents):
        self.count_requests.append([c.copy() for c in contents])
        if self.token_counts:
            item = self.token_counts.pop(0)
        else:
            item = self.default_token_count
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """错误报告写到临时目录；避免读取本机的系统提示词覆盖和全局记忆"""
    report_dir = tmp_path / "reports"
    report_dir.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(report_dir))
    monkeypatch.delenv("RHEOCODE_SYSTEM_MD", raising=False)
    monkeypatch.setattr("rheocode.core.memory.USER_SETTINGS_DIR", tmp_path / "user_settings")
    monkeypatch.setenv("RHEOCODE_DEBUG_LEVEL", "ERROR")


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "workspace"
    root.mkdir()
    (root / ".git").mkdir()
    return root


@pytest.fixture
def config(workspace):
    return TestConfig(workspace_root=workspace, test_overrides={
        "model": "gemini-2.5-flash",
        "working_dir": str(workspace),
        "retry_initial_delay_ms": 0,
        "retry_max_delay_ms": 0,
    })


@pytest.fixture
def fake_service():
    return FakeModelService()


@pytest.fixture
def make_client(config, fake_service):
    async def _make(service: Optional[FakeModelService] = None, registry: Optional[ToolRegistry] = None):
        client = AgentClient(config, service=service or fake_service, tool_registry=registry)
        await client.initialize()
        return client
    return _make
