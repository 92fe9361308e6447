"""
GeminiService - 基于 google-genai SDK 的模型服务
负责本地 Content/Part 类型与 SDK 类型之间的转换
"""

from typing import Any, AsyncIterator, Dict, List, Optional

from google import genai
from google.genai import types

from .base import ModelService
from ..config.base import AgentConfig
from ..types.core_types import Candidate, Content, GenerateContentResponse, Part
from ..utils.debug_logger import log_info


def to_genai_part(part: Part) -> types.Part:
    if part.function_call is not None:
        call = part.function_call
        return types.Part(function_call=types.FunctionCall(
            id=call.get("id"),
            name=call.get("name"),
            args=call.get("args") or {},
        ))
    if part.function_response is not None:
        response = part.function_response
        return types.Part(function_response=types.FunctionResponse(
            id=response.get("id"),
            name=response.get("name"),
            response=response.get("response") or {},
        ))
    return types.Part(text=part.text, thought=part.thought)


def to_genai_content(content: Content) -> types.Content:
    return types.Content(role=content.role, parts=[to_genai_part(p) for p in content.parts])


def from_genai_part(part: types.Part) -> Part:
    if part.function_call is not None:
        call = part.function_call
        return Part(function_call={
            "id": call.id,
            "name": call.name,
            "args": dict(call.args or {}),
        })
    if part.function_response is not None:
        response = part.function_response
        return Part(function_response={
            "id": response.id,
            "name": response.name,
            "response": dict(response.response or {}),
        })
    # 其他类型（inline_data 等）无法表示，保留为空Part，由历史校验视为无效
    return Part(text=part.text, thought=part.thought)


def from_genai_content(content: types.Content) -> Content:
    return Content(
        role=content.role or "model",
        parts=[from_genai_part(p) for p in content.parts or []],
    )


def from_genai_response(response: types.GenerateContentResponse) -> GenerateContentResponse:
    candidates = []
    for candidate in response.candidates or []:
        candidates.append(Candidate(
            content=from_genai_content(candidate.content) if candidate.content else None,
            finish_reason=str(candidate.finish_reason) if candidate.finish_reason else None,
        ))

    afc_history = None
    if response.automatic_function_calling_history:
        afc_history = [from_genai_content(c) for c in response.automatic_function_calling_history]

    usage = response.usage_metadata
    return GenerateContentResponse(
        candidates=candidates,
        automatic_function_calling_history=afc_history,
        prompt_token_count=usage.prompt_token_count if usage else None,
        total_token_count=usage.total_token_count if usage else None,
    )


def build_generate_config(config: Optional[Dict[str, Any]]) -> types.GenerateContentConfig:
    """把字典形式的生成配置转换为SDK配置"""
    config = config or {}
    kwargs: Dict[str, Any] = {}

    for key in ("temperature", "top_p", "system_instruction", "response_mime_type"):
        if config.get(key) is not None:
            kwargs[key] = config[key]

    if config.get("response_schema") is not None:
        kwargs["response_json_schema"] = config["response_schema"]

    declarations = config.get("tools")
    if declarations:
        kwargs["tools"] = [types.Tool(function_declarations=[
            types.FunctionDeclaration(
                name=decl["name"],
                description=decl.get("description", ""),
                parameters_json_schema=decl.get("parameters"),
            )
            for decl in declarations
        ])]

    return types.GenerateContentConfig(**kwargs)


class GeminiService(ModelService):
    """
    Gemini 模型服务
    使用 genai.Client 的异步接口（client.aio）
    """

    def __init__(self, config: AgentConfig):
        self.config = config
        api_key = config.get_api_key()
        self.client = genai.Client(
            api_key=api_key or None,
            vertexai=bool(config.get("vertexai")) or None,
            http_options=types.HttpOptions(headers={"User-Agent": config.get("user_agent")}),
        )
        log_info("GeminiService", f"Initialized for model {config.get_model()}")

    async def generate_content(
        self,
        model: str,
        contents: List[Content],
        config: Optional[Dict[str, Any]] = None
    ) -> GenerateContentResponse:
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=[to_genai_content(c) for c in contents],
            config=build_generate_config(config),
        )
        return from_genai_response(response)

    async def generate_content_stream(
        self,
        model: str,
        contents: List[Content],
        config: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[GenerateContentResponse]:
        stream = await self.client.aio.models.generate_content_stream(
            model=model,
            contents=[to_genai_content(c) for c in contents],
            config=build_generate_config(config),
        )

        async def convert():
            async for chunk in stream:
                yield from_genai_response(chunk)

        return convert()

    async def count_tokens(self, model: str, contents: List[Content]) -> Optional[int]:
        response = await self.client.aio.models.count_tokens(
            model=model,
            contents=[to_genai_content(c) for c in contents],
        )
        return response.total_tokens
