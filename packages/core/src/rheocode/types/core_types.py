"""
核心类型定义
对话中的Part/Content、模型响应以及中止信号
"""

import asyncio
from typing import Union, Optional, Dict, List, Any
from dataclasses import dataclass, field
from abc import ABC, abstractmethod


@dataclass
class Part:
    """
    对话中的最小内容单元
    text、function_call、function_response 三者择一；
    thought=True 表示这是一段思考过程，文本放在 text 中
    """
    text: Optional[str] = None
    thought: Optional[bool] = None
    function_call: Optional[Dict[str, Any]] = None      # {id, name, args}
    function_response: Optional[Dict[str, Any]] = None  # {id, name, response}

    def is_empty(self) -> bool:
        """没有任何字段的Part视为空"""
        return (
            self.text is None
            and self.thought is None
            and self.function_call is None
            and self.function_response is None
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.text is not None:
            data["text"] = self.text
        if self.thought is not None:
            data["thought"] = self.thought
        if self.function_call is not None:
            data["function_call"] = _copy_value(self.function_call)
        if self.function_response is not None:
            data["function_response"] = _copy_value(self.function_response)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Part":
        return cls(
            text=data.get("text"),
            thought=data.get("thought"),
            function_call=_copy_value(data.get("function_call")),
            function_response=_copy_value(data.get("function_response")),
        )

    def copy(self) -> "Part":
        return Part.from_dict(self.to_dict())


PartListUnion = Union[str, Part, List[Part], List[str]]


@dataclass
class Content:
    """一个带角色的对话回合：role 为 'user' 或 'model'"""
    role: str
    parts: List[Part] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [part.to_dict() for part in self.parts]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Content":
        return cls(
            role=data.get("role", ""),
            parts=[Part.from_dict(p) for p in data.get("parts") or []],
        )

    def copy(self) -> "Content":
        """值拷贝，调用方拿到的对象与内部存储互不影响"""
        return Content.from_dict(self.to_dict())


def _copy_value(value: Any) -> Any:
    """递归复制 dict/list 结构（函数调用参数等）"""
    if isinstance(value, dict):
        return {k: _copy_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_copy_value(v) for v in value]
    return value


def to_parts(message: PartListUnion) -> List[Part]:
    """将字符串/Part/列表统一转换为Part列表（每个元素都是新对象）"""
    if isinstance(message, str):
        return [Part(text=message)]
    if isinstance(message, Part):
        return [message.copy()]
    parts = []
    for item in message:
        if isinstance(item, str):
            parts.append(Part(text=item))
        else:
            parts.append(item.copy())
    return parts


def create_user_content(message: PartListUnion) -> Content:
    """构建用户回合"""
    return Content(role="user", parts=to_parts(message))


@dataclass
class Candidate:
    """模型返回的候选结果"""
    content: Optional[Content] = None
    finish_reason: Optional[str] = None


@dataclass
class GenerateContentResponse:
    """
    模型响应（完整响应或流式响应中的一个块）
    automatic_function_calling_history: 服务端自动执行工具时返回的交互记录
    """
    candidates: List[Candidate] = field(default_factory=list)
    automatic_function_calling_history: Optional[List[Content]] = None
    prompt_token_count: Optional[int] = None
    total_token_count: Optional[int] = None

    @property
    def text(self) -> str:
        """拼接第一个候选中的非思考文本"""
        content = self.first_content()
        if content is None:
            return ""
        return "".join(
            part.text for part in content.parts
            if part.text and not part.thought
        )

    @property
    def function_calls(self) -> List[Dict[str, Any]]:
        content = self.first_content()
        if content is None:
            return []
        return [part.function_call for part in content.parts if part.function_call]

    def first_content(self) -> Optional[Content]:
        if not self.candidates:
            return None
        return self.candidates[0].content


class AbortSignal(ABC):
    """
    中止信号接口
    用于取消长时间运行的操作（一次顶层请求共用一个信号）
    """

    @property
    @abstractmethod
    def aborted(self) -> bool:
        """是否已中止"""
        pass

    @abstractmethod
    def abort(self):
        """中止操作"""
        pass


class SimpleAbortSignal(AbortSignal):
    """简单的中止信号实现，额外提供可等待的事件"""

    def __init__(self):
        self._aborted = False
        self._event: Optional[asyncio.Event] = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self):
        self._aborted = True
        if self._event is not None:
            self._event.set()

    async def wait(self):
        """等待信号被触发"""
        if self._event is None:
            self._event = asyncio.Event()
            if self._aborted:
                self._event.set()
        await self._event.wait()

    def reset(self):
        """重置中止状态"""
        self._aborted = False
        if self._event is not None:
            self._event.clear()
