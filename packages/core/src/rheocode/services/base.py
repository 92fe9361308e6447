"""
ModelService - 远程推理服务接口
对话引擎只依赖这个接口：完整生成、流式生成、token计数
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

from ..types.core_types import Content, GenerateContentResponse


class ModelService(ABC):
    """
    远程模型服务
    config 为普通字典，支持的键：
    temperature, top_p, system_instruction, tools（函数声明列表）,
    response_mime_type, response_schema
    """

    @abstractmethod
    async def generate_content(
        self,
        model: str,
        contents: List[Content],
        config: Optional[Dict[str, Any]] = None
    ) -> GenerateContentResponse:
        """一次性生成完整响应"""
        pass

    @abstractmethod
    async def generate_content_stream(
        self,
        model: str,
        contents: List[Content],
        config: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[GenerateContentResponse]:
        """
        发起流式请求
        连接建立后返回一个有限、不可重启的响应块迭代器
        """
        pass

    @abstractmethod
    async def count_tokens(self, model: str, contents: List[Content]) -> Optional[int]:
        """统计contents的token数量，无法确定时返回None"""
        pass
