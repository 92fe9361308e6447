"""
服务层 - 处理外部API调用
"""

from .base import ModelService
from .gemini_service import GeminiService

__all__ = [
    "ModelService",
    "GeminiService",
]
