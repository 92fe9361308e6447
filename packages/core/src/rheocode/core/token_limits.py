"""
模型上下文窗口大小
未知模型返回 None，此时不做历史压缩
"""

from typing import Dict, Optional

TOKEN_LIMITS: Dict[str, int] = {
    "gemini-1.5-pro": 2_097_152,
    "gemini-1.5-flash": 1_048_576,
    "gemini-2.5-pro-preview-05-06": 1_048_576,
    "gemini-2.5-pro": 1_048_576,
    "gemini-2.5-flash-preview-05-20": 1_048_576,
    "gemini-2.5-flash": 1_048_576,
    "gemini-2.0-flash": 1_048_576,
    "gemini-2.0-flash-preview-image-generation": 32_000,
}


def token_limit(model: str) -> Optional[int]:
    return TOKEN_LIMITS.get(model)
