"""
配置系统 - 分层配置（运行时 / 环境变量 / settings.yaml / 默认值）
"""

from .base import AgentConfig, ConfigSource, load_environment
from .test_config import TestConfig

__all__ = [
    "AgentConfig",
    "ConfigSource",
    "TestConfig",
    "load_environment",
]
