"""
监控遥测系统
提供OpenTelemetry追踪与结构化日志
"""

from .tracer import AgentTracer
from .logger import AgentLogger

__all__ = [
    "AgentTracer",
    "AgentLogger"
]
