"""
AgentTracer - 分布式追踪系统
基于OpenTelemetry实现，为发送消息、编排回合和历史压缩提供span
"""

import asyncio
import logging
from typing import Optional, Dict, Any
from functools import wraps
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

from ..config.base import AgentConfig

logger = logging.getLogger(__name__)


class AgentTracer:
    """
    Agent分布式追踪
    - telemetry_enabled 关闭时所有API都是空操作
    - 配置了 otel_exporter_otlp_endpoint 时通过OTLP导出
    - 提供装饰器和上下文管理器API
    """

    def __init__(self, config: AgentConfig):
        self.config = config
        self.service_name = config.get("service_name", "rheocode")
        self.enabled = bool(config.get("telemetry_enabled", False))

        self.tracer = self._setup_tracer() if self.enabled else None

    def _setup_tracer(self):
        """设置OpenTelemetry追踪器"""
        provider = TracerProvider(resource=Resource.create({"service.name": self.service_name}))

        otlp_endpoint = self.config.get("otel_exporter_otlp_endpoint")
        if otlp_endpoint:
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
            logger.info(f"Exporting traces to {otlp_endpoint}")

        trace.set_tracer_provider(provider)
        return trace.get_tracer(self.service_name)

    def trace(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        """追踪装饰器，用于追踪函数执行"""
        def decorator(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                if not self.tracer:
                    return await func(*args, **kwargs)
                with self.tracer.start_as_current_span(name, attributes=attributes):
                    return await func(*args, **kwargs)

            @wraps(func)
            def sync_wrapper(*args, **kwargs):
                if not self.tracer:
                    return func(*args, **kwargs)
                with self.tracer.start_as_current_span(name, attributes=attributes):
                    return func(*args, **kwargs)

            return async_wrapper if asyncio.iscoroutinefunction(func) else sync_wrapper
        return decorator

    @contextmanager
    def span(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        """追踪上下文管理器，用于追踪代码块执行"""
        if not self.tracer:
            yield
            return

        with self.tracer.start_as_current_span(name, attributes=attributes):
            yield

    def add_event(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        """向当前span添加事件"""
        if not self.tracer:
            return
        trace.get_current_span().add_event(name, attributes=attributes)

    def set_attribute(self, key: str, value: Any):
        """设置当前span的属性"""
        if not self.tracer:
            return
        trace.get_current_span().set_attribute(key, value)

    def record_exception(self, exception: BaseException):
        if not self.tracer:
            return
        trace.get_current_span().record_exception(exception)
