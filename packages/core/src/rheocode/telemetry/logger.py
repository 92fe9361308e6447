"""
AgentLogger - 结构化日志系统
配置 rheocode 顶层日志器（各模块的 logging.getLogger(__name__) 都会传播到这里），
支持文本/JSON两种格式，并附带OpenTelemetry的trace_id/span_id
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

from opentelemetry import trace

from ..config.base import AgentConfig

ROOT_LOGGER_NAME = "rheocode"

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'exc_info', 'exc_text', 'stack_info', 'message',
    'taskName', 'service', 'trace_id', 'span_id',
}


class TraceContextFilter(logging.Filter):
    """把当前span的trace_id/span_id写入日志记录"""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = format(span_context.trace_id, "032x")
            record.span_id = format(span_context.span_id, "016x")
        return True


class AgentLogger:
    """
    结构化日志
    - log_level / log_format(text|json) / log_file 来自配置
    - 控制台输出写到 stderr，避免与CLI的流式输出混在一起
    """

    def __init__(self, config: AgentConfig):
        self.config = config
        self.service_name = config.get("service_name", "rheocode")
        self.log_level = str(config.get("log_level", "WARNING")).upper()
        self.log_format = config.get("log_format", "text")

        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        level = getattr(logging, self.log_level, logging.WARNING)
        logger.setLevel(level)

        logger.handlers.clear()

        if self.log_format == "json":
            formatter: logging.Formatter = JsonFormatter(self.service_name)
        else:
            formatter = TextFormatter()

        trace_filter = TraceContextFilter()

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(trace_filter)
        logger.addHandler(console_handler)

        log_file = self.config.get("log_file")
        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(trace_filter)
            logger.addHandler(file_handler)

        return logger

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def _log(self, level: int, message: str, **kwargs):
        extra: Dict[str, Any] = {"service": self.service_name, **kwargs}
        self.logger.log(level, message, extra=extra)


class JsonFormatter(logging.Formatter):
    """JSON格式化器"""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", self.service_name),
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if hasattr(record, 'trace_id'):
            log_entry["trace_id"] = record.trace_id
            log_entry["span_id"] = record.span_id

        # 其他自定义字段
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """文本格式化器 - 人类可读的日志格式"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
