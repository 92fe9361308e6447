"""
自定义异常类 - 提供结构化的错误处理
定义对话引擎、工具与配置相关的异常类型
"""

from typing import Optional, Dict, Any


class AgentError(Exception):
    """Agent基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class AbortError(AgentError):
    """操作被中止信号取消 - 不重试、不包装"""

    def __init__(self, message: str = "Operation was aborted", **kwargs):
        super().__init__(message, error_code="aborted", **kwargs)


class ApiCallError(AgentError):
    """远程模型调用失败（重试耗尽或不可重试）"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        original_error: Optional[Exception] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.status = status
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "status": self.status,
            "original_error": str(self.original_error) if self.original_error else None
        })
        return result


class EmptyResponseError(ApiCallError):
    """模型返回了空响应，没有可用的值"""


class ToolExecutionError(AgentError):
    """工具执行异常"""

    def __init__(
        self,
        tool_name: str,
        message: str,
        original_error: Optional[Exception] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.tool_name = tool_name
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "tool_name": self.tool_name,
            "original_error": str(self.original_error) if self.original_error else None
        })
        return result


class ValidationError(AgentError):
    """参数/数据验证异常"""

    def __init__(
        self,
        field_name: str,
        message: str,
        invalid_value: Any = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.invalid_value = invalid_value

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "field_name": self.field_name,
            "invalid_value": self.invalid_value
        })
        return result


class ConfigurationError(AgentError):
    """配置异常"""

    def __init__(
        self,
        config_key: str,
        message: str,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "config_key": self.config_key
        })
        return result


def get_error_status(error: BaseException) -> Optional[int]:
    """从各种异常对象上提取HTTP状态码"""
    for attr in ('status', 'code', 'status_code'):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, 'response', None)
    if response is not None:
        value = getattr(response, 'status_code', None) or getattr(response, 'status', None)
        if isinstance(value, int):
            return value
    return None


def get_error_message(error: BaseException) -> str:
    """面向用户的错误描述"""
    message = str(error)
    return message if message else error.__class__.__name__
