"""
AgentConfig - 分层配置系统
优先级从高到低：运行时覆盖 → 环境变量 → 工作区settings.yaml → 用户settings.yaml → 默认值
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from ..utils.errors import ConfigurationError

SETTINGS_DIRECTORY_NAME = ".rheocode"
SETTINGS_FILE_NAME = "settings.yaml"
USER_SETTINGS_DIR = Path.home() / SETTINGS_DIRECTORY_NAME

DEFAULTS: Dict[str, Any] = {
    "model": "gemini-2.5-flash",
    "api_key": None,
    "vertexai": False,
    "user_agent": "RheoCode/1.0.0",
    "max_session_turns": 100,
    "token_limit": None,
    "compression_threshold": 0.95,
    "temperature": 0.0,
    "top_p": 1.0,
    "core_tools": None,
    "working_dir": None,
    "full_context": False,
    "log_level": "WARNING",
    "log_format": "text",
    "log_file": None,
    "service_name": "rheocode",
    "telemetry_enabled": False,
    "otel_exporter_otlp_endpoint": None,
    "retry_max_attempts": 5,
    "retry_initial_delay_ms": 5000,
    "retry_max_delay_ms": 30000,
    "shell_timeout": 120,
}

# 配置键 → 环境变量
ENV_KEYS: Dict[str, List[str]] = {
    "model": ["RHEOCODE_MODEL", "GEMINI_MODEL"],
    "api_key": ["RHEOCODE_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"],
    "vertexai": ["RHEOCODE_VERTEXAI", "GOOGLE_GENAI_USE_VERTEXAI"],
    "max_session_turns": ["RHEOCODE_MAX_SESSION_TURNS"],
    "token_limit": ["RHEOCODE_TOKEN_LIMIT"],
    "compression_threshold": ["RHEOCODE_COMPRESSION_THRESHOLD"],
    "core_tools": ["RHEOCODE_CORE_TOOLS"],
    "full_context": ["RHEOCODE_FULL_CONTEXT"],
    "log_level": ["RHEOCODE_LOG_LEVEL"],
    "log_format": ["RHEOCODE_LOG_FORMAT"],
    "log_file": ["RHEOCODE_LOG_FILE"],
    "telemetry_enabled": ["RHEOCODE_TELEMETRY_ENABLED"],
    "otel_exporter_otlp_endpoint": ["OTEL_EXPORTER_OTLP_ENDPOINT"],
    "retry_max_attempts": ["RHEOCODE_RETRY_MAX_ATTEMPTS"],
    "shell_timeout": ["RHEOCODE_SHELL_TIMEOUT"],
}

_INT_KEYS = {"max_session_turns", "token_limit", "retry_max_attempts",
             "retry_initial_delay_ms", "retry_max_delay_ms", "shell_timeout"}
_FLOAT_KEYS = {"compression_threshold", "temperature", "top_p"}
_BOOL_KEYS = {"vertexai", "full_context", "telemetry_enabled"}
_LIST_KEYS = {"core_tools"}


def coerce_value(key: str, value: Any) -> Any:
    """把字符串形式的配置值（环境变量、YAML）转换为目标类型"""
    if value is None or not isinstance(value, str):
        return value
    try:
        if key in _INT_KEYS:
            return int(value)
        if key in _FLOAT_KEYS:
            return float(value)
    except ValueError as e:
        raise ConfigurationError(key, f"Invalid value for {key}: {value!r}") from e
    if key in _BOOL_KEYS:
        return value.strip().lower() in ("1", "true", "yes", "on")
    if key in _LIST_KEYS:
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class ConfigSource(ABC):
    """配置源接口"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def get_all(self) -> Dict[str, Any]:
        pass


class RuntimeConfigSource(ConfigSource):
    """运行时覆盖（命令行参数等）"""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def set(self, key: str, value: Any):
        self._values[key] = value

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def get_all(self) -> Dict[str, Any]:
        return self._values.copy()


class EnvironmentConfigSource(ConfigSource):
    """环境变量配置源"""

    def get(self, key: str) -> Optional[Any]:
        for env_name in ENV_KEYS.get(key, []):
            value = os.environ.get(env_name)
            if value:
                return coerce_value(key, value)
        return None

    def get_all(self) -> Dict[str, Any]:
        values = {}
        for key in ENV_KEYS:
            value = self.get(key)
            if value is not None:
                values[key] = value
        return values


class FileConfigSource(ConfigSource):
    """YAML 配置文件"""

    def __init__(self, path: Path):
        self.path = path
        self._values = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(str(self.path), f"Invalid settings file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(str(self.path), f"Settings file {self.path} must contain a mapping")
        return {key: coerce_value(key, value) for key, value in data.items()}

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def get_all(self) -> Dict[str, Any]:
        return self._values.copy()


class DefaultConfigSource(ConfigSource):
    """内置默认值"""

    def get(self, key: str) -> Optional[Any]:
        return DEFAULTS.get(key)

    def get_all(self) -> Dict[str, Any]:
        return DEFAULTS.copy()


def find_env_file(start_dir: Path) -> Optional[Path]:
    """
    向上查找 .env 文件，优先 .rheocode/.env；找不到时回退到用户主目录
    """
    current = start_dir.resolve()
    while True:
        for candidate in (current / SETTINGS_DIRECTORY_NAME / ".env", current / ".env"):
            if candidate.exists():
                return candidate
        if current.parent == current:
            break
        current = current.parent

    for candidate in (USER_SETTINGS_DIR / ".env", Path.home() / ".env"):
        if candidate.exists():
            return candidate
    return None


def load_environment(start_dir: Optional[Path] = None) -> Optional[Path]:
    """加载 .env（不覆盖已经存在的环境变量）"""
    env_file = find_env_file(start_dir or Path.cwd())
    if env_file:
        load_dotenv(env_file, override=False)
    return env_file


class AgentConfig:
    """
    Agent配置
    - 分层读取，越靠前的配置源优先级越高
    - 支持运行时覆盖
    """

    def __init__(self, workspace_root: Optional[Path] = None, user_settings_dir: Optional[Path] = None):
        self.workspace_root = Path(workspace_root or Path.cwd()).resolve()
        user_dir = user_settings_dir or USER_SETTINGS_DIR
        self._runtime = RuntimeConfigSource()

        self.config_sources: List[ConfigSource] = [
            self._runtime,
            EnvironmentConfigSource(),
            FileConfigSource(self.workspace_root / SETTINGS_DIRECTORY_NAME / SETTINGS_FILE_NAME),
            FileConfigSource(user_dir / SETTINGS_FILE_NAME),
            DefaultConfigSource(),
        ]

    def get(self, key: str, default: Any = None) -> Any:
        """按优先级读取配置"""
        for source in self.config_sources:
            value = source.get(key)
            if value is not None:
                return value
        return default

    def set_runtime(self, key: str, value: Any):
        """运行时覆盖配置（例如命令行 --model）"""
        self._runtime.set(key, value)

    def get_all(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for source in reversed(self.config_sources):
            merged.update({k: v for k, v in source.get_all().items() if v is not None})
        return merged

    def get_model(self) -> str:
        return self.get("model")

    def get_api_key(self) -> Optional[str]:
        return self.get("api_key")

    def get_working_dir(self) -> str:
        return str(self.get("working_dir") or self.workspace_root)

    def get_max_session_turns(self) -> int:
        return int(self.get("max_session_turns"))

    def get_core_tools(self) -> Optional[List[str]]:
        return self.get("core_tools")
