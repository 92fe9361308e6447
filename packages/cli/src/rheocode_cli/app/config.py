"""
CLI配置管理
只包含显示和输入相关的设置，引擎配置由 AgentConfig 负责
"""

import os
from dataclasses import dataclass
from typing import Any, Dict

from ..constants import ENV_VARS, DEFAULTS


@dataclass
class CLIConfig:
    """
    CLI专用配置
    - 命令行参数
    - 显示设置
    - 输入历史
    """
    no_color: bool = False

    # 历史记录
    history_file: str = os.path.expanduser(DEFAULTS['HISTORY_FILE'])
    max_history: int = DEFAULTS['MAX_HISTORY']

    show_thoughts: bool = False  # 是否显示模型思考过程
    show_tool_details: bool = True

    def __post_init__(self):
        # 环境变量优先级低于命令行参数
        if ENV_VARS['NO_COLOR'] in os.environ and not self.no_color:
            self.no_color = os.environ[ENV_VARS['NO_COLOR']].lower() == 'true'

        if ENV_VARS['SHOW_THOUGHTS'] in os.environ:
            self.show_thoughts = os.environ[ENV_VARS['SHOW_THOUGHTS']].lower() == 'true'

        if ENV_VARS['MAX_HISTORY'] in os.environ:
            try:
                self.max_history = int(os.environ[ENV_VARS['MAX_HISTORY']])
            except ValueError:
                raise ValueError(
                    f"{ENV_VARS['MAX_HISTORY']} must be an integer, got {os.environ[ENV_VARS['MAX_HISTORY']]!r}"
                )

        if ENV_VARS['HISTORY_FILE'] in os.environ:
            self.history_file = os.path.expanduser(os.environ[ENV_VARS['HISTORY_FILE']])

        history_dir = os.path.dirname(self.history_file)
        if history_dir:
            os.makedirs(history_dir, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'no_color': self.no_color,
            'history_file': self.history_file,
            'max_history': self.max_history,
            'show_thoughts': self.show_thoughts,
            'show_tool_details': self.show_tool_details,
        }

    def update_runtime(self, key: str, value: Any):
        """运行时更新配置"""
        if hasattr(self, key):
            setattr(self, key, value)
        else:
            raise ValueError(f"Unknown configuration key: {key}")
