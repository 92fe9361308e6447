"""
Rich Console封装
全局Console实例和输出配置管理
"""

import os

from rich.console import Console as RichConsole
from rich.theme import Theme


# 简洁的主题（仅5种颜色）
rheo_theme = Theme({
    "default": "default",
    "success": "green",
    "error": "red",
    "warning": "yellow",
    "info": "cyan"
})


def _detect_console_settings(no_color: bool = False):
    settings = {'theme': rheo_theme}
    if no_color or os.environ.get('RHEOCODE_NO_COLOR', '').lower() == 'true' or 'NO_COLOR' in os.environ:
        settings['no_color'] = True
    return settings


console = RichConsole(**_detect_console_settings())


def set_no_color(no_color: bool):
    """设置是否禁用颜色"""
    global console
    console = RichConsole(**_detect_console_settings(no_color))
