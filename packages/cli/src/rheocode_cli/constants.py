"""
常量定义
集中管理所有硬编码的值，便于配置和修改
"""

import os


# 环境变量名称
ENV_VARS = {
    'DEBUG_LEVEL': 'RHEOCODE_DEBUG_LEVEL',
    'DEBUG_VERBOSITY': 'RHEOCODE_DEBUG_VERBOSITY',
    'NO_COLOR': 'RHEOCODE_NO_COLOR',
    'SHOW_THOUGHTS': 'RHEOCODE_SHOW_THOUGHTS',
    'MAX_HISTORY': 'RHEOCODE_MAX_HISTORY',
    'HISTORY_FILE': 'RHEOCODE_HISTORY_FILE',
}

# 默认配置值
DEFAULTS = {
    'MAX_HISTORY': 1000,
    'HISTORY_FILE': '~/.rheocode/input_history',
    'DEBUG_LEVEL': 'ERROR',  # 默认只显示错误
    'DEBUG_VERBOSITY': 'MINIMAL'
}

# 命令定义
COMMANDS = {
    'EXIT': ['/exit', '/quit'],
    'HELP': ['/help'],
    'CLEAR': ['/clear'],
    'COMPRESS': ['/compress'],
}

COMMAND_HELP = {
    '/help': 'Show this help',
    '/clear': 'Start a new conversation',
    '/compress': 'Summarize the conversation to free up context',
    '/exit, /quit': 'Exit',
}

# 系统命令（跨平台）
SYSTEM_COMMANDS = {
    'CLEAR': 'clear' if os.name == 'posix' else 'cls'
}

# 调试级别范围
DEBUG_LEVEL_RANGE = (0, 5)

# 调试级别 → DebugLogger 级别名
DEBUG_LEVEL_NAMES = {0: 'ERROR', 1: 'WARNING', 2: 'INFO', 3: 'DEBUG', 4: 'DEBUG', 5: 'DEBUG'}
