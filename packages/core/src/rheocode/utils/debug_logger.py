"""
调试日志工具
提供精简的DEBUG日志输出，保留关键信息同时减少冗余
级别与详细程度通过环境变量控制：
- RHEOCODE_DEBUG_LEVEL: ERROR / INFO / DEBUG
- RHEOCODE_DEBUG_VERBOSITY: MINIMAL / NORMAL / VERBOSE
"""

import os
from typing import Any, Optional, Dict, List


def get_debug_level() -> str:
    """动态获取当前日志级别"""
    return os.getenv("RHEOCODE_DEBUG_LEVEL", "ERROR").upper()


def get_verbosity() -> str:
    """动态获取当前详细程度"""
    return os.getenv("RHEOCODE_DEBUG_VERBOSITY", "NORMAL").upper()


class DebugLogger:
    """优化的调试日志器"""

    # 定义哪些信息在不同详细程度下显示
    VERBOSITY_RULES = {
        "MINIMAL": {
            "show_raw_chunks": False,
            "show_chunk_details": False,
            "show_history_length": True,
            "show_tool_calls": True,
            "truncate_content": 30,
        },
        "NORMAL": {
            "show_raw_chunks": False,
            "show_chunk_details": True,
            "show_history_length": True,
            "show_tool_calls": True,
            "truncate_content": 50,
        },
        "VERBOSE": {
            "show_raw_chunks": True,
            "show_chunk_details": True,
            "show_history_length": True,
            "show_tool_calls": True,
            "truncate_content": None,  # 不截断
        }
    }

    @classmethod
    def get_rules(cls) -> Dict[str, Any]:
        """获取当前详细程度的规则"""
        return cls.VERBOSITY_RULES.get(get_verbosity(), cls.VERBOSITY_RULES["NORMAL"])

    @classmethod
    def should_log(cls, level: str = "DEBUG") -> bool:
        """判断是否应该记录日志"""
        current = get_debug_level()
        if current == "ERROR" and level != "ERROR":
            return False
        if current in ("INFO", "WARNING") and level == "DEBUG":
            return False
        return True

    @classmethod
    def truncate_content(cls, content: str, max_length: Optional[int] = None) -> str:
        """截断内容到指定长度"""
        if max_length is None:
            max_length = cls.get_rules()["truncate_content"]

        if max_length is None or len(content) <= max_length:
            return content

        return f"{content[:max_length]}..."

    @classmethod
    def log_chat_summary(cls, total_chunks: int, valid_chunks: int, history_length: int):
        """记录一次流式发送的总结"""
        if not cls.should_log("DEBUG"):
            return

        if get_verbosity() == "MINIMAL":
            print(f"[DEBUG Chat] Response: {total_chunks} chunks")
        else:
            print(f"[DEBUG Chat] Response: {valid_chunks}/{total_chunks} valid chunks, "
                  f"history length {history_length}")

    @classmethod
    def log_turn_event(cls, event_type: str, data: Any):
        """记录Turn事件"""
        if not cls.should_log("DEBUG"):
            return

        rules = cls.get_rules()

        if event_type == "chunk_received":
            if rules["show_raw_chunks"]:
                print(f"[DEBUG Turn] Raw chunk: {data}")
            elif rules["show_chunk_details"] and isinstance(data, str):
                print(f"[DEBUG Turn] Text: '{cls.truncate_content(data)}'")

        elif event_type == "tool_request" and rules["show_tool_calls"]:
            tool_name = getattr(data, 'name', 'Unknown')
            print(f"[DEBUG Turn] Tool request: {tool_name}")

        elif event_type == "summary":
            print(f"[DEBUG Turn] Completed: {data} chunks")

    @classmethod
    def log_client_event(cls, event_type: str, data: Any = None):
        """记录Client事件"""
        if not cls.should_log("DEBUG"):
            return

        rules = cls.get_rules()

        if event_type == "tools_found" and rules["show_tool_calls"]:
            print(f"[DEBUG Client] Tools to execute: {data}")

        elif event_type == "history_update" and rules["show_history_length"]:
            print(f"[DEBUG Client] History length: {data}")

        elif event_type == "continuation":
            print(f"[DEBUG Client] Continuing without user input, {data} turns left")

        elif event_type == "compressed":
            print(f"[DEBUG Client] History compressed: {data}")

    @classmethod
    def log_scheduler_event(cls, event_type: str, data: Any):
        """记录Scheduler事件"""
        if not cls.should_log("DEBUG"):
            return

        rules = cls.get_rules()

        if event_type == "execution_start" and rules["show_tool_calls"]:
            print(f"[DEBUG Scheduler] Executing {data} tools")

        elif event_type == "tool_complete":
            tool_name = data.get("name", "Unknown")
            if get_verbosity() == "MINIMAL":
                print(f"[DEBUG Scheduler] ✓ {tool_name}")
            else:
                output = cls.truncate_content(str(data.get("response", "")), 100)
                print(f"[DEBUG Scheduler] {tool_name} returned: {output}")


def summarize_parts(parts: List[Any]) -> str:
    """把Part列表压缩成一行描述，用于日志"""
    kinds = []
    for part in parts:
        if getattr(part, 'function_call', None):
            kinds.append(f"call:{part.function_call.get('name')}")
        elif getattr(part, 'function_response', None):
            kinds.append(f"response:{part.function_response.get('name')}")
        elif getattr(part, 'thought', None):
            kinds.append("thought")
        else:
            kinds.append("text")
    return ", ".join(kinds)


# 便捷函数
def log_error(component: str, error: Exception):
    """记录错误（总是显示）"""
    print(f"[ERROR {component}] {type(error).__name__}: {error}")


def log_info(component: str, message: str):
    """记录信息级别日志"""
    if DebugLogger.should_log("INFO"):
        print(f"[INFO {component}] {message}")
