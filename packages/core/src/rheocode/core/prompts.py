"""
提示词管理系统 - 分层机制
管理系统提示词、next_speaker判断提示词、历史压缩提示词
"""

import os
import platform
from pathlib import Path
from typing import Optional

from ..config.base import USER_SETTINGS_DIR
from ..utils.errors import ConfigurationError


COMPRESSION_PROMPT = (
    "Summarize our conversation up to this point. The summary should be a concise yet "
    "comprehensive overview of all key topics, questions, answers, and important details "
    "discussed. This summary will replace the current chat history to conserve tokens, so "
    "it must capture everything essential to understand the context and continue our "
    "conversation effectively as if no information was lost."
)

CONTINUE_PROMPT = "Please continue."

ENVIRONMENT_ACK = "Got it. Thanks for the context!"


class PromptManager:
    """
    分层提示词管理
    支持 RHEOCODE_SYSTEM_MD 环境变量覆盖系统提示词：
    - true / 1: 读取 ~/.rheocode/system.md
    - 其他值: 作为文件路径读取
    - false / 0 / 未设置: 使用内置提示词
    """

    def get_core_system_prompt(self, user_memory: Optional[str] = None) -> str:
        system_md_var = os.environ.get('RHEOCODE_SYSTEM_MD', '')
        if system_md_var and system_md_var.lower() not in ['0', 'false']:
            if system_md_var.lower() in ['1', 'true']:
                system_path = Path(self._get_config_dir()) / 'system.md'
            else:
                system_path = Path(system_md_var).expanduser().resolve()

            if not system_path.exists():
                raise ConfigurationError('RHEOCODE_SYSTEM_MD', f"System prompt file not found: {system_path}")
            base_prompt = system_path.read_text(encoding='utf-8')
        else:
            base_prompt = self._get_default_system_prompt()

        system_suffix = f"\n\nSystem: {platform.system()} {platform.release()}"

        # 用户记忆后缀
        memory_suffix = ""
        if user_memory and user_memory.strip():
            memory_suffix = f"\n\n---\n\n{user_memory.strip()}"

        return f"{base_prompt.strip()}{system_suffix}{memory_suffix}"

    def _get_default_system_prompt(self) -> str:
        """默认系统提示词"""
        return """You are an interactive CLI agent specializing in software engineering tasks. Your primary goal is to help users safely and efficiently, adhering strictly to the following instructions and utilizing your available tools.

# Core Mandates
- Conventions: Rigorously adhere to existing project conventions when reading or modifying code. Analyze surrounding code, tests, and configuration first.
- Libraries: Never assume a library is available. Verify its established usage within the project before employing it.
- Comments: Add code comments sparingly. Focus on why something is done, not what is done.
- Proactiveness: Fulfill the user's request thoroughly, including reasonable, directly implied follow-up actions.
- Honesty: Never fabricate tool results. If a tool fails, report the actual error.

# Workflow
1. Understand: Use 'grep', 'list_directory' and 'read_file' to understand file structures and existing code.
2. Plan: Build a grounded plan based on that understanding.
3. Implement: Use 'write_file' and 'run_shell_command' to act on the plan.
4. Verify: Run the project's tests, linters or build commands where available.

# Tone and Style
- Be concise and direct. Use GitHub-flavored Markdown.
- Explain the purpose of commands that modify the file system before running them.
- Always use absolute paths or paths relative to the workspace root when calling file tools."""

    def get_next_speaker_prompt(self) -> str:
        """判断提示词 - 只根据上一条模型回复决定谁接着说话"""
        return """Analyze *only* the content and structure of your immediately preceding response (your last turn in the conversation history). Based *strictly* on that response, determine who should logically speak next: the 'user' or the 'model' (you).
**Decision Rules (apply in order):**
1.  **Model Continues:** If your last response explicitly states an immediate next action *you* intend to take (e.g., "Next, I will...", "Now I'll process...", "Moving on to analyze..."), OR if the response seems clearly incomplete (cut off mid-thought without a natural conclusion), then the **'model'** should speak next.
2.  **Question to User:** If your last response ends with a direct question specifically addressed *to the user*, then the **'user'** should speak next.
3.  **Waiting for User:** If your last response completed a thought, statement, or task *and* does not meet the criteria for Rule 1 or Rule 2, it implies a pause expecting user input or reaction. In this case, the **'user'** should speak next.
**Output Format:**
Respond *only* in JSON format with the fields "reasoning" (a brief explanation) and "next_speaker" ("user" or "model"). Do not include any text outside the JSON structure."""

    def _get_config_dir(self) -> str:
        """获取配置目录"""
        return str(USER_SETTINGS_DIR)
