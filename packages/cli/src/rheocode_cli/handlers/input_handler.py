"""
输入处理器
基于 prompt_toolkit 的异步输入，带持久化输入历史；支持 ``` / <<< 包围的多行输入
"""

from typing import List

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

from rheocode.utils.debug_logger import log_info

from ..app.config import CLIConfig
from ..ui import console as console_module

MULTILINE_MARKERS = ('```', '<<<')


class InputHandler:
    """
    用户输入处理器
    - Ctrl+C 抛出 KeyboardInterrupt，Ctrl+D 抛出 EOFError，由调用方处理
    """

    def __init__(self, config: CLIConfig):
        self.config = config
        self.session: PromptSession = PromptSession(history=FileHistory(config.history_file))
        log_info("InputHandler", f"Input history at {config.history_file}")

    async def get_input(self) -> str:
        first_line = await self.session.prompt_async("> ")

        if first_line.strip() in MULTILINE_MARKERS:
            console_module.console.print("[dim]Multiline mode: finish with ``` or <<< on its own line[/dim]")
            lines: List[str] = []
            while True:
                try:
                    line = await self.session.prompt_async("... ")
                except EOFError:
                    break
                if line.strip() in MULTILINE_MARKERS:
                    break
                lines.append(line)
            return "\n".join(lines)

        return first_line.strip()
