"""
流式输出组件
- LoadingAnimation: 等待模型回复时的旋转指示器
- StreamDisplay: 流式文本输出，代码块整体高亮
"""

import sys
import threading
from typing import List

from rich.markup import escape
from rich.syntax import Syntax

from rheocode.utils.debug_logger import DebugLogger, log_info

from . import console as console_module
from ..app.config import CLIConfig


class LoadingAnimation:
    """在等待模型回复时显示旋转指示器"""

    def __init__(self):
        self.is_running = False
        self.thread = None
        self._stop_event = threading.Event()

        self.frames = ['⠋', '⠙', '⠹', '⠸', '⠼', '⠴', '⠦', '⠧', '⠇', '⠏']
        self.frame_index = 0

    def start(self):
        if self.is_running or not sys.stdout.isatty():
            return

        console_module.console.show_cursor(False)
        self.is_running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._animate, daemon=True)
        self.thread.start()

    def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        self._stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=0.2)

        # 清除最后的动画字符
        sys.stdout.write("\b \b")
        sys.stdout.flush()
        console_module.console.show_cursor(True)

    def _animate(self):
        while not self._stop_event.is_set():
            sys.stdout.write(self.frames[self.frame_index])
            sys.stdout.flush()
            self.frame_index = (self.frame_index + 1) % len(self.frames)

            if self._stop_event.wait(0.1):
                break

            sys.stdout.write("\b")
            sys.stdout.flush()


class StreamDisplay:
    """
    流式显示控制器
    普通文本逐段输出；代码块缓冲到结束标记后用 Syntax 整体渲染
    """

    LANGUAGE_ALIASES = {
        'py': 'python',
        'python3': 'python',
        'js': 'javascript',
        'ts': 'typescript',
        'sh': 'bash',
        'shell': 'bash',
        'yml': 'yaml',
    }

    def __init__(self, config: CLIConfig, code_theme: str = 'monokai'):
        self.config = config
        self.code_theme = code_theme
        self.is_streaming = False

        self.in_code_block = False
        self.code_language = ""
        self.code_buffer: List[str] = []
        self.pending_content = ""

        self.loading_animation = LoadingAnimation()

    def add_content(self, content: str):
        if not self.is_streaming:
            self.loading_animation.stop()
            self.is_streaming = True
            console_module.console.print("● ", end='')

        self.pending_content += content

        while '\n' in self.pending_content:
            line, self.pending_content = self.pending_content.split('\n', 1)
            self._process_line(line + '\n')

        if not self.in_code_block and self.pending_content:
            console_module.console.print(escape(self.pending_content), end='')
            self.pending_content = ""

    def add_thought(self, thought: str):
        self.loading_animation.stop()
        console_module.console.print(f"[dim italic]{escape(thought)}[/dim italic]")

    def _process_line(self, line: str):
        stripped = line.strip()
        if DebugLogger.should_log("DEBUG"):
            log_info("StreamDisplay", f"Processing line: {line[:50]!r}")

        if stripped.startswith('```') and not self.in_code_block:
            self.code_language = self._normalize_language(stripped[3:].strip())
            self.in_code_block = True
            self.code_buffer = []
            return

        if stripped == '```' and self.in_code_block:
            self.in_code_block = False
            self._render_code_block()
            return

        if self.in_code_block:
            self.code_buffer.append(line.rstrip('\n'))
        else:
            console_module.console.print(escape(line), end='')

    def _normalize_language(self, language: str) -> str:
        lang_lower = language.lower()
        return self.LANGUAGE_ALIASES.get(lang_lower, lang_lower)

    def _render_code_block(self):
        if not self.code_buffer:
            return

        syntax = Syntax(
            '\n'.join(self.code_buffer),
            self.code_language or "text",
            theme=self.code_theme,
            line_numbers=False,
            word_wrap=True
        )
        console_module.console.print()
        console_module.console.print(syntax)
        console_module.console.print()
        self.code_buffer = []
        self.code_language = ""

    def finish(self):
        """结束当前回复的流式显示"""
        self.loading_animation.stop()
        if not self.is_streaming:
            return

        if self.pending_content:
            if self.in_code_block:
                self.code_buffer.append(self.pending_content)
            else:
                console_module.console.print(escape(self.pending_content), end='')
        if self.in_code_block:
            self._render_code_block()

        console_module.console.print()

        self.is_streaming = False
        self.pending_content = ""
        self.in_code_block = False
        self.code_buffer = []
        self.code_language = ""

    def start_loading(self):
        if not self.is_streaming:
            self.loading_animation.start()
