"""
RheoCode CLI 主类
- 交互式 REPL：读取输入 → 驱动 AgentClient 事件流 → 渲染
- 单次模式：执行一个请求后退出
"""

import asyncio
import os
import signal
from typing import Dict, Optional

from rheocode.config.base import AgentConfig
from rheocode.core.client import AgentClient
from rheocode.core.compression import try_compress_chat
from rheocode.types.core_types import SimpleAbortSignal
from rheocode.types.event_types import AgentEvent, AgentEventType
from rheocode.utils.errors import AgentError
from rheocode.utils.debug_logger import log_info, log_error

from .config import CLIConfig
from ..constants import COMMANDS, COMMAND_HELP, SYSTEM_COMMANDS
from ..handlers.input_handler import InputHandler
from ..ui import console as console_module
from ..ui.messages import show_error_message, show_system_message, show_user_message, show_warning_message
from ..ui.streaming import StreamDisplay
from ..ui.tools import show_tool_error, show_tool_request, show_tool_result, show_tool_status


class RheoCodeCLI:
    """
    CLI主类
    Ctrl+C 在请求执行期间只中止当前请求；在输入阶段退出
    """

    def __init__(self, config: CLIConfig, agent_config: AgentConfig, client: Optional[AgentClient] = None):
        self.config = config
        self.agent_config = agent_config
        self.client = client or AgentClient(agent_config)
        self.display = StreamDisplay(config)
        self.running = False
        self.signal: Optional[SimpleAbortSignal] = None
        self._tool_names: Dict[str, str] = {}

    async def initialize(self):
        if self.client.chat is None:
            await self.client.initialize()
        log_info("CLI", f"Chat initialized with model {self.client.model}")

    async def run(self):
        """交互主循环"""
        await self.initialize()
        input_handler = InputHandler(self.config)
        self.running = True
        show_system_message(f"Model: {self.client.model}. Type /help for commands.")

        while self.running:
            try:
                user_input = await input_handler.get_input()
            except (KeyboardInterrupt, EOFError):
                break

            if not user_input:
                continue
            if user_input.startswith('/'):
                await self.handle_command(user_input)
                continue

            await self.process_request(user_input)

        show_system_message("Goodbye")

    async def run_once(self, prompt: str):
        """非交互模式：执行一次请求"""
        await self.initialize()
        show_user_message(prompt)
        await self.process_request(prompt)

    async def handle_command(self, command: str):
        name = command.split()[0].lower()

        if name in COMMANDS['EXIT']:
            self.running = False
        elif name in COMMANDS['HELP']:
            for cmd, description in COMMAND_HELP.items():
                console_module.console.print(f"  [info]{cmd}[/info]  {description}")
        elif name in COMMANDS['CLEAR']:
            os.system(SYSTEM_COMMANDS['CLEAR'])
            await self.client.reset_chat()
            show_system_message("Started a new conversation")
        elif name in COMMANDS['COMPRESS']:
            try:
                info = await try_compress_chat(self.client, force=True)
            except AgentError as e:
                log_error("CLI", e)
                show_error_message(e.message)
                return
            if info is None:
                show_system_message("Nothing to compress")
            else:
                self._show_compressed(info)
        else:
            show_warning_message(f"Unknown command: {name}. Type /help for commands.")

    async def process_request(self, text: str):
        """发送一次请求并渲染事件流，Ctrl+C 中止当前请求"""
        self.signal = SimpleAbortSignal()
        loop = asyncio.get_running_loop()

        def on_interrupt(signum, frame):
            log_info("CLI", f"Signal {signum} received, aborting request")
            loop.call_soon_threadsafe(self.signal.abort)

        previous_handler = signal.signal(signal.SIGINT, on_interrupt)
        self.display.start_loading()
        try:
            async for event in self.client.send_message_stream(text, self.signal):
                self.handle_event(event)
        except AgentError as e:
            log_error("CLI", e)
            self.display.finish()
            show_error_message(e.message)
        finally:
            signal.signal(signal.SIGINT, previous_handler)
            self.display.finish()
            self.signal = None

    def handle_event(self, event: AgentEvent):
        if event.type == AgentEventType.CONTENT:
            self.display.add_content(event.value)

        elif event.type == AgentEventType.THOUGHT:
            if self.config.show_thoughts:
                self.display.add_thought(event.value)

        elif event.type == AgentEventType.TOOL_CALL_REQUEST:
            self.display.finish()
            request = event.value
            self._tool_names[request.call_id] = request.name
            show_tool_request(request.name, request.args)

        elif event.type == AgentEventType.TOOL_CALL_RESPONSE:
            response = event.value
            tool_name = self._tool_names.pop(response.call_id, response.call_id)
            if response.error is not None:
                show_tool_error(tool_name, str(response.error))
            else:
                show_tool_status(tool_name, 'success')
                if self.config.show_tool_details:
                    show_tool_result(response.result_display)
            self.display.start_loading()

        elif event.type == AgentEventType.CHAT_COMPRESSED:
            self._show_compressed(event.value)

        elif event.type == AgentEventType.USER_CANCELLED:
            self.display.finish()
            show_warning_message("Request cancelled")

        elif event.type == AgentEventType.ERROR:
            self.display.finish()
            show_error_message(event.value.get("message", "Unknown error"))

    def _show_compressed(self, info):
        if info is None:
            return
        new_count = info.new_token_count if info.new_token_count is not None else "?"
        show_system_message(f"Chat history compressed from {info.original_token_count} to {new_count} tokens")
