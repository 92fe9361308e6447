"""
ShellTool - Shell命令执行工具
在工作区内执行命令，支持超时与中止信号，返回stdout/stderr与退出码
"""

import asyncio
import platform
import time
from pathlib import Path
from typing import Dict, Any, Optional

from ..types.tool_types import ToolResult
from ..types.core_types import AbortSignal
from .base import Tool, resolve_workspace_path, is_within_workspace
from ..config.base import AgentConfig
from ..utils.debug_logger import log_info


class ShellTool(Tool):
    """
    Shell命令执行工具
    - Windows 使用 cmd.exe /c，其他平台使用 bash -c
    - 超时或中止时先 terminate，2秒后仍未退出则 kill
    - 输出超过上限时保留首尾
    """

    MAX_OUTPUT_SIZE = 1024 * 1024
    POLL_INTERVAL = 0.1

    def __init__(self, config: AgentConfig):
        super().__init__(
            name="run_shell_command",
            display_name="Shell",
            description="Executes a shell command (bash -c on Unix, cmd.exe /c on Windows) and returns stdout, stderr and the exit code. Supports pipes, redirects and chained commands.",
            parameter_schema={
                "type": "object",
                "properties": {
                    "command": {
                        "type": "string",
                        "description": "Exact command to execute"
                    },
                    "directory": {
                        "type": "string",
                        "description": "Directory to run the command in, relative to the workspace root"
                    },
                    "description": {
                        "type": "string",
                        "description": "Brief description of the command for the user"
                    }
                },
                "required": ["command"]
            },
            is_output_markdown=True,
            can_update_output=True
        )
        self.config = config
        self.root = config.get_working_dir()
        self.timeout = float(config.get("shell_timeout", 120))

    def validate_tool_params(self, params: Dict[str, Any]) -> Optional[str]:
        command = (params.get("command") or "").strip()
        if not command:
            return "Command cannot be empty."
        directory = params.get("directory")
        if directory:
            if Path(directory).is_absolute():
                return "Directory cannot be absolute. Must be relative to the workspace root."
            target = resolve_workspace_path(self.root, directory)
            if not is_within_workspace(self.root, target):
                return f"Directory must be within the workspace root: {directory}"
            if not target.is_dir():
                return f"Directory does not exist: {directory}"
        return None

    def get_description(self, params: Dict[str, Any]) -> str:
        description = params.get("command", "")
        if params.get("directory"):
            description += f" [in {params['directory']}]"
        if params.get("description"):
            description += f" ({params['description']})"
        return description

    async def execute(
        self,
        params: Dict[str, Any],
        signal: AbortSignal,
        update_output: Optional[Any] = None
    ) -> ToolResult:
        error = self.validate_tool_params(params)
        if error:
            return ToolResult(error=error, llm_content=f"Error: {error}")

        command = params["command"].strip()
        cwd = resolve_workspace_path(self.root, params.get("directory") or ".")

        if signal is not None and signal.aborted:
            return ToolResult(error="Command was cancelled by user before it could start.")

        if update_output:
            update_output(f"$ {command}")

        if platform.system() == "Windows":
            cmd_args = ["cmd.exe", "/c", command]
        else:
            cmd_args = ["bash", "-c", command]

        start_time = time.time()
        process = await asyncio.create_subprocess_exec(
            *cmd_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=str(cwd)
        )
        communicate = asyncio.ensure_future(process.communicate())

        outcome = "exited"
        while not communicate.done():
            if signal is not None and signal.aborted:
                outcome = "aborted"
                break
            if time.time() - start_time > self.timeout:
                outcome = "timeout"
                break
            await asyncio.wait({communicate}, timeout=self.POLL_INTERVAL)

        if outcome != "exited":
            await self._terminate(process)
        stdout_bytes, stderr_bytes = await communicate

        stdout = self._truncate(stdout_bytes.decode("utf-8", errors="replace"))
        stderr = self._truncate(stderr_bytes.decode("utf-8", errors="replace"))
        duration = time.time() - start_time
        log_info("ShellTool", f"'{command}' finished ({outcome}) in {duration:.2f}s")

        llm_content = "\n".join([
            f"Command: {command}",
            f"Directory: {params.get('directory') or '(root)'}",
            f"Stdout: {stdout or '(empty)'}",
            f"Stderr: {stderr or '(empty)'}",
            f"Exit Code: {process.returncode}",
        ])

        if outcome == "aborted":
            return ToolResult(
                error="Command was cancelled by user.",
                llm_content=llm_content,
                return_display="Command was cancelled by user."
            )
        if outcome == "timeout":
            return ToolResult(
                error=f"Command timed out after {self.timeout:.0f}s.",
                llm_content=llm_content,
                return_display=f"Command timed out after {self.timeout:.0f}s."
            )

        display = stdout or stderr or "(no output)"
        if process.returncode != 0:
            return ToolResult(
                summary=f"Command failed (exit code {process.returncode})",
                llm_content=llm_content,
                return_display=display,
                error=stderr.strip() or f"Command failed with exit code {process.returncode}"
            )

        return ToolResult(
            summary="Command succeeded",
            llm_content=llm_content,
            return_display=display
        )

    async def _terminate(self, process):
        if process.returncode is not None:
            return
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=2.0)
        except asyncio.TimeoutError:
            process.kill()

    def _truncate(self, output: str) -> str:
        if len(output) <= self.MAX_OUTPUT_SIZE:
            return output
        keep = self.MAX_OUTPUT_SIZE // 2
        omitted = output[keep:-keep].count("\n") + 1
        return f"{output[:keep]}\n\n... [{omitted} lines omitted] ...\n\n{output[-keep:]}"
