#!/usr/bin/env python3
"""
RheoCode CLI 主入口
"""

import asyncio
import logging
import os
import sys
from typing import Optional

import click

from rheocode.config.base import AgentConfig, load_environment
from rheocode.telemetry.logger import AgentLogger
from rheocode.utils.errors import AgentError
from rheocode.utils.debug_logger import DebugLogger, log_info

from . import __version__
from .app.cli import RheoCodeCLI
from .app.config import CLIConfig
from .constants import ENV_VARS, DEFAULTS, DEBUG_LEVEL_RANGE, DEBUG_LEVEL_NAMES
from .ui import console as console_module

# 关闭 httpx 的调试日志
logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_environment():
    """加载 .env，并设置 DebugLogger 的默认级别"""
    env_file = load_environment()
    if ENV_VARS['DEBUG_LEVEL'] not in os.environ:
        os.environ[ENV_VARS['DEBUG_LEVEL']] = DEFAULTS['DEBUG_LEVEL']
    if ENV_VARS['DEBUG_VERBOSITY'] not in os.environ:
        os.environ[ENV_VARS['DEBUG_VERBOSITY']] = DEFAULTS['DEBUG_VERBOSITY']
    if env_file:
        log_info("Main", f"Loaded .env from: {env_file}")


@click.command()
@click.version_option(__version__, prog_name="rheocode")
@click.option('--log',
              is_flag=True,
              help='Write INFO level logs to stderr')
@click.option('--debug',
              type=click.IntRange(*DEBUG_LEVEL_RANGE),
              help='Debug level (0-5)')
@click.option('--no-color',
              is_flag=True,
              help='Disable colored output')
@click.option('--model',
              help='Model to use (e.g. gemini-2.5-pro)')
@click.option('--prompt', '-p',
              help='Run a single request non-interactively and exit')
def main(log: bool,
         debug: Optional[int],
         no_color: bool,
         model: Optional[str],
         prompt: Optional[str]):
    """
    RheoCode - 终端编程助手
    """
    setup_environment()

    # 命令行参数覆盖环境变量
    if debug is not None:
        os.environ[ENV_VARS['DEBUG_LEVEL']] = DEBUG_LEVEL_NAMES[debug]
        if debug >= 4:
            os.environ[ENV_VARS['DEBUG_VERBOSITY']] = 'VERBOSE'
        log_info("Main", f"Debug level set to {debug}")

    agent_config = AgentConfig()
    if model:
        agent_config.set_runtime("model", model)
    if log:
        agent_config.set_runtime("log_level", "INFO")
    AgentLogger(agent_config)

    cli_config = CLIConfig(no_color=no_color)
    console_module.set_no_color(cli_config.no_color)

    try:
        cli = RheoCodeCLI(cli_config, agent_config)
        if prompt:
            asyncio.run(cli.run_once(prompt))
        else:
            asyncio.run(cli.run())
    except KeyboardInterrupt:
        console_module.console.print("\n[warning]Interrupted[/warning]")
        sys.exit(130)
    except AgentError as e:
        console_module.console.print(f"\n[error]Error: {e.message}[/error]")
        if DebugLogger.should_log("DEBUG"):
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
