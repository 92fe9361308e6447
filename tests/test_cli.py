import io

import pytest
from click.testing import CliRunner
from rich.console import Console

from rheocode_cli import __version__
from rheocode_cli.app.cli import RheoCodeCLI
from rheocode_cli.app.config import CLIConfig
from rheocode_cli.main import main
from rheocode_cli.ui import console as console_module
from rheocode_cli.ui.tools import format_args

from conftest import FakeModelService, StatusError, function_call_response, text_response


@pytest.fixture
def output(monkeypatch):
    buffer = io.StringIO()
    monkeypatch.setattr(console_module, "console",
                        Console(file=buffer, theme=console_module.rheo_theme, width=200, color_system=None))
    return buffer


@pytest.fixture
def cli_config(tmp_path, monkeypatch):
    monkeypatch.setenv("RHEOCODE_HISTORY_FILE", str(tmp_path / "history" / "input_history"))
    return CLIConfig()


@pytest.fixture
def make_cli(config, cli_config, make_client):
    async def factory(service=None):
        client = await make_client(service)
        return RheoCodeCLI(cli_config, config, client)
    return factory


async def test_request_streams_reply_to_console(make_cli, output):
    cli = await make_cli(FakeModelService(streams=[[text_response("Hello "), text_response("world")]]))

    await cli.process_request("hi")

    assert "Hello world" in output.getvalue()
    assert cli.signal is None


async def test_run_once_echoes_prompt(make_cli, output):
    cli = await make_cli(FakeModelService(streams=[[text_response("done")]]))

    await cli.run_once("do it")

    text = output.getvalue()
    assert "> do it" in text
    assert "done" in text


async def test_tool_failure_is_shown(make_cli, output):
    service = FakeModelService(streams=[[function_call_response("nope", {"x": 1}, "c1")], [text_response("ok")]])
    cli = await make_cli(service)

    await cli.process_request("go")

    text = output.getvalue()
    assert "→ nope (x=1)" in text
    assert "[nope] Tool 'nope' not found in registry." in text


async def test_error_event_is_shown(make_cli, output):
    cli = await make_cli(FakeModelService(streams=[StatusError(400, "invalid argument")]))

    await cli.process_request("hi")

    assert "invalid argument" in output.getvalue()


async def test_commands(make_cli, output):
    cli = await make_cli(FakeModelService(responses=[text_response("summary")]))
    cli.running = True

    await cli.handle_command("/compress")
    assert "Chat history compressed from" in output.getvalue()
    assert len(cli.client.get_history()) == 2

    await cli.handle_command("/bogus")
    assert "Unknown command: /bogus" in output.getvalue()

    await cli.handle_command("/help")
    assert "/compress" in output.getvalue()

    await cli.handle_command("/quit")
    assert cli.running is False


async def test_compress_command_shows_failure(make_cli, output, config):
    config.set_test_config("token_limit", 100)
    cli = await make_cli(FakeModelService(responses=[StatusError(400, "invalid argument")], token_counts=[10]))

    await cli.handle_command("/compress")

    text = output.getvalue()
    assert "Failed to compress chat history" in text
    assert "invalid argument" in text


def test_cli_config_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("RHEOCODE_HISTORY_FILE", str(tmp_path / "h" / "history"))
    monkeypatch.setenv("RHEOCODE_SHOW_THOUGHTS", "true")
    monkeypatch.setenv("RHEOCODE_MAX_HISTORY", "5")

    config = CLIConfig()

    assert config.show_thoughts is True
    assert config.max_history == 5
    assert (tmp_path / "h").is_dir()

    config.update_runtime("show_tool_details", False)
    assert config.to_dict()["show_tool_details"] is False
    with pytest.raises(ValueError):
        config.update_runtime("missing", 1)


def test_format_args_truncates_long_values():
    assert format_args({"path": "a.py", "content": "x" * 100}, max_length=10) == "path=a.py, content=xxxxxxx..."


def test_version_option():
    result = CliRunner().invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
