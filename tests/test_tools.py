import pytest

from rheocode.tools.directory_list_tool import DirectoryListTool
from rheocode.tools.file_read_tool import FileReadTool
from rheocode.tools.file_write_tool import FileWriteTool
from rheocode.tools.grep_tool import GrepTool
from rheocode.tools.registry import ToolCapability, ToolRegistry
from rheocode.tools.shell_tool import ShellTool
from rheocode.tools.web_fetch_tool import WebFetchTool
from rheocode.types.core_types import SimpleAbortSignal


@pytest.fixture
def signal():
    return SimpleAbortSignal()


@pytest.fixture
def project(workspace):
    (workspace / "src").mkdir()
    (workspace / "src" / "app.py").write_text("def foo():\n    return 1\n\ndef bar():\n    pass\n", encoding="utf-8")
    (workspace / "README.md").write_text("# demo\ncall foo() here\n", encoding="utf-8")
    (workspace / "notes.txt").write_text("def not_python\n", encoding="utf-8")
    (workspace / ".env").write_text("SECRET=1\n", encoding="utf-8")
    return workspace


async def test_list_directory_puts_directories_first(config, project, signal):
    result = await DirectoryListTool(config).execute({"path": "."}, signal)

    assert result.error is None
    assert result.return_display == "[DIR] src\nnotes.txt\nREADME.md"
    assert ".env" not in result.llm_content


async def test_list_directory_ignore_and_hidden(config, project, signal):
    tool = DirectoryListTool(config)

    result = await tool.execute({"path": ".", "ignore": ["*.md"], "show_hidden": True}, signal)

    lines = result.return_display.splitlines()
    assert "README.md" not in lines
    assert ".env" in lines
    assert "[DIR] .git" in lines


async def test_list_directory_rejects_paths_outside_workspace(config, project, signal):
    tool = DirectoryListTool(config)

    assert tool.validate_tool_params({"path": ".."}) is not None
    result = await tool.execute({"path": "missing"}, signal)
    assert "not found" in result.error


async def test_read_file_pages_with_truncation_header(config, workspace, signal):
    (workspace / "lines.txt").write_text("".join(f"line{i}\n" for i in range(1, 6)), encoding="utf-8")

    result = await FileReadTool(config).execute({"path": "lines.txt", "offset": 1, "limit": 2}, signal)

    assert result.error is None
    assert result.llm_content.startswith("[File content truncated: showing lines 2-3 of 5 total lines")
    assert result.llm_content.endswith("line2\nline3\n")


async def test_read_file_whole_file_has_no_header(config, workspace, signal):
    (workspace / "small.txt").write_text("only\n", encoding="utf-8")

    result = await FileReadTool(config).execute({"path": "small.txt"}, signal)

    assert result.llm_content == "only\n"


async def test_read_file_rejects_binary_and_negative_offset(config, workspace, signal):
    (workspace / "blob.bin").write_bytes(b"\x00\x01\x02")
    tool = FileReadTool(config)

    result = await tool.execute({"path": "blob.bin"}, signal)
    assert "binary" in result.error

    assert tool.validate_tool_params({"path": "blob.bin", "offset": -1}) is not None
    assert tool.validate_tool_params({"path": "/etc/passwd"}) is not None


async def test_write_file_modes(config, workspace, signal):
    tool = FileWriteTool(config)
    target = workspace / "out" / "result.txt"

    created = await tool.execute({"path": "out/result.txt", "content": "a\n"}, signal)
    assert created.error is None
    assert created.summary == "Created result.txt"
    assert created.llm_content.startswith("Successfully wrote 2 characters to")

    await tool.execute({"path": "out/result.txt", "content": "b\n", "mode": "append"}, signal)
    assert target.read_text(encoding="utf-8") == "a\nb\n"

    again = await tool.execute({"path": "out/result.txt", "content": "c\n", "mode": "create_new"}, signal)
    assert "File already exists" in again.error
    assert target.read_text(encoding="utf-8") == "a\nb\n"

    replaced = await tool.execute({"path": "out/result.txt", "content": "c\n"}, signal)
    assert "-a" in replaced.return_display and "+c" in replaced.return_display
    assert target.read_text(encoding="utf-8") == "c\n"


def test_write_file_validation(config):
    tool = FileWriteTool(config)

    assert tool.validate_tool_params({"path": "x"}) == "Missing required parameter: content"
    assert "Invalid mode" in tool.validate_tool_params({"path": "x", "content": "", "mode": "prepend"})
    assert tool.validate_tool_params({"path": "../x", "content": ""}) is not None
    assert tool.validate_tool_params({"path": "x", "content": ""}) is None


async def test_grep_groups_matches_by_file(config, project, signal):
    result = await GrepTool(config).execute({"pattern": r"def \w+", "include": "*.py"}, signal)

    assert result.summary == "Found 2 matches"
    lines = result.llm_content.split("\n---\n")[1].splitlines()
    assert lines == ["File: src/app.py", "L1: def foo():", "L4: def bar():"]


async def test_grep_no_matches_and_invalid_pattern(config, project, signal):
    tool = GrepTool(config)

    result = await tool.execute({"pattern": "zzz_never"}, signal)
    assert result.error is None
    assert result.llm_content.startswith("No matches found")

    assert "Invalid regular expression" in tool.validate_tool_params({"pattern": "("})


async def test_grep_skips_hidden_directories(config, project, signal):
    (project / ".git" / "config").write_text("def hidden\n", encoding="utf-8")

    result = await GrepTool(config).execute({"pattern": "def hidden"}, signal)

    assert result.llm_content.startswith("No matches found")


async def test_shell_success_and_failure(config, workspace, signal):
    tool = ShellTool(config)

    ok = await tool.execute({"command": "echo hello"}, signal)
    assert ok.error is None
    assert "Stdout: hello" in ok.llm_content
    assert "Exit Code: 0" in ok.llm_content

    failed = await tool.execute({"command": "exit 3"}, signal)
    assert failed.error == "Command failed with exit code 3"
    assert "Exit Code: 3" in failed.llm_content


async def test_shell_runs_in_relative_directory(config, project, signal):
    result = await ShellTool(config).execute({"command": "ls", "directory": "src"}, signal)

    assert "app.py" in result.return_display


async def test_shell_validation_and_pre_abort(config, workspace, signal):
    tool = ShellTool(config)

    assert tool.validate_tool_params({"command": "  "}) == "Command cannot be empty."
    assert "absolute" in tool.validate_tool_params({"command": "ls", "directory": str(workspace)})
    assert "does not exist" in tool.validate_tool_params({"command": "ls", "directory": "nope"})

    signal.abort()
    result = await tool.execute({"command": "echo never"}, signal)
    assert "cancelled" in result.error


async def test_shell_timeout_terminates_process(config, workspace, signal):
    config.set_test_config("shell_timeout", 0.2)

    result = await ShellTool(config).execute({"command": "sleep 5"}, signal)

    assert result.error.startswith("Command timed out")


def test_web_fetch_requires_url(config):
    tool = WebFetchTool(config)

    assert tool.validate_tool_params({"prompt": "summarize this"}) is not None
    assert tool.validate_tool_params({"prompt": "summarize https://example.com/page."}) is None
    assert tool._extract_urls("see https://a.dev, and https://a.dev again") == ["https://a.dev"]


def test_web_fetch_html_to_text(config):
    html = "<html><head><style>p{}</style></head><body><h1>Title</h1><script>x()</script><p>Body</p></body></html>"

    assert WebFetchTool(config)._html_to_text(html) == "Title\nBody"


def test_registry_orders_core_tools_by_priority(config):
    registry = ToolRegistry(config)

    names = [d["name"] for d in registry.get_function_declarations()]
    assert names == ["list_directory", "read_file", "write_file", "grep", "run_shell_command", "web_fetch"]
    assert [t.name for t in registry.get_tools_by_capability(ToolCapability.EXPLORE)] == ["list_directory", "grep"]
    assert registry.get_tool("missing") is None
    assert [t.name for t in registry.get_tools_by_tag("filesystem")] == ["list_directory", "read_file", "write_file"]


def test_registry_respects_core_tools_allow_list(config):
    config.set_test_config("core_tools", ["grep", "read_file"])

    registry = ToolRegistry(config)

    assert [t.name for t in registry.get_all_tools()] == ["read_file", "grep"]
