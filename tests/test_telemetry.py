import json
import logging

import pytest

from rheocode.telemetry.logger import ROOT_LOGGER_NAME, AgentLogger
from rheocode.telemetry.tracer import AgentTracer


@pytest.fixture
def root_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_json_log_file_receives_module_logs(config, tmp_path, root_logger):
    log_file = tmp_path / "agent.log"
    config.set_test_config("log_format", "json")
    config.set_test_config("log_level", "info")
    config.set_test_config("log_file", str(log_file))
    AgentLogger(config)

    logging.getLogger("rheocode.core.client").info("turn finished")
    logging.getLogger("rheocode.core.client").debug("not written")
    for handler in root_logger.handlers:
        handler.flush()

    entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert len(entries) == 1
    assert entries[0]["message"] == "turn finished"
    assert entries[0]["logger"] == "rheocode.core.client"
    assert entries[0]["service"] == "rheocode"
    assert "trace_id" not in entries[0]


def test_structured_fields_are_kept(config, tmp_path, root_logger):
    log_file = tmp_path / "agent.log"
    config.set_test_config("log_format", "json")
    config.set_test_config("log_file", str(log_file))
    agent_logger = AgentLogger(config)

    agent_logger.warning("retrying", attempt=2)
    for handler in root_logger.handlers:
        handler.flush()

    entry = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert entry["level"] == "WARNING"
    assert entry["attempt"] == 2


async def test_disabled_tracer_is_a_no_op(config):
    tracer = AgentTracer(config)
    assert tracer.tracer is None

    with tracer.span("agent.turn", {"turn": 1}):
        tracer.add_event("ignored")
        tracer.set_attribute("key", "value")

    @tracer.trace("wrapped")
    async def work():
        return 42

    assert await work() == 42
