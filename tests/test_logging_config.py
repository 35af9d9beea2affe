import json
import logging

import pytest

from tter.logging_config import configure_logging, describe_handler, get_logger


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_logging_to_file(tmp_path, restore_root_logging):
    log_file = tmp_path / "logs" / "tter.log"
    configure_logging(level="DEBUG", json_output=True, log_file=log_file)

    get_logger("tter.tests").info("probe", value=1)

    lines = log_file.read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["event"] == "probe"
    assert record["value"] == 1
    assert record["level"] == "info"
    assert record["logger"] == "tter.tests"
    assert "timestamp" in record


def test_level_filters_debug(tmp_path, restore_root_logging):
    log_file = tmp_path / "tter.log"
    configure_logging(level="warning", json_output=True, log_file=log_file)

    logger = get_logger("tter.tests.filtered")
    logger.debug("hidden")
    logger.warning("shown")

    content = log_file.read_text(encoding="utf-8")
    assert "hidden" not in content
    assert "shown" in content


def test_unknown_level_rejected():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(level="LOUD")


def test_describe_handler():
    def handler(payload):
        pass

    class Callable:
        def __call__(self, payload):
            pass

    assert describe_handler(handler) == f"{__name__}.test_describe_handler.<locals>.handler"
    assert describe_handler(Callable()) == "Callable"
    assert describe_handler(print) == "builtins.print"
