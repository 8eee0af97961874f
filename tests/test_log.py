import io
import logging
import re

import pytest
from flowctl_core.log import ContextLogger, configure_logging, get_logger

LINE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z (\w+) (.+)$")


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger("flowctl_core")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def _lines(buf):
    return [l for l in buf.getvalue().splitlines() if l]


def test_context_values_prefix_the_message():
    buf = io.StringIO()
    configure_logging("DEBUG", stream=buf)
    get_logger(request_id="req-1", fn="orders").info("hello")

    [line] = _lines(buf)
    m = LINE.match(line)
    assert m, line
    assert m.group(1) == "INFO"
    assert m.group(2) == "req-1 orders hello"


def test_no_context_renders_na():
    buf = io.StringIO()
    configure_logging("INFO", stream=buf)
    get_logger().warning("careful")
    logging.getLogger("flowctl_core.core").warning("plain")

    lines = _lines(buf)
    assert lines[0].endswith("WARNING N/A careful")
    assert lines[1].endswith("WARNING N/A plain")


def test_none_context_values_are_skipped():
    buf = io.StringIO()
    configure_logging("INFO", stream=buf)
    get_logger(request_id=None, fn="orders").info("x")
    assert _lines(buf)[0].endswith("INFO orders x")


def test_bind_merges_context():
    log = get_logger(request_id="req-1")
    child = log.bind(attempt=2)
    assert isinstance(child, ContextLogger)
    assert child.context == {"request_id": "req-1", "attempt": 2}
    assert log.context == {"request_id": "req-1"}


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("FLOWCTL_LOG_LEVEL", "warn")
    buf = io.StringIO()
    logger = configure_logging(stream=buf)
    assert logger.level == logging.WARNING
    get_logger().info("hidden")
    get_logger().error("shown")
    assert [l.split(" ", 1)[1] for l in _lines(buf)] == ["ERROR N/A shown"]


def test_unknown_level_falls_back_to_info():
    logger = configure_logging("LOUD", stream=io.StringIO())
    assert logger.level == logging.INFO


def test_configure_twice_keeps_one_handler():
    configure_logging("INFO", stream=io.StringIO())
    logger = configure_logging("INFO", stream=io.StringIO())
    named = [h for h in logger.handlers if h.get_name() == "flowctl_core.console"]
    assert len(named) == 1


def test_configured_lines_are_not_repeated_by_root_handlers():
    root_buf = io.StringIO()
    root_handler = logging.StreamHandler(root_buf)
    logging.getLogger().addHandler(root_handler)
    try:
        buf = io.StringIO()
        logger = configure_logging("INFO", stream=buf)
        get_logger(fn="orders").info("once")
    finally:
        logging.getLogger().removeHandler(root_handler)

    assert logger.propagate is False
    assert len(_lines(buf)) == 1
    assert root_buf.getvalue() == ""
