import logging
import re
from datetime import datetime

import pytest

from mycela.log_setup import FILTER_ENV, TRACE, LocalTimeFormatter, init_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_mycela = logging.getLogger("mycela").level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
    logging.getLogger("mycela").setLevel(saved_mycela)


def test_format_time_is_local_iso_with_offset():
    ts = 1_700_000_000.123456
    record = logging.makeLogRecord({"created": ts})
    text = LocalTimeFormatter().formatTime(record)
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}[+-]\d{2}:\d{2}", text)
    parsed = datetime.fromisoformat(text)
    assert parsed.tzinfo is not None
    assert abs(parsed.timestamp() - ts) < 1e-5


def test_format_time_honours_datefmt():
    ts = 1_700_000_000.0
    record = logging.makeLogRecord({"created": ts})
    text = LocalTimeFormatter().formatTime(record, "%Y-%m-%d")
    assert text == datetime.fromtimestamp(ts).strftime("%Y-%m-%d")


def test_console_only_without_log_dir(monkeypatch):
    monkeypatch.delenv(FILTER_ENV, raising=False)
    handlers = init_logging(None)
    assert len(handlers) == 1
    assert handlers[0].level == logging.DEBUG
    assert handlers[0] in logging.getLogger().handlers


def test_default_filter_levels(monkeypatch):
    monkeypatch.delenv(FILTER_ENV, raising=False)
    handlers = init_logging()
    assert len(handlers) == 1
    assert handlers[0] in logging.getLogger().handlers
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("mycela").level == TRACE


def test_filter_from_environment(monkeypatch):
    monkeypatch.setenv(FILTER_ENV, "warn,mycela=error")
    handlers = init_logging()
    assert len(handlers) == 1
    assert handlers[0].level == logging.DEBUG
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("mycela").level == logging.ERROR


def test_invalid_filter_falls_back_to_default(monkeypatch):
    monkeypatch.setenv(FILTER_ENV, "info,mycela=loud")
    handlers = init_logging()
    assert len(handlers) == 1
    assert handlers[0] in logging.getLogger().handlers
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("mycela").level == TRACE


def test_files_split_by_level(tmp_path, monkeypatch):
    monkeypatch.delenv(FILTER_ENV, raising=False)
    log_dir = tmp_path / "nested" / "logs"
    handlers = init_logging(log_dir)
    assert len(handlers) == 3

    logger = logging.getLogger("mycela.test")
    logger.info("operational message")
    logger.debug("diagnostic message")
    for handler in handlers:
        handler.flush()

    date = datetime.now().strftime("%Y-%m-%d")
    info_files = list(log_dir.glob(f"*.log.{date}"))
    debug_files = list(log_dir.glob(f"*.debug.{date}"))
    assert len(info_files) == 1
    assert len(debug_files) == 1

    info_text = info_files[0].read_text(encoding="utf-8")
    debug_text = debug_files[0].read_text(encoding="utf-8")
    assert "operational message" in info_text
    assert "diagnostic message" not in info_text
    assert "diagnostic message" in debug_text
    assert "operational message" not in debug_text


def test_repeated_init_replaces_handlers(monkeypatch):
    monkeypatch.delenv(FILTER_ENV, raising=False)
    first = init_logging()
    second = init_logging()
    root_handlers = logging.getLogger().handlers
    assert first[0] not in root_handlers
    assert second[0] in root_handlers