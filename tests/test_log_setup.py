import logging
import tempfile
from pathlib import Path

import pytest

from lidar_frontend.log_setup import (
    RingBufferHandler,
    create_module_logger,
    get_default_logger,
    get_ringbuffer_sink,
    set_default_logger,
)


@pytest.fixture
def restore_default_logger():
    original = get_default_logger()
    yield
    set_default_logger(original)


def make_record(message, level=logging.INFO):
    return logging.LogRecord("test", level, __file__, 1, message, None, None)


def test_ring_buffer_keeps_only_latest():
    handler = RingBufferHandler(buffer_size=2)
    for message in ["one", "two", "three"]:
        handler.emit(make_record(message))
    messages = handler.last_formatted()
    assert len(messages) == 2
    assert "two" in messages[0]
    assert "three" in messages[1]


def test_last_formatted_limit():
    handler = RingBufferHandler(buffer_size=5)
    for message in ["alpha", "beta", "gamma"]:
        handler.emit(make_record(message))
    limited = handler.last_formatted(1)
    assert len(limited) == 1
    assert "gamma" in limited[0]


def test_ring_buffer_rejects_non_positive_size():
    with pytest.raises(ValueError):
        RingBufferHandler(buffer_size=0)


def test_ringbuffer_sink_is_shared():
    assert get_ringbuffer_sink() is get_ringbuffer_sink(16)


def test_set_and_get_default_logger(restore_default_logger):
    logger = logging.getLogger("replacement-default")
    set_default_logger(logger)
    assert get_default_logger() is logger


def test_module_logger_is_cached_and_feeds_ring_buffer():
    logger = create_module_logger("cache_check")
    assert create_module_logger("cache_check") is logger
    logger.info("module logger message")
    last = get_ringbuffer_sink().last_formatted(1)
    assert "module logger message" in last[0]
    assert get_ringbuffer_sink() in logger.handlers


def test_module_logger_writes_file_when_default_is_verbose(restore_default_logger, tmp_path, monkeypatch):
    verbose = logging.getLogger("verbose-default")
    verbose.setLevel(logging.DEBUG)
    set_default_logger(verbose)
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))

    logger = create_module_logger("file_check")
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    try:
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename).parent == tmp_path
        assert logger.level == logging.DEBUG
    finally:
        for handler in file_handlers:
            handler.close()


def test_module_logger_without_verbose_default_has_info_level(restore_default_logger):
    quiet = logging.getLogger("quiet-default")
    quiet.setLevel(logging.WARNING)
    set_default_logger(quiet)
    logger = create_module_logger("quiet_check")
    assert logger.level == logging.INFO
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)