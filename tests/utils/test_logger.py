import logging

import pytest

from utils.logger import attach_file_handler, detach_file_handler, setup_logger


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "app.log"
    yield path
    detach_file_handler()


def test_file_handler_reaches_named_loggers(log_file) -> None:
    existing = setup_logger("LOGGER_TEST_EXISTING")
    attach_file_handler(str(log_file))
    created_later = setup_logger("LOGGER_TEST_LATER")

    existing.info("booked appointment")
    created_later.warning("tooth flagged")
    for handler in logging.getLogger().handlers:
        handler.flush()

    contents = log_file.read_text()
    assert "[LOGGER_TEST_EXISTING] booked appointment" in contents
    assert "[LOGGER_TEST_LATER] tooth flagged" in contents


def test_detached_file_handler_stops_writing(log_file) -> None:
    logger = setup_logger("LOGGER_TEST_DETACHED")
    attach_file_handler(str(log_file))
    detach_file_handler()

    logger.info("after detach")

    assert "after detach" not in log_file.read_text()

