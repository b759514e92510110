"""
Tests for the logging setup.
"""

import logging

from utilities.logger import ActionLogger, setup_logging


def test_setup_logging_creates_log_file(tmp_path):
    log_file = tmp_path / "logs" / "api.log"
    root_logger = logging.getLogger()

    setup_logging(log_level="DEBUG", log_format="json", log_file=log_file)
    file_handlers = [
        handler for handler in root_logger.handlers
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_file)
    ]
    try:
        assert log_file.parent.exists()
        assert len(file_handlers) == 1
    finally:
        for handler in file_handlers:
            root_logger.removeHandler(handler)
            handler.close()


def test_action_logger_binds_context():
    action_logger = ActionLogger("books").bind_context(user_id="user-123")

    assert action_logger.context == {"endpoint": "books", "user_id": "user-123"}
    action_logger.log_unknown_action(None)
