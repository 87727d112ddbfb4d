"""Tests for logger setup"""

import logging

from eip_failover.logger import setup_logger


class TestSetupLogger:

    def test_console_handler(self):
        logger = setup_logger("eip_failover.test.console", log_level="debug")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_no_duplicate_handlers(self):
        setup_logger("eip_failover.test.dupes")
        logger = setup_logger("eip_failover.test.dupes")

        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "failover.log"
        logger = setup_logger("eip_failover.test.file", log_file=str(log_file))

        logger.info("Acquired lock on key nginx/eip/a")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "Acquired lock on key nginx/eip/a" in log_file.read_text()

    def test_unwritable_log_file(self, tmp_path):
        """Test that a bad log path falls back to console logging"""
        logger = setup_logger(
            "eip_failover.test.badfile", log_file=str(tmp_path / "missing" / "x.log")
        )

        assert len(logger.handlers) == 1

    def test_library_loggers_quiet_at_info(self):
        setup_logger("eip_failover.test.quiet", log_level="INFO")

        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_library_loggers_follow_debug(self):
        setup_logger("eip_failover.test.verbose", log_level="DEBUG")

        assert logging.getLogger("botocore").level == logging.DEBUG
        assert logging.getLogger("boto3").level == logging.DEBUG
