"""
Logging configuration for the application.
"""

import os
import sys
import logging
import logging.handlers
from pathlib import Path
import traceback
from datetime import datetime

LOGGER_NAME = 'stack_composer'


class LogHandler:
    """Handler for application logs with console and file outputs."""

    def __init__(self, debug=False, log_dir=None):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.debug = debug
        self.log_dir = Path(log_dir) if log_dir else None
        self.setup_logger()

        # Register global exception handler
        sys.excepthook = self.handle_exception

    def setup_logger(self):
        """Set up logger with both console and file handlers."""
        # Clear any existing handlers
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        level = logging.DEBUG if self.debug else logging.INFO
        self.logger.setLevel(level)

        console_formatter = logging.Formatter('%(levelname)s: %(message)s')
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(console_formatter)
        console_handler.setLevel(level)
        self.logger.addHandler(console_handler)

        log_dir = self.log_dir or self._get_log_directory()
        log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = log_dir / f"composer_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            self.log_file, maxBytes=10*1024*1024, backupCount=5
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(level)
        self.logger.addHandler(file_handler)

        self.logger.info(f"Logging initialized. Debug mode: {self.debug}")
        self.logger.info(f"Log file: {self.log_file}")

    def _get_log_directory(self):
        """Return the per-user log directory."""
        if sys.platform == 'win32':
            base_dir = os.path.expandvars('%LOCALAPPDATA%')
        else:
            base_dir = os.path.expanduser('~')

        return Path(base_dir) / '.stack_composer' / 'logs'

    def handle_exception(self, exc_type, exc_value, exc_traceback):
        """Handle uncaught exceptions."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        tb_text = ''.join(traceback.format_exception(exc_type, exc_value, exc_traceback))
        self.logger.critical(f"Unhandled exception:\n{tb_text}")

        print(f"An unexpected error occurred: {exc_value}", file=sys.stderr)


def setup_logger(debug=False, log_dir=None):
    """Initialize and return the application logger."""
    handler = LogHandler(debug, log_dir)
    return handler.logger


class LogCapture:
    """Collect the records one pipeline step emits, e.g. a load and build.

    The records stay attached to the step so the caller can report its
    warnings after the step finishes. Exceptions propagate unchanged.
    """

    def __init__(self, logger, step):
        self.logger = logger
        self.step = step
        self.records = []

    def __enter__(self):
        self.logger.debug(f"Begin {self.step}")
        self._handler = _RecordList(self.records)
        self.logger.addHandler(self._handler)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.removeHandler(self._handler)
        if exc_type is not None:
            self.logger.debug(f"{self.step} failed: {exc_val}")
        else:
            self.logger.debug(f"End {self.step}: {len(self.records)} records")
        return False

    def messages(self, min_level=logging.NOTSET):
        """Messages logged during the step at or above min_level."""
        return [r.getMessage() for r in self.records if r.levelno >= min_level]

    @property
    def warnings(self):
        return self.messages(logging.WARNING)


class _RecordList(logging.Handler):
    def __init__(self, records):
        super().__init__()
        self.records = records

    def emit(self, record):
        self.records.append(record)
