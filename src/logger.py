"""
Logging Setup Module.

Builds the single application logger used by every module. Diagnostics go to
stderr so stdout stays free for report output; in development mode a rotating
log file is written as well.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 3


class LogManager:
    """
    Configures and owns the application logger.

    Attributes:
        logger (logging.Logger): The configured application logger.
    """

    def __init__(
        self,
        app_name: str,
        log_dir: str = "logs",
        development: bool = False,
        level: int = logging.INFO,
    ):
        """Create the application logger.

        Args:
            app_name (str): Logger name, also used for the log file name.
            log_dir (str): Directory for the log file in development mode.
            development (bool): Also log to a rotating file when True.
            level (int): Logging level.
        """
        self.logger = logging.getLogger(app_name)
        self.logger.setLevel(level)

        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Handlers are attached once per logger name
        if self.logger.handlers:
            return

        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        self.logger.addHandler(stream_handler)

        if development:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, f"{app_name}.log"),
                maxBytes=DEFAULT_LOG_MAX_BYTES,
                backupCount=DEFAULT_LOG_BACKUP_COUNT,
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)
