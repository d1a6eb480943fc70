from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from flask import Flask

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def configure_logging(app: Flask, level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Attach handlers for the package loggers and the Flask app logger."""

    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT)
    package_logger = logging.getLogger(__package__.rsplit(".", 1)[0])
    package_logger.setLevel(numeric)

    if not package_logger.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        package_logger.addHandler(stream)

    if log_file and not app.debug:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(numeric)
        package_logger.addHandler(file_handler)
        app.logger.addHandler(file_handler)

    app.logger.setLevel(numeric)
