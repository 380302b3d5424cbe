"""
Logging utilities.

Provides centralized logging configuration for the application.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from askthemanual.config import config


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    console_output: bool = True,
) -> logging.Logger:
    """Set up a logger with file and/or console handlers.

    Parameters
    ----------
    name : str
        Logger name (typically a dotted ``askthemanual.*`` name).
    log_file : Optional[str]
        Log file name inside ``config.LOGS_DIR``. If None, only console
        logging is enabled.
    level : int
        Logging level (default: logging.INFO).
    console_output : bool
        Whether to also output to console (default: True).

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_file:
        logs_dir = Path(config.LOGS_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(logs_dir / log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def get_app_logger() -> logging.Logger:
    """Get the main application logger.

    Returns
    -------
    logging.Logger
        The main application logger with file and console output.
    """
    return setup_logger(name="askthemanual", log_file=f"app_{_today()}.log")


def get_session_logger() -> logging.Logger:
    """Get the logger for session state transitions.

    Child of the application logger, so records also reach its handlers.
    """
    return setup_logger(
        "askthemanual.session",
        log_file=f"session_{_today()}.log",
        console_output=False,
    )


def get_store_logger() -> logging.Logger:
    """Get the logger for File Search store operations."""
    return setup_logger(
        "askthemanual.store",
        log_file=f"store_{_today()}.log",
        console_output=False,
    )
