"""Logging utilities."""

import logging
import sys
from pathlib import Path
from datetime import datetime


def setup_logger(name: str = 'knobfinder', log_level: int = logging.INFO,
                 log_file: str = None) -> logging.Logger:
    """Setup logger with console and optional file handler."""
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    has_console = any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                      for h in logger.handlers)
    if not has_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        target = str(Path(log_file).resolve())
        has_file = any(isinstance(h, logging.FileHandler) and h.baseFilename == target
                       for h in logger.handlers)
        if not has_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def create_session_log_file(log_dir: str = 'logs') -> str:
    """Create timestamped log file for session."""
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{log_dir}/knobfinder_{timestamp}.log"
