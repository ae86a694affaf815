"""
Logging Configuration Module.

Every module logs under the `invoice_templates` namespace:

    from src.utils.logger import get_logger
    logger = get_logger(__name__)   # -> invoice_templates.src.matching.matcher

The console handler writes to stderr so command output on stdout stays
machine-readable. Colors are applied only when that stream is a terminal.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "invoice_templates"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors the whole record by level."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelno)
        return f"{color}{message}{Style.RESET_ALL}" if color else message


def _level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown logging level: {level}")
    return value


def setup_logger(
    level: Union[str, int] = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,  # 10 MB
    backup_count: int = 5,
    colorize: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure the engine's root logger, replacing any previous handlers.

    Args:
        level: Logging level name or number.
        log_format: Record format; DEFAULT_FORMAT when None.
        date_format: Timestamp format; DEFAULT_DATE_FORMAT when None.
        log_file: Rotating log file, disabled when None.
        max_bytes: Size before rotation.
        backup_count: Rotated files to keep.
        colorize: Color console records (only on a terminal).
        stream: Console stream, stderr by default.

    Returns:
        The `invoice_templates` logger.

    Raises:
        ValueError: If the level name is unknown.
    """
    level = _level(level)
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT
    stream = stream if stream is not None else sys.stderr

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream)
    use_color = colorize and getattr(stream, 'isatty', lambda: False)()
    formatter_class = ColoredFormatter if use_color else logging.Formatter
    console_handler.setFormatter(formatter_class(log_format, datefmt=date_format))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    root_logger.propagate = False
    root_logger.debug(f"Logging initialized at {logging.getLevelName(level)}")
    return root_logger


def set_level(level: Union[str, int]) -> None:
    """Change the level of the engine's logging (e.g. for --debug)."""
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(_level(level))


def get_logger(name: str) -> logging.Logger:
    """
    Logger for one module, nested under the engine namespace.

    Example:
        >>> get_logger("src.engine").name
        'invoice_templates.src.engine'
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """
    Configure logging from the `logging.*` settings.

    Falls back to defaults (with a warning on stderr) when the settings
    cannot be read.
    """
    try:
        from config import get_config

        log_file = None
        if get_config("logging.file.enabled", False):
            log_file = get_config("logging.file.path", "logs/templates.log")

        return setup_logger(
            level=get_config("logging.level", "INFO"),
            log_format=get_config("logging.format"),
            date_format=get_config("logging.date_format"),
            log_file=log_file,
            max_bytes=int(get_config("logging.file.max_bytes", 10485760)),
            backup_count=int(get_config("logging.file.backup_count", 5)),
            colorize=bool(get_config("logging.console.colorize", True)),
        )
    except (FileNotFoundError, OSError, ValueError) as e:
        print(f"Warning: Could not load logging config, using defaults: {e}", file=sys.stderr)
        return setup_logger()
