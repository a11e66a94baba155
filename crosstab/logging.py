"""Logging utilities."""

from logging import FileHandler, Formatter, Logger, StreamHandler, getLogger

__all__ = [
    "get_logger",
    "create_logger",
]

DEFAULT_LOGGER_NAME = "crosstab"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = None


def get_logger(path: str | None = None) -> Logger:
    """Get crosstab default logger. Creates it on first use."""
    global logger

    if logger:
        return logger

    logger = create_logger(path=path)
    return logger


def create_logger(level: str | int | None = None, path: str | None = None) -> Logger:
    """Create a default logger. Logs to `path` when given, otherwise to
    the standard error stream."""
    new_logger = getLogger(DEFAULT_LOGGER_NAME)

    if not new_logger.handlers:
        formatter = Formatter(fmt=DEFAULT_FORMAT)
        handler = FileHandler(path) if path else StreamHandler()
        handler.setFormatter(formatter)
        new_logger.addHandler(handler)

    if level:
        new_logger.setLevel(level.upper() if isinstance(level, str) else level)

    return new_logger
