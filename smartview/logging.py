from logging import FileHandler, Formatter, StreamHandler, getLogger

__all__ = [
    "get_logger",
    "create_logger",
]

DEFAULT_LOGGER_NAME = "smartview"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def get_logger(path=None):
    """Get the SmartView logger. If `path` is given and the logger has no
    handlers yet, log to that file instead of the standard error stream."""
    logger = getLogger(DEFAULT_LOGGER_NAME)

    if logger.handlers:
        return logger
    else:
        return create_logger(path=path)


def create_logger(level=None, path=None):
    """Create a default logger"""
    logger = getLogger(DEFAULT_LOGGER_NAME)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if path:
        handler = FileHandler(path)
    else:
        handler = StreamHandler()

    formatter = Formatter(fmt=DEFAULT_FORMAT)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if level:
        logger.setLevel(level.upper() if isinstance(level, str) else level)

    return logger
