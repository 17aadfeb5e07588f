import logging
import os

_LOG_LEVEL = os.getenv("GPKTOOL_LOG", "INFO").upper()


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    level = getattr(logging, _LOG_LEVEL, logging.INFO)
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(logging.NOTSET)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def set_level(level: int) -> None:
    """Change the level of every logger handed out under the gpktool package."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith("gpktool") and isinstance(logger, logging.Logger):
            logger.setLevel(level)
