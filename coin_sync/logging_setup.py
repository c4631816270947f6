import json
import logging
import os
import sys

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s | extras=%(extras)s"


def get_logger(name: str) -> logging.LoggerAdapter:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
        logger.propagate = False
    # default extras so the formatter never misses the field
    return logging.LoggerAdapter(logger, extra={"extras": "{}"})


def with_extras(logger, **extras) -> logging.LoggerAdapter:
    base = logger.logger if hasattr(logger, "logger") else logger
    return logging.LoggerAdapter(
        base, extra={"extras": json.dumps(extras, ensure_ascii=False, default=str)}
    )


def set_package_level(level, package: str = "coin_sync") -> None:
    """Set ``level`` on every logger already created under ``package``."""
    for name, obj in list(logging.root.manager.loggerDict.items()):
        if isinstance(obj, logging.Logger) and (name == package or name.startswith(package + ".")):
            obj.setLevel(level)
