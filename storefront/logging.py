"""
Logging for the storefront cart.

Usage:
    from storefront.logging import get_logger
    logger = get_logger(__name__)

    logger.info("Cart loaded")
    logger.error("Cart write failed", exc_info=True)

``configure_logging`` runs once on import. Call it again with
``force=True`` to change the level or format at runtime.
"""

import logging
import os
import sys
from functools import cache

# Local runs get timestamps; Vercel adds its own
CART_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
CART_LOG_FORMAT_HOSTED = "%(levelname)s [%(name)s] %(message)s"

# Client libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "postgrest", "upstash_redis")

_HANDLER_NAME = "storefront"


def _level_from_env(default: str = "INFO") -> int:
    name = os.environ.get("LOG_LEVEL", default).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _is_hosted() -> bool:
    return os.environ.get("VERCEL") == "1"


def configure_logging(level: int | None = None, force: bool = False) -> logging.Handler | None:
    """
    Attach the storefront stdout handler to the root logger.

    Does nothing when the root logger already has handlers (an embedding
    app configured logging) unless ``force`` is set, in which case only a
    previously installed storefront handler is replaced.

    Returns:
        The installed handler, or None when nothing was changed
    """
    root = logging.getLogger()

    if force:
        for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
            root.removeHandler(existing)
    elif root.handlers:
        return None

    level = _level_from_env() if level is None else level
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(CART_LOG_FORMAT_HOSTED if _is_hosted() else CART_LOG_FORMAT)
    )

    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass ``__name__``."""
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None, keep: int = 8) -> str:
    """
    Shorten a user or line id for log lines.

    Control characters are escaped first so an id cannot forge log entries
    (CWE-117). None and empty ids are shown as ``guest``.
    """
    if not id_value:
        return "guest"
    escaped = (
        str(id_value)
        .replace("\x00", "")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return escaped[:keep]


__all__ = [
    "CART_LOG_FORMAT",
    "CART_LOG_FORMAT_HOSTED",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
]
