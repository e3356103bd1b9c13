"""Logging setup shared by every gateway component."""

import os
import sys
import logging
from typing import Optional

GATEWAY_LOGGER = "media-gateway"
HANDLER_NAME = "media-gateway-stdout"

FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def resolve_level(level: Optional[str] = None, debug: bool = False) -> int:
    """
    Pick the effective level: ``debug`` wins, then ``level``, then the
    LOG_LEVEL environment variable. Unknown names fall back to INFO.
    """
    if debug:
        return logging.DEBUG
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _gateway_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None


def setup_logger(
    name: str = GATEWAY_LOGGER,
    level: Optional[str] = None,
    format_type: str = "structured",
    debug: bool = False,
) -> logging.Logger:
    """
    Configure a gateway logger writing to stdout.

    The logger gets exactly one gateway handler no matter how often it is set
    up; handlers installed by others are left alone. LOG_FORMAT overrides
    ``format_type``.

    Environment Variables:
        LOG_LEVEL: Logging level used when neither ``level`` nor ``debug``
            is given.
        LOG_FORMAT: "structured" or "simple".
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level, debug))

    handler = _gateway_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        logger.addHandler(handler)

    format_name = os.getenv("LOG_FORMAT", format_type).lower()
    handler.setFormatter(
        logging.Formatter(
            FORMATS.get(format_name, FORMATS["simple"]), datefmt="%Y-%m-%d %H:%M:%S"
        )
    )

    logger.propagate = False
    return logger


def get_component_logger(component: str, debug: bool = False) -> logging.Logger:
    """Logger for one gateway component, named ``media-gateway.<component>``."""
    return setup_logger(f"{GATEWAY_LOGGER}.{component}", debug=debug)
