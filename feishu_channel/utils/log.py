"""Loguru setup for the CLI."""

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Enable feishu_channel logs on a single stderr sink at *level*."""
    logger.enable("feishu_channel")
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else level.upper(), format=_FORMAT)
