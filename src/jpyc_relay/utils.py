"""
Shared helpers: the project logger and small hex utilities.

Logging goes through ``loguru``.  Library modules import ``logger`` from here
and never configure sinks themselves; entry points (the CLI and the server
example) call :func:`setup_logger` once at startup.
"""

import sys

from eth_utils import to_bytes
from loguru import logger

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logger(level: str = "INFO", serialize: bool = False) -> None:
    """Replace loguru's default sink with a single stderr sink.

    Args:
        level: Minimum level to emit (``DEBUG``, ``INFO``, ...).
        serialize: Emit one JSON object per line instead of the text format.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_LOG_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )


def hex_to_bytes32(hexstr: str) -> bytes:
    """Left-pad a hex string to 32 bytes (``bytes32`` ABI argument)."""
    raw = hexstr[2:] if hexstr.startswith(("0x", "0X")) else hexstr
    if len(raw) > 64:
        raise ValueError(f"Hex value is longer than 32 bytes: {hexstr!r}")
    return to_bytes(hexstr=raw.rjust(64, "0"))


__all__ = ["logger", "setup_logger", "hex_to_bytes32"]
