"""
Logging configuration for the pricing monitor process.
"""
import logging
import sys


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Install a single stream handler on the root logger.

    Args:
        level: Log level name (e.g., 'INFO', 'WARNING')
        debug: Force DEBUG level regardless of `level`
    """
    resolved = logging.DEBUG if debug else logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(resolved)

    # botocore logs every request at DEBUG
    logging.getLogger("botocore").setLevel(max(resolved, logging.INFO))
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
