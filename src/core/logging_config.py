"""Logging setup for the backend process."""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once per process.

    Args:
        level: Logging level name, e.g. "INFO" or "DEBUG".
    """
    global _configured
    if _configured:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO, which would include the Gemini key in the URL
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
