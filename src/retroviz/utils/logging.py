import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _build_logger() -> logging.Logger:
    """
    Creates the package-wide logger.

    The level can be overridden with the RETROVIZ_LOG_LEVEL environment variable.
    Records still propagate to the root logger so that pytest's caplog sees them.
    """
    _logger = logging.getLogger("retroviz")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)
    _logger.setLevel(os.environ.get("RETROVIZ_LOG_LEVEL", "INFO").upper())
    return _logger


logger = _build_logger()
