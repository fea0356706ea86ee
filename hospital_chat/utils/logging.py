"""
Logging helpers.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once per process."""
    global _configured
    if _configured:
        logging.getLogger().setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``hospital`` namespace."""
    if not name.startswith("hospital"):
        name = f"hospital.{name}"
    return logging.getLogger(name)
