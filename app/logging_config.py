"""Logging setup shared by the API and the Lambda handler."""

import logging
import sys

LOGGER_NAME = "medical_report"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stdout handler to the ``medical_report`` logger tree."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    return logger
