"""Console logging setup shared by the scripts and Lambda handlers."""

import logging

from peanut_gallery.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(name)-36s %(levelname)-8s %(message)s"


def setup_logging(level: str | int | None = None) -> None:
    """Configure the package logger for console output.

    The Lambda runtime already installs a root handler, so a console handler is
    only added when nothing upstream will print the records. Safe to call more
    than once (warm containers reuse the module).
    """
    logger = logging.getLogger("peanut_gallery")
    logger.setLevel(level or LOG_LEVEL)

    if logging.getLogger().handlers or logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
