"""Logging setup for chunknote.

Modules log through loguru's shared ``logger``. The package disables its own
records on import; applications opt in by calling ``configure_logging``.
"""

import sys

from loguru import logger


LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {name}: {message}"


def configure_logging(debug: bool = False) -> None:
    """Enable chunknote log output on stderr.

    Args:
        debug: Emit DEBUG records as well as INFO and above.
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format=LOG_FORMAT)
    logger.enable("chunknote")
