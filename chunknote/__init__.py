"""Map-reduce commit message generation for oversized staged changes."""

from importlib.metadata import version, PackageNotFoundError

from loguru import logger

try:
    __version__ = version("chunknote")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"

# Library code stays silent until an application enables it (see chunknote.log)
logger.disable("chunknote")
