"""
Logging configuration
"""
import logging
import sys

from docverctl.core.config import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger("docverctl")


def get_logger(name: str) -> logging.Logger:
    """Child logger of the application logger"""
    return logger.getChild(name)
