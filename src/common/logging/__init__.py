from loguru import logger

from src.common.logging.logconfig import configure_logging

__all__ = ["logger", "configure_logging"]
