import sys
from loguru import logger

fmt_console = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> | {extra}"
fmt_file    = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message} | {extra}"

def configure_logging(logfile: str | None = "mediastore.log", level: str = "DEBUG") -> None:
    logger.remove()
    if logfile:
        logger.add(logfile, rotation="10 MB", format=fmt_file, level=level)
    logger.add(sys.stderr, format=fmt_console, colorize=True, level=level)
