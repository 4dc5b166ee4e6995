import logging
import os
import sys

DEFAULT_LOG_LEVEL = "INFO"


def get_logger(name: str) -> logging.Logger:
    """
    Returns the named logger, attaching one stdout handler on first use.
    The level comes from LOG_LEVEL (default INFO) at that moment.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper())

        # time - module - level - message
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
