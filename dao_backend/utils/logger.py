import logging
import os

LOGGER_NAME = "dao-backend-logger"
LOG_FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - %(funcName)s() - %(message)s"


def configure_logger(level: str = "INFO") -> logging.Logger:
    """Attach the console handler once and set the level."""
    configured = logging.getLogger(LOGGER_NAME)
    configured.setLevel(getattr(logging, level.upper(), logging.INFO))
    configured.propagate = False  # uvicorn's root handler would print every record twice

    if not configured.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
        configured.addHandler(console_handler)
    return configured


logger = configure_logger(os.environ.get("LOG_LEVEL", "INFO"))
