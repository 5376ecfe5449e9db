"""
Central logging configuration for the calendar service.
"""

import logging

# Third-party loggers that are too chatty at INFO/DEBUG for normal operation.
_NOISY_LOGGERS: dict[str, int] = {
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "httpx": logging.WARNING,
    "asyncio": logging.WARNING,
}


def configure_logging(level: str | None = "INFO") -> None:
    """
    Configure the root logger and quiet noisy third-party libraries.

    A stream handler is only installed when the root logger has none, so an
    outer runner (uvicorn, pytest) keeps control of its own handlers.

    Parameters
    ----------
    level:
        Root log level name. Unknown values fall back to INFO.
    """
    level_name = (level or "INFO").upper()
    root_level = getattr(logging, level_name, None)
    if not isinstance(root_level, int):
        root_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    for logger_name, logger_level in _NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(logger_level)

    logging.getLogger("app").setLevel(root_level)
