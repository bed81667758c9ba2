"""Process-wide logging setup, applied once by ``create_app``."""

import logging
import logging.handlers
from pathlib import Path

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _file_handler(log_file: str, level: int) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    h = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=10 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    h.setLevel(level)
    return h


def _console_handler(level: int) -> logging.Handler:
    h = logging.StreamHandler()
    h.setLevel(level)
    return h


def setup_logging(level_name: str = "INFO", log_file: str | None = None) -> None:
    """Configure the ``wingman`` logger with console and optional file output.

    Handlers are replaced on every call so repeated ``create_app`` calls
    (one per test case) do not stack duplicate output.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)

    logger = logging.getLogger("wingman")
    logger.setLevel(level)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    console = _console_handler(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = _file_handler(log_file, level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def mask_secret(value: str | None) -> str:
    if not value:
        return "<empty>"
    if len(value) <= 10:
        return "*" * len(value)
    return f"{value[:5]}...{value[-5:]}"
