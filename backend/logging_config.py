"""Shared logging configuration for Auroraview backend.

All module loggers hang below one ``auroraview`` logger that owns the
handlers, so the rotating log file has exactly one writer per process.
"""
import logging
import os
from logging.handlers import RotatingFileHandler

ROOT_LOGGER = "auroraview"
DEFAULT_LOG_DIR = os.path.join(os.path.dirname(__file__), "logs")


def _configure_root(level: str, log_name: str) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False

    # Format: timestamp | level | module | message
    formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_dir = os.environ.get("AURORAVIEW_LOG_DIR", DEFAULT_LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, f"{log_name}.log"),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    return root


def setup_logging(name: str, level: str | None = None, log_name: str = "auroraview") -> logging.Logger:
    """Return the logger for a backend module.

    Args:
        name: Module name (usually __name__); "__main__" maps to "app"
        level: Log level for the whole tree on first call; defaults to
            AURORAVIEW_LOG_LEVEL
        log_name: Base name of the rotating log file

    Returns:
        Logger named ``auroraview.<name>``
    """
    level = level or os.environ.get("AURORAVIEW_LOG_LEVEL", "INFO")
    root = _configure_root(level, log_name)
    if name in ("__main__", "app"):
        # entry point level wins over whichever module loaded first
        root.setLevel(getattr(logging, level.upper(), root.level))
    short = "app" if name == "__main__" else name
    return logging.getLogger(f"{ROOT_LOGGER}.{short}")
