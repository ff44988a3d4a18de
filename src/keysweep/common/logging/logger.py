import logging
import sys
from pathlib import Path
from typing import Optional

from keysweep.common.config.settings import Settings

LOG_FORMAT = '[%(asctime)s] %(levelname)s | %(message)s | context=%(context)s'

# === Colors for terminal logs ===
COLOR_MAP = {
    "DEBUG": "\033[94m",  # Blue
    "INFO": "\033[92m",  # Green
    "WARNING": "\033[93m",  # Yellow
    "ERROR": "\033[91m",  # Red
    "CRITICAL": "\033[95m",  # Magenta
    "ENDC": "\033[0m"
}


class SafeFormatter(logging.Formatter):
    def format(self, record):
        if not hasattr(record, "context"):
            record.context = {}
        return super().format(record)


class ColorFormatter(SafeFormatter):
    def format(self, record):
        levelname = record.levelname
        color = COLOR_MAP.get(levelname, "")
        endc = COLOR_MAP["ENDC"]
        record.levelname = f"{color}{levelname}{endc}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class ContextLogger:
    """Thin wrapper that attaches a context dict to every record.

    Components receive one of these instead of reaching for a module global,
    so tests and embedders can route engine logs wherever they like.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def _extra_context(extra: Optional[dict] = None):
        return {"context": extra or {}}

    def debug(self, message: str, extra: Optional[dict] = None):
        self.logger.debug(message, extra=self._extra_context(extra))

    def info(self, message: str, extra: Optional[dict] = None):
        self.logger.info(message, extra=self._extra_context(extra))

    def warning(self, message: str, extra: Optional[dict] = None):
        self.logger.warning(message, extra=self._extra_context(extra))

    def error(self, message: str, extra: Optional[dict] = None, exc_info: bool = False):
        self.logger.error(message, extra=self._extra_context(extra), exc_info=exc_info)

    def critical(self, message: str, extra: Optional[dict] = None, exc_info: bool = False):
        self.logger.critical(message, extra=self._extra_context(extra), exc_info=exc_info)


# === Create logger ===
logger = logging.getLogger("keysweep")
logger.propagate = False


def configure_logging(config: Optional[Settings] = None, log_file: Optional[Path] = None) -> logging.Logger:
    """(Re)attach the console handler and, when configured, a file handler.

    Without a config the logger runs at INFO on the console only.
    """
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(config.log_level if config else logging.INFO)

    # === Console handler ===
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColorFormatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    # === File handler ===
    log_file = log_file or (config.LOG_FILE if config else None)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(SafeFormatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger


configure_logging()
default_logger = ContextLogger(logger)


# === Public Logging Functions ===
def log_info(message: str, extra: Optional[dict] = None):
    default_logger.info(message, extra)


def log_error(message: str, extra: Optional[dict] = None, exc_info: bool = False):
    default_logger.error(message, extra, exc_info=exc_info)