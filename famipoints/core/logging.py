import logging
import os
from logging.handlers import RotatingFileHandler

from .config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(settings: Settings | None = None) -> None:
    cfg = settings or default_settings
    log_level = cfg.LOG_LEVEL.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if cfg.LOG_FILE_PATH:
        directory = os.path.dirname(cfg.LOG_FILE_PATH)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            cfg.LOG_FILE_PATH, maxBytes=cfg.LOG_MAX_BYTES, backupCount=cfg.LOG_BACKUP_COUNT
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # engine logging is driven by DB_ECHO, keep it quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
