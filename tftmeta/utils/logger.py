import logging
import sys
from datetime import datetime
from pathlib import Path

from tftmeta.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str) -> logging.Logger:
    """Setup a logger with consistent formatting"""

    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    log_level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Daily engine log file, skipped when LOG_DIR is empty
    if Config.LOG_DIR:
        log_dir = Path(Config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_dir / f'tft_meta_{datetime.now().strftime("%Y%m%d")}.log',
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
