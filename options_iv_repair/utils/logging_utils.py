import logging
from logging.handlers import RotatingFileHandler
import os

from options_iv_repair import config


class LoggerSetup:
    def __init__(self, log_dir=None, level=None, name='options_iv_repair'):
        self.log_dir = log_dir or config.LOG_DIR
        self.level = level or config.LOG_LEVEL
        self.name = name
        self._ensure_log_dir()
        self.logger = self._setup_logger()

    def _ensure_log_dir(self):
        if not os.path.exists(self.log_dir):
            os.makedirs(self.log_dir)

    def _setup_logger(self):
        logger = logging.getLogger(self.name)
        if not logger.handlers:
            formatter = logging.Formatter(
                '[%(asctime)s] %(name)s %(levelname)s: %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

            log_file = os.path.join(self.log_dir, 'iv_repair.log')
            file_handler = RotatingFileHandler(
                log_file, maxBytes=1024*1024, backupCount=5)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(formatter)
            logger.addHandler(stream_handler)

            logger.setLevel(getattr(logging, str(self.level).upper(), logging.INFO))

        return logger
