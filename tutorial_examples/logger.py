"""
Настройка логирования: обычный текстовый формат или JSON (--json-logs).
"""

import json
import logging


LOGGER_NAME = "tutorial_examples"


class JsonFormatter(logging.Formatter):
    """
    Форматирует запись лога как одну JSON-строку.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key in ("example_id", "duration"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)
        return json.dumps(log_record, ensure_ascii=False, default=str)


def configure_logging(level: str = "WARNING", json_format: bool = False) -> None:
    """
    Настраивает корневой логгер: один StreamHandler (stderr).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    root_logger.addHandler(handler)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    return logging.getLogger(name)
