from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter


class JSONFormatter(JsonFormatter):
    """JSON formatter using python-json-logger.

    Structured fields passed through ``extra`` become top-level keys; the
    event name, level and logger are always present.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['message'] = record.getMessage()

        # Transports log through plain stdlib loggers with extra={'payload': ...}
        if hasattr(record, 'payload'):
            log_record['payload'] = record.payload  # type: ignore[attr-defined]


class HumanReadableFormatter(logging.Formatter):
    """Console formatter: timestamp, level, event name."""

    def __init__(self) -> None:
        super().__init__(
            fmt='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
