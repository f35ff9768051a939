from __future__ import annotations

import logging
from pathlib import Path

from dependency_injector.resources import Resource

from .handlers import build_json_file_handler, build_human_console_handler


class TunnelLogger(Resource):
    """Structured logger for tunnel lifecycle events.

    Handlers are attached to the package logger, so records from the
    transports' module loggers (``revtunnel.infra...``) end up in the same
    JSONL file and console output.
    """

    def init(
        self,
        *,
        logs_dir: Path,
        file_name: str | None = None,
        logger_name: str = "revtunnel",
        console_output: bool = False,
        level: str = "INFO",
    ) -> "TunnelLogger":
        """Initialize logger.

        Args:
            logs_dir: Directory to store log files
            file_name: JSONL file name under logs_dir; no file handler if None
            logger_name: Logger name
            console_output: Whether to enable console output
            level: Logging level (DEBUG, INFO, WARNING, ERROR)

        Returns:
            Self for dependency_injector Resource pattern
        """
        numeric_level = getattr(logging, level.upper())
        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(numeric_level)
        self._logger.propagate = False

        # A previous init that was never shut down still owns open files
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
        self._logger.handlers.clear()
        self._handlers = []

        if file_name:
            file_handler = build_json_file_handler(logs_dir / file_name, level=numeric_level)
            self._logger.addHandler(file_handler)
            self._handlers.append(file_handler)

        if console_output:
            console_handler = build_human_console_handler(level=numeric_level)
            self._logger.addHandler(console_handler)
            self._handlers.append(console_handler)

        return self

    def shutdown(self, resource: "TunnelLogger") -> None:
        """Flush and close all handlers so file descriptors are released."""
        for handler in self._handlers:
            handler.flush()
            handler.close()

        self._logger.handlers.clear()

    def debug(self, message: str, **kwargs) -> None:
        if kwargs:
            self._logger.debug(message, extra=kwargs)
        else:
            self._logger.debug(message)

    def info(self, message: str, **kwargs) -> None:
        if kwargs:
            self._logger.info(message, extra=kwargs)
        else:
            self._logger.info(message)

    def warning(self, message: str, **kwargs) -> None:
        if kwargs:
            self._logger.warning(message, extra=kwargs)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log error message with optional extra fields and exception info."""
        if kwargs:
            self._logger.error(message, extra=kwargs, exc_info=exc_info)
        else:
            self._logger.error(message, exc_info=exc_info)

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback and optional extra fields."""
        if kwargs:
            self._logger.exception(message, extra=kwargs)
        else:
            self._logger.exception(message)
