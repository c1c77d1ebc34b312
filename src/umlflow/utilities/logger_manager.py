"""Logger manager with coloured console output, rotation and structured JSON.

Workflow, stage and invocation identifiers are attached to log records through
``LoggerManager.context``; the values live in a context variable so concurrent
invocations on different threads or tasks never see each other's context.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import datetime
import json
import logging
from logging import (
    Handler,
    Logger,
    LogRecord,
    getLevelName,
    getLogRecordFactory,
    setLogRecordFactory,
)
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import Any, ClassVar

import colorlog

_LOG_CONTEXT: ContextVar[dict[str, Any]] = ContextVar("umlflow_log_context", default={})


@dataclass
class LoggerConfig:
    """Configuration for LoggerManager."""

    log_dir: Path | None = None
    log_level: str = "INFO"
    log_file_name: str = "umlflow.log"
    max_file_size_mb: int = 10
    backup_count: int = 3
    structured_logging: bool = False
    log_filters: dict[str, Callable[[LogRecord], bool]] | None = None
    log_colors: dict[str, str] | None = None

    DEFAULT_LOG_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "red,bg_white",
    }

    def __post_init__(self) -> None:
        """Normalize and validate configuration."""
        self.log_level = self.log_level.upper()
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).resolve()
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_colors = self.log_colors or self.DEFAULT_LOG_COLORS


class ContextLogRecord(LogRecord):
    """LogRecord carrying the active workflow context."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.custom_context: dict[str, Any] = dict(_LOG_CONTEXT.get())


_module_original_factory = getLogRecordFactory()


def context_log_record_factory(*args: Any, **kwargs: Any) -> LogRecord:
    """Factory creating ContextLogRecord instances."""
    record = _module_original_factory(*args, **kwargs)
    if isinstance(record, ContextLogRecord):
        return record
    return ContextLogRecord(
        record.name,
        record.levelno,
        record.pathname,
        record.lineno,
        record.msg,
        record.args,
        record.exc_info,
        record.funcName,
        record.stack_info,
    )


setLogRecordFactory(context_log_record_factory)


class StructuredFormatter(logging.Formatter):
    """JSON formatter including the record's workflow context."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
            "context": getattr(record, "custom_context", {}),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggerSettings:
    """Builds the console and file handlers described by a LoggerConfig."""

    def __init__(self, config: LoggerConfig) -> None:
        self.config = config

    def get_handlers(self) -> list[Handler]:
        handlers: list[Handler] = [self._get_console_handler()]
        file_handler = self._get_file_handler()
        if file_handler is not None:
            handlers.append(file_handler)
        return handlers

    def _apply_filters(self, handler: Handler) -> None:
        if self.config.log_filters:
            for filter_fn in self.config.log_filters.values():
                handler.addFilter(filter_fn)

    def _get_console_handler(self) -> Handler:
        handler = colorlog.StreamHandler()
        formatter: logging.Formatter = (
            StructuredFormatter()
            if self.config.structured_logging
            else colorlog.ColoredFormatter(
                "%(log_color)s%(asctime)s - [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors=self.config.log_colors,
            )
        )
        handler.setFormatter(formatter)
        self._apply_filters(handler)
        return handler

    def _get_file_handler(self) -> RotatingFileHandler | None:
        if self.config.log_dir is None:
            return None
        file_path = self.config.log_dir / self.config.log_file_name
        try:
            handler = RotatingFileHandler(
                file_path,
                maxBytes=self.config.max_file_size_mb * 1024 * 1024,
                backupCount=self.config.backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            print(f"Failed to create RotatingFileHandler: {e}", file=sys.stderr)
            return None
        handler.setFormatter(
            StructuredFormatter()
            if self.config.structured_logging
            else logging.Formatter(
                "%(asctime)s - [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        self._apply_filters(handler)
        return handler


class CustomLogger:
    """Logger wrapper exposing the manager's context helper."""

    def __init__(self, logger: Logger, manager: LoggerManager) -> None:
        self.logger = logger
        self.manager = manager

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.exception(msg, *args, **kwargs)

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.log(level, msg, *args, **kwargs)

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[CustomLogger]:
        with self.manager.context(**context_kwargs):
            yield self


class LoggerManager:
    """Configures one named logger and scopes contextual data onto its records."""

    def __init__(
        self,
        name: str | LoggerConfig = "umlflow",
        config: LoggerConfig | None = None,
    ) -> None:
        if isinstance(name, LoggerConfig):
            config = name
            name = "umlflow"
        self.name = name
        self.config = config or LoggerConfig()
        self.settings = LoggerSettings(self.config)
        self._logger = self._configure_logger()

    def get_logger(self) -> CustomLogger:
        return CustomLogger(self._logger, self)

    def _configure_logger(self) -> Logger:
        logger = logging.getLogger(self.name)
        if getattr(logger, "_umlflow_configured", False):
            return logger
        logger.setLevel(getLevelName(self.config.log_level))
        for handler in self.settings.get_handlers():
            logger.addHandler(handler)
        logger.propagate = False
        logger._umlflow_configured = True  # type: ignore[attr-defined]
        return logger

    @contextmanager
    def context(self, **context_kwargs: Any) -> Iterator[Logger]:
        """Attach ``context_kwargs`` to every record logged inside the block."""
        merged = {**_LOG_CONTEXT.get(), **context_kwargs}
        token = _LOG_CONTEXT.set(merged)
        try:
            yield self._logger
        finally:
            _LOG_CONTEXT.reset(token)

    @staticmethod
    def current_context() -> dict[str, Any]:
        return dict(_LOG_CONTEXT.get())

    def add_filter(self, name: str, filter_fn: Callable[[LogRecord], bool]) -> None:
        if self.config.log_filters is None:
            self.config.log_filters = {}
        self.config.log_filters[name] = filter_fn
        for handler in self._logger.handlers:
            handler.addFilter(filter_fn)
        self._logger.debug(f"Added log filter: {name}")

    def flush(self) -> None:
        for handler in self._logger.handlers:
            handler.flush()

    def close(self) -> None:
        """Detach and close every handler; a later manager reconfigures the name."""
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)
        self._logger.propagate = True
        self._logger._umlflow_configured = False  # type: ignore[attr-defined]
