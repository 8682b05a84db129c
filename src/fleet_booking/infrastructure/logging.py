"""
Structured JSON logging for the Fleet Booking service.

Every record carries the correlation ID of the request that produced it.
Allocation and capacity events go through dedicated helpers so their fields
stay the same on the suggestion path and the commit path.
"""

import json
import logging
import logging.handlers
import os
import sys
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


SERVICE_NAME = "fleet-booking"
UNKNOWN_CORRELATION_ID = "unknown"

NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.dialects",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "uvicorn.access",
    "fastapi",
)

_correlation_id: ContextVar[Optional[str]] = ContextVar("fleet_booking_correlation_id", default=None)

# Whatever a bare LogRecord carries is standard; the rest arrived through `extra`
_STANDARD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "correlation_id",
}


class CorrelationIDFilter(logging.Filter):
    """Stamp the current request's correlation ID on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get() or UNKNOWN_CORRELATION_ID
        return True


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", UNKNOWN_CORRELATION_ID),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRIBUTES}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str, ensure_ascii=False)


@dataclass(frozen=True)
class LoggingConfig:
    """
    Where and how verbosely the service logs.

    Console output goes to stdout. File output rotates by size, and ERROR
    records are also written to a separate errors file.
    """

    log_level: str = "INFO"
    service_name: str = SERVICE_NAME
    log_dir: Optional[Path] = None
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Read LOG_* variables; unset ones keep their defaults."""
        log_dir = os.getenv("LOG_DIR")
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            service_name=os.getenv("SERVICE_NAME", SERVICE_NAME),
            log_dir=Path(log_dir) if log_dir else None,
            max_file_size=int(os.getenv("LOG_MAX_FILE_SIZE", str(10 * 1024 * 1024))),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
            enable_console=_env_flag("LOG_ENABLE_CONSOLE"),
            enable_file=_env_flag("LOG_ENABLE_FILE"),
        )

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level.upper())

    @property
    def directory(self) -> Path:
        """Configured log directory, or logs/ at the project root."""
        return self.log_dir or Path(__file__).resolve().parents[3] / "logs"

    def build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []
        if self.enable_console:
            handlers.append(self._prepare(logging.StreamHandler(sys.stdout), self.level))

        if self.enable_file:
            self.directory.mkdir(parents=True, exist_ok=True)
            handlers.append(self._prepare(self._rotating(f"{self.service_name}.log"), self.level))
            handlers.append(self._prepare(self._rotating(f"{self.service_name}-errors.log"), logging.ERROR))

        return handlers

    def apply(self) -> None:
        """Replace the root logger's handlers with the configured ones."""
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)

        root.setLevel(self.level)
        for handler in self.build_handlers():
            root.addHandler(handler)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def _prepare(self, handler: logging.Handler, level: int) -> logging.Handler:
        handler.setLevel(level)
        handler.addFilter(CorrelationIDFilter())
        handler.setFormatter(JSONFormatter(service_name=self.service_name))
        return handler

    def _rotating(self, filename: str) -> logging.Handler:
        return logging.handlers.RotatingFileHandler(
            filename=self.directory / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding="utf-8"
        )


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def setup_logging_from_env() -> LoggingConfig:
    """Configure the root logger from the environment."""
    config = LoggingConfig.from_env()
    config.apply()
    return config


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current request context."""
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_extra(logger: logging.Logger, level: int, message: str, **extra) -> None:
    """Log a message with structured fields."""
    logger.log(level, message, extra=extra)


def log_request(logger: logging.Logger, method: str, path: str, **extra) -> None:
    log_with_extra(logger, logging.INFO, f"HTTP Request: {method} {path}",
                   request_method=method, request_path=path, **extra)


def log_response(logger: logging.Logger, method: str, path: str, status_code: int, duration_ms: float,
                 level: int = logging.INFO, **extra) -> None:
    log_with_extra(logger, level, f"HTTP Response: {method} {path} -> {status_code} ({duration_ms:.2f}ms)",
                   request_method=method, request_path=path,
                   response_status=status_code, response_duration_ms=duration_ms, **extra)


def log_database_operation(logger: logging.Logger, operation: str, table: str, **extra) -> None:
    log_with_extra(logger, logging.DEBUG, f"Database {operation}: {table}",
                   db_operation=operation, db_table=table, **extra)


def log_business_rule_violation(logger: logging.Logger, rule: str, details: str, **extra) -> None:
    """Log a rejected request or degraded outcome at WARNING."""
    log_with_extra(logger, logging.WARNING, f"Business rule violation: {rule} - {details}",
                   business_rule=rule, violation_details=details, **extra)


def log_allocation_outcome(logger: logging.Logger, service: str, status: str, requested: int, allocated: int,
                           **extra) -> None:
    """Log a distribution attempt; short allocations are logged at WARNING."""
    level = logging.INFO if allocated == requested else logging.WARNING
    log_with_extra(logger, level, f"Allocation {status} for {service}: {allocated}/{requested} vehicles placed",
                   allocation_service=service, allocation_status=status,
                   allocation_requested=requested, allocation_allocated=allocated, **extra)
