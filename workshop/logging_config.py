import logging
import logging.config
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

# Third-party loggers that are too chatty at the application level
QUIET_LOGGERS = {
    "sqlalchemy.engine": "WARNING",
    "werkzeug": "INFO",
}


def _build_log_config(log_level: str, log_file: Optional[str]) -> Dict[str, Any]:
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "detailed",
            "stream": sys.stdout,
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }

    handler_names = list(handlers)
    loggers = {
        "": {"level": log_level, "handlers": handler_names, "propagate": False},
        "workshop": {"level": log_level, "handlers": handler_names, "propagate": False},
    }
    for name, level in QUIET_LOGGERS.items():
        loggers[name] = {"level": level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "json": {
                "()": "structlog.stdlib.ProcessorFormatter",
                "processor": structlog.processors.JSONRenderer(),
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path. If None, logs to stdout only.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(_build_log_config(log_level, log_file))

    logger = structlog.get_logger("workshop")
    logger.info("Logging configured", level=log_level, file=log_file)
    return logger


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class SchedulingOperation:
    """
    Context manager around a mutating scheduler call.

    Binds operation and operation_id into the structlog context so every log
    line emitted inside the block (service, engines, error handlers) can be
    correlated. Exceptions are logged and re-raised.
    """

    def __init__(self, operation_type: str, operation_id: Optional[str] = None, **context):
        self.operation_type = operation_type
        self.operation_id = operation_id or str(uuid.uuid4())[:8]
        self.context = context
        self.logger = get_logger("workshop.scheduling")
        self.start_time = None
        self._tokens = None

    def __enter__(self):
        self.start_time = datetime.now(timezone.utc)
        self._tokens = structlog.contextvars.bind_contextvars(
            operation=self.operation_type,
            operation_id=self.operation_id,
        )
        self.logger.info("Scheduling operation started", **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.now(timezone.utc) - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.info(
                "Scheduling operation completed",
                duration_seconds=duration,
                status="success",
                **self.context
            )
        else:
            # Rejections (unknown job, full bays, ...) are expected outcomes
            log = self.logger.warning if hasattr(exc_val, "http_status") else self.logger.error
            log(
                "Scheduling operation failed",
                duration_seconds=duration,
                status="error",
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.context
            )

        structlog.contextvars.reset_contextvars(**self._tokens)
        return False  # Don't suppress exceptions
