# accessforge/core/logging.py
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Any
from pythonjsonlogger import jsonlogger

from accessforge.core.config import settings

ROOT_LOGGER = "accessforge"

# Record attributes copied into the JSON payload when callers pass them via `extra`
CONTEXT_FIELDS = ("request_id", "analysis_id", "phase", "detector", "rule_id", "duration_ms")


def component_for(logger_name: str) -> str:
    """Map a logger name onto the pipeline component that emitted it.

    ``accessforge.rules.engine`` -> ``rules``; the package root and foreign
    loggers map onto themselves.
    """
    parts = logger_name.split(".")
    if parts[0] == ROOT_LOGGER and len(parts) > 1:
        return parts[1]
    return logger_name


class AnalysisJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that tags each record with its pipeline component
    and whatever analysis context the caller attached."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["component"] = component_for(record.name)

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


class AnalysisLoggerAdapter(logging.LoggerAdapter):
    """Stamps every record with the analysis id, keeping caller extras."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def analysis_logger(logger: logging.Logger, analysis_id: str) -> AnalysisLoggerAdapter:
    return AnalysisLoggerAdapter(logger, {"analysis_id": analysis_id})


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure structured JSON logging"""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(AnalysisJsonFormatter("%(timestamp)s %(level)s %(component)s %(message)s"))
        logger.addHandler(handler)

    return logger


logger = setup_logging(settings.LOG_LEVEL)
