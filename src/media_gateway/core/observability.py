"""Observability utilities for structured logging and run metrics."""

import uuid
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from .logging_config import setup_logger
from .models import PipelineRun, RunStatus


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Structured logger with context support."""

    def __init__(
        self, name: str = "media-gateway", level: Optional[str] = None, debug: bool = False
    ):
        self._logger = setup_logger(name, level=level, debug=debug)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        **kwargs,
    ):
        """Internal logging method with context support."""
        if context:
            formatted_message = f"[{context.correlation_id}] {message}"
            if context.operation:
                formatted_message = f"[{context.operation}] {formatted_message}"

            if context.metadata or kwargs:
                metadata_str = ", ".join(
                    f"{k}={v}" for k, v in {**context.metadata, **kwargs}.items()
                )
                formatted_message = f"{formatted_message} ({metadata_str})"
        elif kwargs:
            metadata_str = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted_message = f"{message} ({metadata_str})"
        else:
            formatted_message = message

        getattr(self._logger, level.value.lower())(formatted_message)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log info message."""
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log error message."""
        self._log(LogLevel.ERROR, message, context, **kwargs)


class MetricsCollector:
    """Collector for pipeline run records."""

    def __init__(self):
        self._runs: List[PipelineRun] = []

    def record_run(self, run: PipelineRun):
        """Record a finished (or abandoned) pipeline run."""
        self._runs.append(run)

    def get_runs(self, operation: Optional[str] = None) -> List[PipelineRun]:
        """Get recorded runs, optionally filtered by operation."""
        if operation:
            return [r for r in self._runs if r.operation == operation]
        return self._runs.copy()

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for recorded runs."""
        runs = self.get_runs(operation)

        if not runs:
            return {}

        durations = [r.elapsed_ms for r in runs]
        successful = [r for r in runs if r.status == RunStatus.SUCCESS]
        failed = [r for r in runs if r.status == RunStatus.ERROR]

        return {
            "total_runs": len(runs),
            "successful_runs": len(successful),
            "failed_runs": len(failed),
            "inconclusive_runs": len(runs) - len(successful) - len(failed),
            "success_rate": len(successful) / len(runs),
            "avg_duration_ms": sum(durations) / len(durations),
            "max_duration_ms": max(durations),
        }

    def clear(self):
        """Clear all recorded runs."""
        self._runs.clear()
