"""Execution pipeline every gateway operation flows through."""

from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, TypeVar

from pydantic import BaseModel

from . import schemas
from .cache import RecentResultCache, fingerprint
from .errors import ErrorNormalizer
from .exceptions import NormalizedError, TransportError
from .models import ControlOperation, Operation, PipelineRun, RunStatus, ServiceOperation
from .observability import LogContext, MetricsCollector, StructuredLogger
from .protocols import LoggerProtocol, ResponseSink

T = TypeVar("T")


def to_payload(result: Any) -> Dict[str, Any]:
    """Shape a successful result into the body handed to a response sink."""
    if isinstance(result, schemas.ParsedSuccess):
        return result.body.model_dump(mode="json")
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, dict):
        return dict(result)
    return {"result": result}


def _error_identity(exc: BaseException) -> tuple:
    if isinstance(exc, NormalizedError):
        return ("normalized",) + exc.identity
    if isinstance(exc, TransportError):
        return (type(exc).__name__, exc.status_code, str(exc))
    return (type(exc).__name__, str(exc))


class ExecutionPipeline:
    """
    Runs a unit of work with timing, logging, validation and normalization.

    Each call to ``execute`` is one pipeline run. A successful run may have
    its raw ``RemoteResponse`` validated against the operation's contract; a
    failed run always ends in a ``NormalizedError``.

    Runs that deliver to a response sink remember their outcome in a small
    cache keyed by operation, request and content, so the same outcome of the
    same request is never delivered twice by one pipeline instance. Runs
    without a sink have nothing to deliver and leave the cache alone.
    """

    def __init__(
        self,
        logger: Optional[LoggerProtocol] = None,
        normalizer: Optional[ErrorNormalizer] = None,
        cache: Optional[RecentResultCache] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        component: str = "execution_pipeline",
    ):
        self._logger = (
            logger if logger is not None else StructuredLogger("media-gateway.pipeline")
        )
        self._normalizer = (
            normalizer if normalizer is not None else ErrorNormalizer(self._logger)
        )
        self._cache = cache if cache is not None else RecentResultCache()
        self._metrics = (
            metrics_collector if metrics_collector is not None else MetricsCollector()
        )
        self._component = component

    @property
    def cache(self) -> RecentResultCache:
        return self._cache

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    async def execute(
        self,
        operation: Operation,
        unit_of_work: Callable[[], Awaitable[T]],
        *,
        validate_success: bool = False,
        sink: Optional[ResponseSink] = None,
        context: Optional[LogContext] = None,
        request_key: Optional[Hashable] = None,
    ) -> Any:
        """
        Run ``unit_of_work`` as one pipeline run for ``operation``.

        Args:
            operation: Tag of the remote action performed.
            unit_of_work: Zero-argument coroutine function doing the work.
            validate_success: Parse the result against the operation's
                response contract. Ignored for control operations.
            sink: Receives ``(status_code, payload)`` once per distinct
                outcome.
            context: Log context of the enclosing request. The run logs under
                its correlation id, tagged with ``operation``.
            request_key: Identifies the request in dedup keys, so equal
                outcomes of different requests are all delivered.

        Returns:
            The work's result, or a ``ParsedSuccess`` when validated.

        Raises:
            NormalizedError: For every failure of the work or validation.
        """
        if not isinstance(operation, (ServiceOperation, ControlOperation)):
            raise ValueError(f"Unknown operation: {operation!r}")

        run = PipelineRun(operation=operation.value)
        if context is None:
            context = LogContext(component=self._component)
        context = context.with_operation(operation.value)

        self._logger.info(f"Starting {operation.value}", context)
        try:
            try:
                result: Any = await unit_of_work()
                if validate_success and isinstance(operation, ServiceOperation):
                    result = self._validate(operation, result, context)
            except Exception as exc:
                error = self._reject(operation, exc, run, context, sink, request_key)
                if error is exc:
                    raise
                raise error from exc
            return self._accept(operation, result, run, context, sink, request_key)
        finally:
            self._metrics.record_run(run)

    def _validate(
        self, operation: ServiceOperation, result: Any, context: LogContext
    ) -> schemas.ParsedSuccess:
        parsed = schemas.parse(operation, result)
        if isinstance(parsed, schemas.ParsedError):
            raise TransportError(
                parsed.body.message,
                status_code=parsed.status_code,
                body=parsed.body.model_dump(exclude_none=True),
                headers=parsed.headers,
            )
        self._logger.info(
            f"Validated {operation.value} response",
            context,
            status_code=parsed.status_code,
        )
        return parsed

    def _accept(
        self,
        operation: Operation,
        result: Any,
        run: PipelineRun,
        context: LogContext,
        sink: Optional[ResponseSink],
        request_key: Optional[Hashable],
    ) -> Any:
        run.settle(RunStatus.SUCCESS)
        payload = to_payload(result)

        if sink is not None:
            key = (operation.value, "result", request_key, fingerprint(payload))
            inserted, cached = self._cache.remember(key, result)
            if not inserted:
                self._logger.debug(
                    f"Completed {operation.value} with an already reported result",
                    context,
                    duration_ms=round(run.elapsed_ms, 2),
                )
                return cached

        self._logger.info(
            f"Completed {operation.value}",
            context,
            duration_ms=round(run.elapsed_ms, 2),
        )
        if sink is not None:
            sink.deliver(200, payload)
        return result

    def _reject(
        self,
        operation: Operation,
        exc: Exception,
        run: PipelineRun,
        context: LogContext,
        sink: Optional[ResponseSink],
        request_key: Optional[Hashable],
    ) -> NormalizedError:
        run.settle(RunStatus.ERROR)
        key = (operation.value, "error", request_key, _error_identity(exc))

        if sink is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        if isinstance(exc, NormalizedError):
            error = exc
        else:
            error = self._normalizer.normalize(exc, operation, context)

        if sink is not None:
            inserted, cached = self._cache.remember(key, error)
            if not inserted:
                return cached

        self._logger.error(
            f"Failed {operation.value}: {error.message}",
            context,
            status_code=error.status_code,
            duration_ms=round(run.elapsed_ms, 2),
        )
        if sink is not None:
            sink.deliver(error.status_code, error.to_payload())
        return error
