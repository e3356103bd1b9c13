"""Factory classes for creating configured service instances."""

from typing import Optional

from .cache import RecentResultCache
from .errors import ErrorNormalizer
from .config import GatewayConfig
from .observability import MetricsCollector, StructuredLogger
from .pipeline import ExecutionPipeline
from .protocols import LoggerProtocol, TransportProtocol
from .services import MediaUploadService, SignatureClient, UploadClient
from .transport import HttpxTransport


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(
        name: str, level: Optional[str] = None, debug: bool = False
    ) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level=level, debug=debug)


class TransportFactory:
    """Factory for creating transport instances."""

    @staticmethod
    def create_transport(config: GatewayConfig) -> TransportProtocol:
        """Create an httpx transport honoring the configured timeout."""
        return HttpxTransport(timeout=config.timeout)


class GatewayFactory:
    """Factory for creating the complete upload service."""

    @staticmethod
    def create_pipeline(
        logger: LoggerProtocol,
        cache_capacity: int = 3,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ExecutionPipeline:
        """Create an execution pipeline with its own cache and normalizer."""
        return ExecutionPipeline(
            logger=logger,
            normalizer=ErrorNormalizer(logger),
            cache=RecentResultCache(cache_capacity),
            metrics_collector=metrics_collector,
        )

    @staticmethod
    def create_service(
        config: GatewayConfig,
        transport: Optional[TransportProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> MediaUploadService:
        """Create a fully wired upload service.

        The service owns one pipeline, so its dedup cache lives as long as the
        service. Repeats of an identical upload are delivered to the sink once;
        uploads of different files never suppress each other.
        """
        if transport is None:
            transport = TransportFactory.create_transport(config)

        if logger is None:
            logger = LoggerFactory.create_logger("media-gateway", debug=config.debug)

        pipeline = GatewayFactory.create_pipeline(logger, config.cache_capacity)
        signature_client = SignatureClient(
            transport=transport,
            pipeline=pipeline,
            endpoint=config.signature_url,
            upload_preset=config.upload_preset,
            logger=logger,
        )
        upload_client = UploadClient(
            transport=transport,
            pipeline=pipeline,
            endpoint=config.upload_url,
            logger=logger,
        )

        return MediaUploadService(
            signature_service=signature_client,
            upload_service=upload_client,
            pipeline=pipeline,
            logger=logger,
        )
