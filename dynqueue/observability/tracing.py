"""
OpenTelemetry tracing setup.
"""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

from dynqueue import __version__
from dynqueue.config import Settings, get_settings

# Global tracer instance
_tracer: Tracer | None = None


def setup_tracing(
    settings: Settings | None = None,
    enable_console_export: bool = False,
) -> Tracer:
    """
    Install an OpenTelemetry tracer provider for the process.

    Spans go to the OTLP endpoint when one is configured, and to the console
    when requested.

    Args:
        settings: Settings to read the service name and endpoint from.
        enable_console_export: If True, also export spans to console.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer

    settings = settings or get_settings()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    if settings.otel_exporter_otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if enable_console_export:
        provider.add_span_processor(
            BatchSpanProcessor(ConsoleSpanExporter())
        )

    trace.set_tracer_provider(provider)

    # Taken from our provider: the global one can only be installed once
    _tracer = provider.get_tracer(settings.otel_service_name, __version__)

    return _tracer


def get_tracer() -> Tracer:
    """
    Get the tracer instance.

    Falls back to the API's global tracer (a no-op until some provider is
    installed) when setup_tracing() has not been called.
    """
    if _tracer is None:
        return trace.get_tracer("dynqueue")
    return _tracer
