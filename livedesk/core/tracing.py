from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

_provider: TracerProvider | None = None


def setup_tracing(service_name: str) -> TracerProvider:
    """Configures and registers the global tracer provider once per process."""
    global _provider
    if _provider is not None:
        return _provider

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)

    _provider = provider
    return provider


def shutdown_tracing() -> None:
    """Flushes pending spans; called from the application shutdown path."""
    global _provider
    if _provider is not None:
        _provider.shutdown()
        _provider = None


def get_tracer(module_name: str):
    """Gets a tracer instance for a specific module."""
    return trace.get_tracer(module_name)
