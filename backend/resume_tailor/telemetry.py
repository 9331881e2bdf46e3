import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

logger = logging.getLogger(__name__)

SERVICE_NAME = "resume-tailor-backend"
SERVICE_VERSION = "1.0.0"


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for a module; spans are no-ops until setup_telemetry() runs."""
    return trace.get_tracer(name, SERVICE_VERSION)


def setup_telemetry() -> bool:
    """
    Install a global tracer provider that prints spans to the console.
    Returns False (and keeps the no-op provider) when configuration fails.
    """
    try:
        resource = Resource(attributes={
            ResourceAttributes.SERVICE_NAME: SERVICE_NAME,
            ResourceAttributes.SERVICE_VERSION: SERVICE_VERSION,
        })

        tracer_provider = TracerProvider(resource=resource)
        # spans are exported in batches to stdout
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(tracer_provider)

        logger.info("OpenTelemetry configured with console exporter")
        return True
    except Exception as e:
        logger.error(f"Failed to configure OpenTelemetry: {e}", exc_info=True)
        return False
