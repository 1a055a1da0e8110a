"""
Context managers for span management.

trace_operation makes its span current and suits plain functions.
span_operation does not touch the current context, so it is safe to hold
open across the yields of a generator.
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


def _record_error(span: trace.Span, error: BaseException) -> None:
    span.set_attribute("error", True)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Context manager for tracing operations.

    Automatically creates a span, adds attributes, handles errors,
    and ensures proper span completion.

    Args:
        operation_name: Name of the operation being traced
        kind: Span kind (INTERNAL, CLIENT, SERVER, etc.)
        **attributes: Custom attributes to add to the span

    Yields:
        Span instance for adding custom events/attributes

    Example:
        >>> with trace_operation("aggregate_table", table="customers") as span:
        ...     result = aggregate(stream)
        ...     span.set_attribute("row_count", result.row_count)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(operation_name, kind=kind) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            _record_error(span, e)
            raise


@contextmanager
def span_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Context manager for a span that is never made current.

    Use inside generators: the span stays open while the consumer pulls
    rows and ends when the generator finishes, fails or is closed.
    """
    span = get_tracer().start_span(operation_name, kind=kind)
    for key, value in attributes.items():
        span.set_attribute(key, str(value))

    try:
        yield span
    except GeneratorExit:
        span.set_attribute("closed_early", True)
        raise
    except Exception as e:
        _record_error(span, e)
        raise
    finally:
        span.end()
