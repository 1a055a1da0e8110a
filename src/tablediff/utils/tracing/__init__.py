"""
Distributed tracing using OpenTelemetry.

Instruments:
- Table aggregation and diff runs
- Incremental reconciliation planning
- Data source reads

Exporters are configured by the caller; the engine only creates spans.
"""

from .context import span_operation, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "span_operation",
]
