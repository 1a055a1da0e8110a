"""
Ambient utilities for the fingerprinting engine

Provides:
- logging: Console/JSON logging setup
- tracing: OpenTelemetry spans around engine operations
- metrics: Prometheus counters and histograms for engine throughput
- retry: Backoff retry for transient database read errors
"""

__all__ = ["logging", "tracing", "metrics", "retry"]
