"""OpenTelemetry access for dbquery.

dbquery depends on ``opentelemetry-api`` only; spans are recorded when the
application installs an SDK tracer provider and are no-ops otherwise.
"""

from typing import Optional

from opentelemetry import trace

__all__ = [
    "get_tracer",
]


def get_tracer(name: str = "dbquery", version: Optional[str] = None) -> trace.Tracer:
    """Return a tracer from the active provider, versioned with the package by default."""
    if version is None:
        from dbquery.__version__ import __version__ as version
    return trace.get_tracer(name, version)
