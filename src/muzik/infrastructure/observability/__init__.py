"""Observability infrastructure for structured logging."""

from muzik.infrastructure.observability.logging import (
    configure_logging,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "configure_logging",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
]
