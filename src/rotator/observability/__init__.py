"""
Observability for the rotator.
"""

from rotator.observability.logging import (
    HumanReadableFormatter,
    RotatorLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "RotatorLogger",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
