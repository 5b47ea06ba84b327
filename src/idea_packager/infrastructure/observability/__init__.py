"""
Observability for the packager: structured logging with build context.
"""

from .logging import (
    BuildContextFilter,
    HumanReadableFormatter,
    JSONLogFormatter,
    build_context,
    configure_logging,
    get_build_id,
    reset_logging,
)

__all__ = [
    "BuildContextFilter",
    "HumanReadableFormatter",
    "JSONLogFormatter",
    "build_context",
    "configure_logging",
    "get_build_id",
    "reset_logging",
]
