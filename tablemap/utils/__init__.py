"""
Utilities package for tablemap.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from tablemap.utils.logging import configure_from_settings, configure_logging, get_logger

__all__ = [
    "configure_from_settings",
    "configure_logging",
    "get_logger",
]
