"""Utilities for sudo-sweep."""

from sudo_sweep.utils.console import ColorfulFormatter, configure_logging
from sudo_sweep.utils.validation import InvalidHostError, validate_host

__all__ = [
    "ColorfulFormatter",
    "configure_logging",
    "InvalidHostError",
    "validate_host",
]
