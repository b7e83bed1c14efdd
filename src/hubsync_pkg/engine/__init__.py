"""Synchronization engine."""

from .context import TransferContext
from .controller import SynchronizationController, parse_variable_listing

__all__ = [
    "TransferContext",
    "SynchronizationController",
    "parse_variable_listing",
]
