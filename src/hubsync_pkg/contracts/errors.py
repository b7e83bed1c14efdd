"""Error definitions for the hubsync package."""

from __future__ import annotations
from typing import Dict, Optional


class HubSyncError(Exception):
    """Base exception for all hubsync errors."""
    
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(HubSyncError):
    """Configuration-related errors."""
    pass


class ValidationError(ConfigError):
    """Input validation errors."""
    pass


class EngineConnectionError(HubSyncError):
    """Numeric engine unreachable or version missing."""
    pass


class ScriptParseError(HubSyncError):
    """Script file could not be read or parsed."""
    pass


class MappingError(HubSyncError):
    """Variable/parameter mapping errors."""
    pass


class IncompatibleTypeError(MappingError):
    """A proposed pairing is not type- or shape-compatible."""
    pass


class ShapeMismatchError(MappingError):
    """Array reconstruction configuration does not match the value layout."""
    pass


class TransferError(HubSyncError):
    """Transaction build or commit failure during a transfer."""
    pass
