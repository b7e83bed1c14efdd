"""Core contracts and interfaces."""

from .errors import (
    HubSyncError,
    ConfigError,
    ValidationError,
    EngineConnectionError,
    ScriptParseError,
    MappingError,
    IncompatibleTypeError,
    ShapeMismatchError,
    TransferError,
)
from .interfaces import (
    NumericEngine,
    Repository,
    MappingRuleEngine,
    MappingRule,
    ScriptParserProtocol,
    LogEntryProvider,
)
from .types import (
    MappingDirection,
    RowColumnSelection,
    SessionState,
    ValidationResult,
    ValidationResultKind,
    ScriptParseResult,
    AuditAction,
    AuditEntry,
    DifferenceRow,
    MatrixCellDifference,
)

__all__ = [
    "HubSyncError",
    "ConfigError",
    "ValidationError",
    "EngineConnectionError",
    "ScriptParseError",
    "MappingError",
    "IncompatibleTypeError",
    "ShapeMismatchError",
    "TransferError",
    "NumericEngine",
    "Repository",
    "MappingRuleEngine",
    "MappingRule",
    "ScriptParserProtocol",
    "LogEntryProvider",
    "MappingDirection",
    "RowColumnSelection",
    "SessionState",
    "ValidationResult",
    "ValidationResultKind",
    "ScriptParseResult",
    "AuditAction",
    "AuditEntry",
    "DifferenceRow",
    "MatrixCellDifference",
]
