"""Enumerations and result types shared across the package."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.workspace import WorkspaceVariable


class MappingDirection(str, Enum):
    """Which store is the source of truth for a mapping or transfer."""

    FROM_DST_TO_HUB = "FromDstToHub"
    """Numeric engine workspace -> engineering repository"""

    FROM_HUB_TO_DST = "FromHubToDst"
    """Engineering repository -> numeric engine workspace"""


class RowColumnSelection(str, Enum):
    """Whether sampled function parameters are laid out in columns or rows."""

    COLUMN = "Column"
    ROW = "Row"


class SessionState(str, Enum):
    """Controller session lifecycle."""

    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    BUSY = "Busy"


class ValidationResultKind(str, Enum):
    VALID = "Valid"
    INVALID = "Invalid"


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a value-domain validation."""

    kind: ValidationResultKind
    message: str = ""

    @property
    def is_valid(self) -> bool:
        return self.kind is ValidationResultKind.VALID

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(ValidationResultKind.VALID)

    @classmethod
    def invalid(cls, message: str) -> "ValidationResult":
        return cls(ValidationResultKind.INVALID, message)


@dataclass(frozen=True)
class ScriptParseResult:
    """Output of parsing a script for its declared inputs."""

    variables: List["WorkspaceVariable"]
    """Detected input variables, not yet decomposed"""

    script_without_inputs_path: Optional[str] = None
    """Path of the temporary script copy with the input statements removed"""

    duplicated_names: Tuple[str, ...] = ()
    """Names assigned more than once, excluded from the inputs"""


@dataclass(frozen=True)
class AuditEntry:
    """One creation/update recorded during a transfer."""

    direction: MappingDirection
    thing_kind: str
    name: str
    action: AuditAction
    old_value: Any = None
    new_value: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> str:
        text = f"{self.thing_kind} {self.name} {self.action.value}"
        if self.old_value is not None or self.new_value is not None:
            text += f" ({self.old_value} -> {self.new_value})"
        return text


@dataclass(frozen=True)
class DifferenceRow:
    """Old/new comparison of one value for display."""

    name: str
    old_value: Any
    new_value: Any
    difference: str
    percent_difference: str


@dataclass(frozen=True)
class MatrixCellDifference:
    """Old/new comparison of one matrix cell."""

    row: int
    column: int
    old_value: Any
    new_value: Any
    difference: str
    percent_difference: str

    @property
    def has_changed(self) -> bool:
        return self.old_value != self.new_value
