"""Protocols for the collaborators the synchronization core consumes."""

from __future__ import annotations
from typing import Any, Generic, List, Optional, Protocol, Type, TypeVar, TYPE_CHECKING, runtime_checkable

from .types import MappingDirection, ScriptParseResult

if TYPE_CHECKING:
    from ..domain.things import ExternalIdentifierMap, Iteration, DomainOfExpertise, Thing
    from ..domain.transaction import ThingTransaction
    from ..domain.workspace import WorkspaceVariable

TIn = TypeVar("TIn")
TOut = TypeVar("TOut")
TThing = TypeVar("TThing")


@runtime_checkable
class NumericEngine(Protocol):
    """Transport to the numeric computing engine.
    
    Implementations own the connection protocol. Calls may block; the
    controller offloads them to worker threads.
    """
    
    def connect(self, version: Optional[str]) -> bool:
        """Open a session. Returns False when the engine is unavailable."""
        ...
    
    def disconnect(self) -> None:
        ...
    
    def execute_function(self, code: str) -> str:
        """Execute engine code and return its textual output."""
        ...
    
    def get_variable(self, name: str) -> Optional["WorkspaceVariable"]:
        ...
    
    def put_variable(self, variable: "WorkspaceVariable") -> None:
        ...


@runtime_checkable
class Repository(Protocol):
    """Session, persistence and transaction substrate of the engineering repository."""
    
    @property
    def open_iteration(self) -> "Iteration":
        ...
    
    @property
    def current_domain_of_expertise(self) -> Optional["DomainOfExpertise"]:
        ...
    
    def get_thing_by_id(self, iid: Any, thing_type: Optional[Type[TThing]] = None) -> Optional[TThing]:
        """Resolve a thing in the open iteration, None when unknown or of another type."""
        ...
    
    def write(self, transaction: "ThingTransaction") -> None:
        ...
    
    def refresh(self) -> None:
        ...
    
    def available_external_identifier_maps(self, tool_name: str) -> List["ExternalIdentifierMap"]:
        ...
    
    def register_log_entry(self, content: str, transaction: "ThingTransaction") -> None:
        ...


@runtime_checkable
class MappingRuleEngine(Protocol):
    """Pluggable structural transformation, typed by direction."""
    
    def map(self, direction: MappingDirection, data: Any) -> Any:
        ...


@runtime_checkable
class MappingRule(Protocol, Generic[TIn, TOut]):
    """A single direction-specific transformation."""
    
    direction: MappingDirection
    
    def transform(self, data: TIn) -> TOut:
        ...


@runtime_checkable
class ScriptParserProtocol(Protocol):
    """Discovers declared inputs in a script file."""
    
    def parse(self, path: str) -> ScriptParseResult:
        ...


@runtime_checkable
class LogEntryProvider(Protocol):
    """Captures the log entry accompanying a repository transfer.
    
    Returns the entry content, or None when the user cancels.
    """
    
    def __call__(self) -> Optional[str]:
        ...
