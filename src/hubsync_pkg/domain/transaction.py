"""Transactions applied to the engineering repository."""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Type

from .things import Iteration, Thing


class OperationKind(str, Enum):
    CREATE = "create"
    CREATE_OR_UPDATE = "create_or_update"


@dataclass(frozen=True)
class TransactionOperation:
    kind: OperationKind
    thing: Thing
    container: Optional[Thing] = None


class ThingTransaction:
    """Ordered set of create / create-or-update operations on cloned things.

    Operations are recorded against clones of the open iteration; the
    repository collaborator applies them on ``write``.
    """

    def __init__(self, iteration_clone: Optional[Iteration] = None):
        self.iteration_clone = iteration_clone
        self.operations: List[TransactionOperation] = []
        self.log_entry: Optional[str] = None

    def create(self, thing: Thing, container: Optional[Thing] = None) -> None:
        """Register a new thing, added to ``container`` (or its own container)."""
        container = container if container is not None else thing.container
        if container is not None:
            thing.container = container
        self._record(TransactionOperation(OperationKind.CREATE, thing, container))

    def create_or_update(self, thing: Thing) -> None:
        self._record(TransactionOperation(OperationKind.CREATE_OR_UPDATE, thing, thing.container))

    def _record(self, operation: TransactionOperation) -> None:
        # A thing registered twice keeps its first position, the latest kind wins
        for index, existing in enumerate(self.operations):
            if existing.thing is operation.thing:
                self.operations[index] = operation
                return
        self.operations.append(operation)

    def things_of_type(self, thing_type: Type[Thing], kind: Optional[OperationKind] = None) -> List[Thing]:
        return [
            operation.thing
            for operation in self.operations
            if isinstance(operation.thing, thing_type) and (kind is None or operation.kind is kind)
        ]

    def count(self, thing_type: Type[Thing] = Thing, kind: Optional[OperationKind] = None) -> int:
        return len(self.things_of_type(thing_type, kind))

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def __len__(self) -> int:
        return len(self.operations)

    def __repr__(self) -> str:
        return f"ThingTransaction(operations={len(self.operations)}, log_entry={self.log_entry!r})"
