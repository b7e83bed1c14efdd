"""In-memory engine and repository collaborators.

Both keep their whole state in process. They back the command line
tools and the test suite, and document the contracts real transports
must honour.
"""

from __future__ import annotations
import re
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
from uuid import UUID

import numpy as np
import structlog

from ..config.constants import DEFAULT_LIST_COMMAND
from ..contracts.errors import EngineConnectionError, TransferError
from ..domain.things import DomainOfExpertise, ExternalIdentifierMap, Iteration, Thing
from ..domain.transaction import ThingTransaction
from ..domain.workspace import WorkspaceVariable

TThing = TypeVar("TThing", bound=Thing)

ScriptRunner = Callable[[str, Dict[str, Any]], None]
"""Called with the script path and the live workspace, which it may mutate"""

_RUN_PATTERN = re.compile(r"^run\(\s*'(?P<path>.+)'\s*\)\s*;?$")


class InMemoryEngine:
    """Numeric engine holding its workspace in a dictionary.

    ``who`` lists the variables and ``run('<path>')`` hands the workspace
    to ``script_runner``. Any other command is only recorded.
    """

    def __init__(
        self,
        workspace: Optional[Dict[str, Any]] = None,
        available: bool = True,
        script_runner: Optional[ScriptRunner] = None,
    ):
        self.workspace: Dict[str, Any] = dict(workspace or {})
        self.available = available
        self.script_runner = script_runner
        self.connected = False
        self.version: Optional[str] = None
        self.executed: List[str] = []
        self.logger = structlog.get_logger().bind(component="memory_engine")

    def connect(self, version: Optional[str] = None) -> bool:
        self.connected = self.available
        self.version = version
        return self.connected

    def disconnect(self) -> None:
        self.connected = False

    def _require_session(self) -> None:
        if not self.connected:
            raise EngineConnectionError("No open engine session")

    def execute_function(self, code: str) -> str:
        self._require_session()
        self.executed.append(code)
        command = code.strip()

        if command == DEFAULT_LIST_COMMAND:
            if not self.workspace:
                return ""
            return "Your variables are:\n\n" + " ".join(sorted(self.workspace)) + "\n"

        match = _RUN_PATTERN.match(command)
        if match and self.script_runner is not None:
            self.script_runner(match.group("path"), self.workspace)
            self.logger.debug("Script run", path=match.group("path"))
        return ""

    def get_variable(self, name: str) -> Optional[WorkspaceVariable]:
        self._require_session()
        if name not in self.workspace:
            return None
        value = self.workspace[name]
        if isinstance(value, np.ndarray):
            value = value.copy()
        return WorkspaceVariable(name=name, actual_value=value)

    def put_variable(self, variable: WorkspaceVariable) -> None:
        self._require_session()
        value = variable.value_for_engine
        self.workspace[variable.name] = value.copy() if isinstance(value, np.ndarray) else value
        self.logger.debug("Variable written", variable=variable.name)


class InMemoryRepository:
    """Engineering repository session over one open iteration.

    ``write`` applies transactions by upserting each thing, by iid, into
    the containment list of its persisted container. Containers created
    in the same transaction are resolved in later passes.
    """

    def __init__(
        self,
        iteration: Optional[Iteration] = None,
        domain: Optional[DomainOfExpertise] = None,
    ):
        self._iteration = iteration or Iteration()
        self._domain = domain or DomainOfExpertise(name="System Engineering", short_name="SYS")
        self._cache: Dict[UUID, Thing] = {}
        self.transactions: List[ThingTransaction] = []
        self.log_entries: List[str] = []
        self.refresh_count = 0
        self.fail_on_write = False
        self.logger = structlog.get_logger().bind(component="memory_repository")
        self._reindex()

    @property
    def open_iteration(self) -> Iteration:
        return self._iteration

    @property
    def current_domain_of_expertise(self) -> Optional[DomainOfExpertise]:
        return self._domain

    def _index(self, thing: Thing) -> None:
        if thing.iid is not None:
            self._cache[thing.iid] = thing
        for child in thing.contained_things():
            self._index(child)

    def _reindex(self) -> None:
        self._cache = {}
        self._index(self._iteration)
        for reference in [
            *self._iteration.options,
            *self._iteration.parameter_types,
            *self._iteration.actual_finite_state_lists,
        ]:
            self._cache[reference.iid] = reference
        for state_list in self._iteration.actual_finite_state_lists:
            for state in state_list.actual_states:
                self._cache[state.iid] = state

    def get_thing_by_id(self, iid: Any, thing_type: Optional[Type[TThing]] = None) -> Optional[TThing]:
        thing = self._cache.get(iid)
        if thing is None or (thing_type is not None and not isinstance(thing, thing_type)):
            return None
        return thing

    def write(self, transaction: ThingTransaction) -> None:
        """Apply a transaction.

        Raises:
            TransferError: If a container cannot be resolved or writing is disabled
        """
        if self.fail_on_write:
            raise TransferError("Repository rejected the transaction")

        pending = list(transaction.operations)
        while pending:
            deferred = []
            for operation in pending:
                if not self._apply(operation.thing, operation.container):
                    deferred.append(operation)
            if len(deferred) == len(pending):
                names = ", ".join(operation.thing.class_kind for operation in deferred)
                raise TransferError(f"Cannot resolve the container of: {names}")
            pending = deferred

        self.transactions.append(transaction)
        self._reindex()
        self.logger.info("Transaction written", operations=len(transaction))

    def _apply(self, thing: Thing, container: Optional[Thing]) -> bool:
        if container is None or thing._container_attribute is None:
            # Top level things are replaced in place
            self._cache[thing.iid] = thing
            return True

        persisted = self._cache.get(container.iid)
        if persisted is None:
            return False

        children = getattr(persisted, thing._container_attribute)
        for index, existing in enumerate(children):
            if existing.iid == thing.iid:
                children[index] = thing
                break
        else:
            children.append(thing)

        thing.container = persisted
        self._index(thing)
        return True

    def refresh(self) -> None:
        self.refresh_count += 1
        self._reindex()

    def available_external_identifier_maps(self, tool_name: str) -> List[ExternalIdentifierMap]:
        return [
            identifier_map
            for identifier_map in self._iteration.external_identifier_maps
            if identifier_map.external_tool_name == tool_name
        ]

    def register_log_entry(self, content: str, transaction: ThingTransaction) -> None:
        transaction.log_entry = content
        self.log_entries.append(content)
