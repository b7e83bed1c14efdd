"""Synchronization controller driving connect -> load -> map -> transfer cycles."""

from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import numpy as np
import structlog

from ..config.model import AppConfig
from ..contracts.errors import MappingError, TransferError
from ..contracts.interfaces import LogEntryProvider, MappingRuleEngine, NumericEngine, Repository, ScriptParserProtocol
from ..contracts.types import AuditAction, AuditEntry, DifferenceRow, MappingDirection, SessionState
from ..domain.observable import KeyedCollection, ObservableList, ObservableValue
from ..domain.rows import MappedParameter, ParameterToVariableMapping
from ..domain.things import (
    STRUCTURED_TYPES,
    ElementBase,
    ElementDefinition,
    ElementUsage,
    ParameterBase,
    ParameterValueSet,
    same_thing,
)
from ..domain.transaction import ThingTransaction
from ..domain.workspace import WorkspaceVariable, recompose
from ..services.arrays import ArrayReconstructor, parse_number
from ..services.difference import matrix_differences, parameter_differences, variable_difference
from ..services.mapping_configuration import MappingCorrespondenceStore
from ..services.mapping_rules import VariableMappingResult, build_mapping_engine
from ..services.script_parser import ScriptParser
from .context import TransferContext


def parse_variable_listing(output: str) -> List[str]:
    """Variable names of a ``who`` listing."""
    names: List[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.lower().startswith("your variables are"):
            continue
        names.extend(line.split())
    return names


class SynchronizationController:
    """Keeps the engine workspace and the engineering repository in sync.

    Long operations (engine and repository calls) run in worker threads;
    their results are applied by the coroutine that awaited them. The
    ``is_busy`` flag signals a running operation but does not serialize
    callers.
    """

    def __init__(
        self,
        engine: NumericEngine,
        repository: Repository,
        mapping_engine: Optional[MappingRuleEngine] = None,
        mapping_store: Optional[MappingCorrespondenceStore] = None,
        script_parser: Optional[ScriptParserProtocol] = None,
        log_entry_provider: Optional[LogEntryProvider] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or AppConfig()
        self.engine = engine
        self.repository = repository
        self.mapping_store = mapping_store or MappingCorrespondenceStore(repository, self.config.mapping.tool_name)
        self.mapping_engine = mapping_engine or build_mapping_engine(repository, self.mapping_store)
        self.script_parser = script_parser or ScriptParser(self.config.script)
        self.log_entry_provider = log_entry_provider
        self.logger = structlog.get_logger().bind(component="controller")

        # Workspace
        self.input_variables: ObservableList[WorkspaceVariable] = ObservableList()
        self.workspace_variables: ObservableList[WorkspaceVariable] = ObservableList()
        self.duplicated_inputs: List[str] = []

        # Engine -> repository map results
        self.dst_map_result: KeyedCollection = KeyedCollection()
        self.parameter_variable: KeyedCollection = KeyedCollection()
        self.selected_dst_map_result_for_transfer: ObservableList[ElementBase] = ObservableList()

        # Repository -> engine map results
        self.hub_map_result: KeyedCollection = KeyedCollection()
        self.selected_hub_map_result_for_transfer: ObservableList[ParameterToVariableMapping] = ObservableList()

        # Flags and messages
        self.state: ObservableValue[SessionState] = ObservableValue(SessionState.DISCONNECTED)
        self.is_busy: ObservableValue[bool] = ObservableValue(False)
        self.is_session_open: ObservableValue[bool] = ObservableValue(False)
        self.status_messages: ObservableList[str] = ObservableList()
        self.pending_audit: ObservableList[AuditEntry] = ObservableList()
        self.audit_trail: ObservableList[AuditEntry] = ObservableList()

        self.loaded_script_path: Optional[str] = None
        self.script_name: Optional[str] = None
        self.script_without_inputs_path: Optional[str] = None

    # -- session -------------------------------------------------------------

    def _status(self, message: str) -> None:
        self.status_messages.append(message)

    def _set_busy(self, busy: bool) -> None:
        self.is_busy.value = busy
        if busy:
            self.state.value = SessionState.BUSY
        else:
            self.state.value = SessionState.CONNECTED if self.is_session_open.value else SessionState.DISCONNECTED

    async def connect(self, engine_version: Optional[str] = None) -> bool:
        """Open the engine session, then reload the workspace and the mappings.

        Never raises; on failure the controller stays disconnected and a
        status message is published.

        Returns:
            True when the session is open
        """
        version = engine_version or self.config.engine.version
        self.state.value = SessionState.CONNECTING
        log = self.logger.bind(version=version)

        try:
            connected = await asyncio.to_thread(self.engine.connect, version)
        except Exception as exc:
            log.warning("Engine connection failed", error=str(exc))
            connected = False

        if not connected:
            self.is_session_open.value = False
            self.state.value = SessionState.DISCONNECTED
            self._status("The numeric engine is not available")
            return False

        self.is_session_open.value = True
        self.state.value = SessionState.CONNECTED
        log.info("Engine session opened")
        self._status("Connected to the numeric engine")

        await self.load_workspace()
        self.load_mapping()
        return True

    def disconnect(self) -> None:
        self.engine.disconnect()
        self.is_session_open.value = False
        self.is_busy.value = False
        self.state.value = SessionState.DISCONNECTED
        self.workspace_variables.clear()
        self.logger.info("Engine session closed")

    # -- scripts -------------------------------------------------------------

    def _identify(self, variable: WorkspaceVariable) -> None:
        if self.script_name:
            variable.derive_identifier(self.script_name)
        elif variable.identifier is None:
            variable.identifier = variable.name

    def load_script(self, path: Union[str, Path]) -> List[WorkspaceVariable]:
        """Parse a script and make its decomposed inputs the input variables.

        Raises:
            ScriptParseError: If the script cannot be parsed
        """
        self.unload_script()

        result = self.script_parser.parse(str(path))
        self.loaded_script_path = str(path)
        self.script_name = Path(path).stem
        self.script_without_inputs_path = result.script_without_inputs_path
        self.duplicated_inputs = list(result.duplicated_names)
        if self.duplicated_inputs:
            self._status(f"Inputs assigned more than once were ignored: {', '.join(self.duplicated_inputs)}")

        variables: List[WorkspaceVariable] = []
        for variable in result.variables:
            for decomposed in variable.decompose():
                self._identify(decomposed)
                variables.append(decomposed)

        self.input_variables.reset(variables)
        self.logger.info("Script loaded", script=self.script_name, inputs=len(variables))

        self.load_mapping()
        return variables

    def unload_script(self) -> None:
        """Forget the loaded script, deleting its temporary copy."""
        if self.script_without_inputs_path and self.config.script.delete_temp_on_unload:
            Path(self.script_without_inputs_path).unlink(missing_ok=True)

        self.loaded_script_path = None
        self.script_name = None
        self.script_without_inputs_path = None
        self.duplicated_inputs = []
        self.input_variables.clear()

    async def run_script(self) -> bool:
        """Push the inputs, run the script copy, then reload workspace and mappings."""
        if not self.script_without_inputs_path:
            self._status("No script loaded")
            return False

        self._set_busy(True)
        try:
            for root in [variable for variable in self.input_variables if variable.parent_name is None]:
                self._refresh_parent_array(root, self.input_variables)
                await asyncio.to_thread(self.engine.put_variable, root)

            command = self.config.engine.run_command.format(path=self.script_without_inputs_path)
            await asyncio.to_thread(self.engine.execute_function, command)
            self.logger.info("Script executed", script=self.script_name)

            await self.load_workspace()
        finally:
            self._set_busy(False)

        self.load_mapping()
        return True

    @staticmethod
    def _refresh_parent_array(root: WorkspaceVariable, collection: Sequence[WorkspaceVariable]) -> None:
        if root.array_value is None:
            return
        children = [variable for variable in collection if variable.parent_name == root.name]
        for child in children:
            SynchronizationController._refresh_parent_array(child, collection)
        if children:
            root.array_value = recompose(children, root.name)

    # -- workspace -----------------------------------------------------------

    async def load_workspace(self) -> List[WorkspaceVariable]:
        """Read every live engine variable and merge it into the workspace."""
        listing = await asyncio.to_thread(self.engine.execute_function, self.config.engine.list_command)
        fetched: List[WorkspaceVariable] = []
        for name in parse_variable_listing(listing):
            variable = await asyncio.to_thread(self.engine.get_variable, name)
            if variable is not None:
                fetched.append(variable)

        self._merge_workspace(fetched)
        self.logger.info("Workspace loaded", variables=len(fetched))
        return list(self.workspace_variables)

    def _merge_workspace(self, fetched: List[WorkspaceVariable]) -> None:
        """Add unseen variables, update known ones and reconcile decomposed cells.

        Cells that disappear are pruned. A cell that reappears gets back
        its deterministic identifier.
        """
        current = list(self.workspace_variables)
        roots = {variable.name: variable for variable in current if variable.parent_name is None}
        merged: List[WorkspaceVariable] = []

        for incoming in fetched:
            existing = roots.get(incoming.name)
            fresh = incoming.decompose()
            for variable in fresh:
                self._identify(variable)

            if existing is None:
                merged.extend(fresh)
                continue

            existing.actual_value = incoming.actual_value
            existing.array_value = incoming.array_value
            known = {variable.name: variable for variable in current if _is_descendant(variable, existing.name)}
            merged.append(existing)
            merged.extend(self._reuse_cells(fresh[1:], known))

        self.workspace_variables.reset(merged)
        self._mirror_inputs()

    def _reuse_cells(
        self,
        fresh: List[WorkspaceVariable],
        known: dict,
    ) -> List[WorkspaceVariable]:
        cells: List[WorkspaceVariable] = []
        for cell in fresh:
            previous = known.get(cell.name)
            if previous is None:
                cells.append(cell)
                continue
            previous.actual_value = cell.actual_value
            previous.array_value = cell.array_value
            previous.index = cell.index
            cells.append(previous)
        return cells

    def _mirror_inputs(self) -> None:
        workspace = {variable.name: variable for variable in self.workspace_variables}
        for variable in self.input_variables:
            live = workspace.get(variable.name)
            if live is not None:
                variable.actual_value = live.actual_value
                variable.array_value = live.array_value

    def _find_variable(self, name: str) -> Optional[WorkspaceVariable]:
        for collection in (self.workspace_variables, self.input_variables):
            for variable in collection:
                if variable.name == name:
                    return variable
        return None

    # -- mapping -------------------------------------------------------------

    def _mapping_candidates(self) -> List[WorkspaceVariable]:
        candidates: List[WorkspaceVariable] = []
        seen = set()
        for variable in [*self.input_variables, *self.workspace_variables]:
            if variable.identifier in seen:
                continue
            seen.add(variable.identifier)
            candidates.append(variable)
        return candidates

    def load_mapping(self) -> None:
        """Re-apply saved correspondences for both directions.

        Calling it twice without workspace changes leaves the map results
        unchanged.
        """
        self._ensure_mapping_configuration()
        candidates = self._mapping_candidates()

        mapped_variables = self.mapping_store.load_for_direction(MappingDirection.FROM_DST_TO_HUB, candidates)
        valid = [variable for variable in mapped_variables if variable.is_valid()]
        if valid:
            self.map_variables(valid)

        rows = self.mapping_store.load_mapping_rows(candidates)
        if rows:
            self.map_rows(rows)

        self.logger.debug("Mapping loaded", variables=len(valid), rows=len(rows))

    def _ensure_mapping_configuration(self) -> None:
        if not self.mapping_store.is_configured:
            self.mapping_store.select_or_create(self.config.mapping.configuration_name)

    def _reuse_pending_elements(self, variables: List[WorkspaceVariable]) -> None:
        # Later mappings build on the clones already waiting for transfer
        for variable in variables:
            definition = variable.selected_element_definition
            pending = None
            if definition is not None:
                pending = self.dst_map_result.get(definition.iid)
            elif not variable.selected_element_usages:
                pending = next(
                    (
                        element
                        for element in self.dst_map_result.values()
                        if isinstance(element, ElementDefinition) and element.name == variable.name
                    ),
                    None,
                )
            if isinstance(pending, ElementDefinition) and pending is not definition:
                variable.selected_element_definition = pending
                if variable.selected_parameter is not None:
                    variable.selected_parameter = next(
                        (parameter for parameter in pending.parameters if same_thing(parameter, variable.selected_parameter)),
                        variable.selected_parameter,
                    )

            variable.selected_element_usages = [
                self.dst_map_result.get(usage.iid) or usage for usage in variable.selected_element_usages
            ]

    def map_variables(self, variables: List[WorkspaceVariable]) -> VariableMappingResult:
        """Map engine variables onto repository elements, last write wins per parameter."""
        accepted = []
        for variable in variables:
            if variable.is_valid():
                accepted.append(variable)
            else:
                self._status(f"Mapping of {variable.name} rejected: incompatible parameter type")
                self.logger.warning("Mapping rejected", variable=variable.name)

        if not accepted:
            return VariableMappingResult()

        self._ensure_mapping_configuration()
        result = VariableMappingResult()
        for variable in accepted:
            # A rejected variable leaves the others mapped
            self._reuse_pending_elements([variable])
            try:
                single: VariableMappingResult = self.mapping_engine.map(MappingDirection.FROM_DST_TO_HUB, [variable])
            except MappingError as exc:
                self._status(f"Mapping of {variable.name} rejected: {exc.message}")
                self.logger.warning("Mapping rejected", variable=variable.name, error=exc.message)
                continue
            self._merge_mapping(single)
            result.parameters.extend(single.parameters)
            for element in single.elements:
                if not any(element is known for known in result.elements):
                    result.elements.append(element)

        self.logger.info("Variables mapped", elements=len(result.elements), parameters=len(result.parameters))
        return result

    def _merge_mapping(self, result: VariableMappingResult) -> None:
        for element in result.elements:
            self.dst_map_result.upsert(element.iid, element)
        for mapped in result.parameters:
            self.parameter_variable.upsert(mapped.parameter.iid, mapped)
            original = self.repository.get_thing_by_id(mapped.parameter.iid)
            self._record_pending(AuditEntry(
                direction=MappingDirection.FROM_DST_TO_HUB,
                thing_kind=mapped.parameter.class_kind,
                name=_parameter_name(mapped.parameter),
                action=AuditAction.CREATED if original is None else AuditAction.UPDATED,
                old_value=_first_value_set(original),
                new_value=_first_value_set(mapped.parameter),
            ))

    def map_rows(self, rows: List[ParameterToVariableMapping]) -> List[ParameterToVariableMapping]:
        """Map repository values onto engine variables, last write wins per parameter value."""
        mapped: List[ParameterToVariableMapping] = self.mapping_engine.map(MappingDirection.FROM_HUB_TO_DST, rows)

        accepted = []
        for row in mapped:
            if row.verify():
                self.hub_map_result.upsert(row.key, row)
                target = self._find_variable(row.variable.name)
                self._record_pending(AuditEntry(
                    direction=MappingDirection.FROM_HUB_TO_DST,
                    thing_kind="WorkspaceVariable",
                    name=row.variable.name,
                    action=AuditAction.UPDATED,
                    old_value=_snapshot(target.actual_value) if target is not None else None,
                    new_value=row.value,
                ))
                accepted.append(row)
            else:
                name = row.variable.name if row.variable is not None else "?"
                self._status(f"Mapping of {name} rejected: incompatible value")
                self.logger.warning("Mapping row rejected", variable=name)

        self.logger.info("Parameters mapped", rows=len(accepted))
        return accepted

    def _record_pending(self, entry: AuditEntry) -> None:
        # One pending entry per target, the latest mapping wins
        remaining = [
            pending for pending in self.pending_audit
            if not (pending.direction is entry.direction and pending.name == entry.name)
        ]
        self.pending_audit.reset([*remaining, entry])

    def cancel_pending_transfers(self) -> None:
        """Clear selections and pending audit entries; running transfers are not aborted."""
        self.selected_dst_map_result_for_transfer.clear()
        self.selected_hub_map_result_for_transfer.clear()
        self.pending_audit.clear()

    # -- transfer to the repository ------------------------------------------

    def _capture_log_entry(self) -> Optional[str]:
        if not self.config.transfer.require_log_entry:
            return ""
        if self.log_entry_provider is None:
            return ""
        return self.log_entry_provider()

    async def transfer_to_repository(self) -> bool:
        """Write the selected elements and their mapped parameters to the repository.

        Returns:
            False when nothing was selected or the log entry was cancelled

        Raises:
            TransferError: If building or committing the transaction failed
        """
        selected = list(self.selected_dst_map_result_for_transfer)
        if not selected:
            self._status("Nothing selected for transfer")
            return False

        log_entry = self._capture_log_entry()
        if log_entry is None:
            self._status("Transfer cancelled")
            return False

        context = TransferContext(MappingDirection.FROM_DST_TO_HUB, logger=self.logger)
        self._set_busy(True)
        context.start()
        try:
            iteration_clone = self.repository.open_iteration.clone()
            transaction = ThingTransaction(iteration_clone)
            if log_entry:
                transaction.log_entry = log_entry
                self.repository.register_log_entry(log_entry, transaction)

            transferred: List[MappedParameter] = []
            with context.time_step("build"):
                for element in selected:
                    transferred.extend(self._prepare_element(element, transaction, iteration_clone, context))

                self.mapping_store.add_parameter_variable_correspondences(
                    [(mapped.parameter, mapped.variable) for mapped in transferred]
                )
                self.mapping_store.persist(transaction, iteration_clone)

            with context.time_step("write"):
                await asyncio.to_thread(self.repository.write, transaction)
                if self.config.transfer.refresh_after_transfer:
                    await asyncio.to_thread(self.repository.refresh)

            with context.time_step("update value sets"):
                await self._update_parameters_value_sets(transferred)

            for element in selected:
                self.dst_map_result.remove(element.iid)
            for mapped in transferred:
                self.parameter_variable.remove(mapped.parameter.iid)

            self.audit_trail.extend(context.commit())
            self._drop_pending_audit(MappingDirection.FROM_DST_TO_HUB)
            self.mapping_store.refresh()
            context.end()
        except Exception as exc:
            context.discard()
            context.logger.error("Transfer to the repository failed", error=str(exc))
            raise TransferError(
                f"Transfer to the repository failed: {exc}", {"transfer_id": context.transfer_id}
            ) from exc
        finally:
            self.selected_dst_map_result_for_transfer.clear()
            self._set_busy(False)

        self._status(f"{len(selected)} element(s) transferred to the repository")
        self.load_mapping()
        return True

    def _is_persisted(self, thing: Any) -> bool:
        return thing.iid is not None and self.repository.get_thing_by_id(thing.iid) is not None

    def _register(self, thing: Any, container: Any, transaction: ThingTransaction) -> AuditAction:
        if self._is_persisted(thing):
            transaction.create_or_update(thing)
            return AuditAction.UPDATED
        transaction.create(thing, container)
        return AuditAction.CREATED

    def _prepare_element(
        self,
        element: ElementBase,
        transaction: ThingTransaction,
        iteration_clone: Any,
        context: TransferContext,
    ) -> List[MappedParameter]:
        """Register an element clone and its mapped parameters or overrides."""
        if isinstance(element, ElementDefinition):
            element.container = iteration_clone
            iteration_clone.elements = [
                existing for existing in iteration_clone.elements if not same_thing(existing, element)
            ] + [element]
            action = self._register(element, iteration_clone, transaction)
            parameters: List[ParameterBase] = list(element.parameters)
        else:
            action = self._register(element, element.container, transaction)
            parameters = list(element.parameter_overrides) if isinstance(element, ElementUsage) else []

        context.record(element.class_kind, element.name, action)

        transferred: List[MappedParameter] = []
        for parameter in parameters:
            mapped = self.parameter_variable.get(parameter.iid)
            if mapped is None:
                continue

            original = self.repository.get_thing_by_id(parameter.iid)
            parameter_action = self._register(parameter, element, transaction)
            for value_set in parameter.value_sets:
                self._register(value_set, parameter, transaction)

            old_value = _first_value_set(original)
            new_value = _first_value_set(parameter)
            context.record(parameter.class_kind, _parameter_name(parameter), parameter_action, old_value, new_value)
            transferred.append(mapped)

        return transferred

    async def _update_parameters_value_sets(self, transferred: List[MappedParameter]) -> None:
        """Re-apply mapped values onto the refreshed value sets where the server state differs."""
        transaction = ThingTransaction(self.repository.open_iteration.clone())
        for mapped in transferred:
            refreshed = self.repository.get_thing_by_id(mapped.parameter.iid)
            if not isinstance(refreshed, ParameterBase):
                continue
            for value_set in mapped.parameter.value_sets:
                current = refreshed.query_value_set(value_set.actual_option, value_set.actual_state)
                if current is None:
                    continue
                if current.computed != value_set.computed or current.value_switch is not value_set.value_switch:
                    clone = current.clone()
                    clone.computed = list(value_set.computed)
                    clone.value_switch = value_set.value_switch
                    transaction.create_or_update(clone)

        if transaction.is_empty:
            return

        await asyncio.to_thread(self.repository.write, transaction)
        await asyncio.to_thread(self.repository.refresh)

    def _drop_pending_audit(self, direction: MappingDirection) -> None:
        remaining = [entry for entry in self.pending_audit if entry.direction is not direction]
        if len(remaining) != len(self.pending_audit):
            self.pending_audit.reset(remaining)

    # -- transfer to the engine ----------------------------------------------

    async def transfer_to_engine(self) -> bool:
        """Write the selected mapped repository values into the engine workspace.

        Returns:
            False when nothing was selected

        Raises:
            TransferError: If writing to the engine or persisting the mapping failed
        """
        selected = list(self.selected_hub_map_result_for_transfer)
        if not selected:
            self._status("Nothing selected for transfer")
            return False

        context = TransferContext(MappingDirection.FROM_HUB_TO_DST, logger=self.logger)
        self._set_busy(True)
        context.start()
        try:
            transferred: List[ParameterToVariableMapping] = []
            for row in selected:
                name = row.variable.name if row.variable is not None else "?"
                if not row.verify():
                    context.logger.warning("Skipping invalid mapping row", variable=name)
                    self._status(f"Skipped {name}: the mapped value is no longer valid")
                    continue

                target = self._find_variable(name)
                if target is None:
                    context.logger.warning("Target variable not in the workspace", variable=name)
                    self._status(f"Skipped {name}: not in the workspace")
                    continue

                old_value = _snapshot(target.value_for_engine)
                root = self._apply_row(row, target)
                await asyncio.to_thread(self.engine.put_variable, root)

                context.record("WorkspaceVariable", target.name, AuditAction.UPDATED, old_value, _snapshot(target.value_for_engine))
                self.hub_map_result.remove(row.key)
                transferred.append(row)

            self._ensure_mapping_configuration()
            self.mapping_store.add_mapping_row_correspondences(transferred)
            iteration_clone = self.repository.open_iteration.clone()
            transaction = ThingTransaction(iteration_clone)
            self.mapping_store.persist(transaction, iteration_clone)
            with context.time_step("write"):
                await asyncio.to_thread(self.repository.write, transaction)
                await asyncio.to_thread(self.repository.refresh)

            self.audit_trail.extend(context.commit())
            self._drop_pending_audit(MappingDirection.FROM_HUB_TO_DST)
            self.mapping_store.refresh()
            context.end()
        except Exception as exc:
            context.discard()
            context.logger.error("Transfer to the engine failed", error=str(exc))
            raise TransferError(
                f"Transfer to the engine failed: {exc}", {"transfer_id": context.transfer_id}
            ) from exc
        finally:
            self.selected_hub_map_result_for_transfer.clear()
            self._set_busy(False)

        self._status(f"{len(transferred)} value(s) transferred to the engine")
        self.load_mapping()
        return True

    def _apply_row(self, row: ParameterToVariableMapping, target: WorkspaceVariable) -> WorkspaceVariable:
        """Set the mapped value on the target and return the root variable to write."""
        parameter_type = row.parameter.parameter_type

        if isinstance(parameter_type, STRUCTURED_TYPES):
            array = ArrayReconstructor.to_workspace_array(
                parameter_type,
                row.value,
                row.variable.row_column_selection_to_dst,
                row.variable.assignments_to_dst,
            )
            self._reconcile_array(target, array)
            row.variable.array_value = target.array_value
            row.variable.actual_value = target.actual_value
        else:
            target.actual_value = _coerce_scalar(row.value)
            row.variable.actual_value = target.actual_value

        return self._propagate_to_parents(target)

    def _reconcile_array(self, target: WorkspaceVariable, array: np.ndarray) -> None:
        """Replace the target's array, keeping unchanged cells and pruning stale ones."""
        incoming = WorkspaceVariable(name=target.name, actual_value=array)
        fresh = incoming.decompose()
        for variable in fresh[1:]:
            self._identify(variable)
        target.actual_value = incoming.actual_value
        target.array_value = incoming.array_value

        for collection in (self.workspace_variables, self.input_variables):
            if not any(variable is target for variable in collection):
                continue
            known = {variable.name: variable for variable in collection if _is_descendant(variable, target.name)}
            cells = self._reuse_cells(fresh[1:], known)
            others = [variable for variable in collection if not _is_descendant(variable, target.name)]
            position = next(index for index, variable in enumerate(others) if variable is target)
            collection.reset(others[:position + 1] + cells + others[position + 1:])

    def _propagate_to_parents(self, variable: WorkspaceVariable) -> WorkspaceVariable:
        current = variable
        while current.parent_name is not None and current.index is not None:
            parent = self._find_variable(current.parent_name)
            if parent is None or parent.array_value is None:
                break
            value = current.value_for_engine
            array = _holding(parent.array_value, value)
            array[current.index[0], current.index[1]] = value
            parent.array_value = array
            current = parent
        return current

    # -- differences ---------------------------------------------------------

    def compute_dst_differences(self) -> List[DifferenceRow]:
        """Differences between repository values and the pending engine -> repository mapping."""
        rows: List[DifferenceRow] = []
        for mapped in self.parameter_variable.values():
            original = self.repository.get_thing_by_id(mapped.parameter.iid)
            rows.extend(parameter_differences(original, mapped.parameter))
        return rows

    def compute_hub_differences(self) -> List[DifferenceRow]:
        """Differences between engine values and the pending repository -> engine mapping."""
        rows: List[DifferenceRow] = []
        for mapping in self.hub_map_result.values():
            target = self._find_variable(mapping.variable.name)
            parameter_type = mapping.parameter.parameter_type
            if isinstance(parameter_type, STRUCTURED_TYPES):
                new_array = ArrayReconstructor.to_workspace_array(
                    parameter_type,
                    mapping.value,
                    mapping.variable.row_column_selection_to_dst,
                    mapping.variable.assignments_to_dst,
                )
                old_array = target.array_value if target is not None else None
                for cell in matrix_differences(old_array, new_array):
                    rows.append(DifferenceRow(
                        f"{mapping.variable.name}[{cell.row},{cell.column}]",
                        cell.old_value,
                        cell.new_value,
                        cell.difference,
                        cell.percent_difference,
                    ))
            else:
                proposed = WorkspaceVariable(name=mapping.variable.name, actual_value=_coerce_scalar(mapping.value))
                rows.append(variable_difference(target, proposed))
        return rows


def _is_descendant(variable: WorkspaceVariable, root_name: str) -> bool:
    return variable.parent_name is not None and variable.name.startswith(f"{root_name}[")


def _coerce_scalar(value: Any) -> Any:
    try:
        number = parse_number(value)
    except MappingError:
        return value
    return int(number) if number.is_integer() and "." not in str(value) and "e" not in str(value).lower() else number


def _holding(array: np.ndarray, value: Any) -> np.ndarray:
    """Copy of the array with a dtype that stores the value without loss."""
    if array.dtype == object:
        return array.copy()
    if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
        value_type = np.min_scalar_type(value)
        if np.can_cast(value_type, array.dtype, casting="safe"):
            return array.copy()
        return array.astype(np.result_type(array.dtype, value_type))
    return array.astype(object)


def _snapshot(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def _first_value_set(parameter: Optional[ParameterBase]) -> Optional[str]:
    if parameter is None or not parameter.value_sets:
        return None
    value_set: ParameterValueSet = parameter.value_sets[0]
    values = value_set.actual_value
    return "; ".join(values) if len(values) > 1 else (values[0] if values else None)


def _parameter_name(parameter: ParameterBase) -> str:
    type_name = parameter.parameter_type.short_name if parameter.parameter_type else ""
    element = parameter.element_name()
    return f"{element}.{type_name}" if element else type_name
