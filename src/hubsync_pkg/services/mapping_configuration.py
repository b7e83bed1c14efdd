"""Persistence of mapping correspondences in an external identifier map."""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..contracts.errors import MappingError
from ..contracts.interfaces import Repository
from ..contracts.types import MappingDirection
from ..domain.rows import ParameterToVariableMapping, ValueSetValueRow, default_rows
from ..domain.things import (
    STRUCTURED_TYPES,
    ActualFiniteState,
    ElementDefinition,
    ElementUsage,
    ExternalIdentifierMap,
    IdCorrespondence,
    Iteration,
    Option,
    Parameter,
    ParameterBase,
    ParameterOverride,
    ParameterSwitchKind,
    ParameterType,
    ParameterValueSet,
    SampledFunctionParameterType,
    Thing,
    same_thing,
)
from ..domain.transaction import ThingTransaction
from ..domain.workspace import WorkspaceVariable

logger = structlog.get_logger()

# Containers are applied before the things they contain
_RESOLUTION_ORDER = (ElementDefinition, ElementUsage, Parameter, ParameterOverride, Option, ActualFiniteState, ParameterType)


class ExternalIdentifier(BaseModel):
    """Serializable external side of a correspondence."""

    mapping_direction: MappingDirection = Field(MappingDirection.FROM_DST_TO_HUB, alias="MappingDirection")
    value_index: Optional[int] = Field(None, alias="ValueIndex")
    identifier: Any = Field(None, alias="Identifier")
    parameter_switch_kind: ParameterSwitchKind = Field(ParameterSwitchKind.MANUAL, alias="ParameterSwitchKind")

    model_config = {"populate_by_name": True}

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text: str) -> "ExternalIdentifier":
        return cls.model_validate_json(text)


class MappingCorrespondenceStore:
    """Round-trips correspondences between repository things and workspace variables.

    The store works on a deep clone of the selected external identifier
    map; changes reach the repository through :meth:`persist`.
    """

    def __init__(self, repository: Repository, tool_name: str):
        self.repository = repository
        self.tool_name = tool_name
        self._map: Optional[ExternalIdentifierMap] = None
        self.logger = structlog.get_logger().bind(tool=tool_name)

    # -- map selection -------------------------------------------------------

    @property
    def external_identifier_map(self) -> Optional[ExternalIdentifierMap]:
        return self._map

    @external_identifier_map.setter
    def external_identifier_map(self, value: Optional[ExternalIdentifierMap]) -> None:
        self._map = value
        if value is not None:
            self.logger = structlog.get_logger().bind(tool=self.tool_name, configuration=value.name)

    @property
    def is_configured(self) -> bool:
        return self._map is not None

    def available_maps(self) -> List[ExternalIdentifierMap]:
        return self.repository.available_external_identifier_maps(self.tool_name)

    def create_external_identifier_map(self, name: str) -> ExternalIdentifierMap:
        """New, not yet persisted map owned by the current domain of expertise."""
        return ExternalIdentifierMap(
            name=name,
            external_tool_name=self.tool_name,
            external_model_name=name,
            owner=self.repository.current_domain_of_expertise,
        )

    def select_or_create(self, name: str) -> ExternalIdentifierMap:
        """Use the existing map of that name for the tool, or start a new one."""
        for existing in self.available_maps():
            if existing.name == name:
                self.external_identifier_map = existing.clone(deep=True)
                break
        else:
            self.external_identifier_map = self.create_external_identifier_map(name)
        return self._map

    # -- correspondences -----------------------------------------------------

    def entries(self) -> List[Tuple[IdCorrespondence, ExternalIdentifier]]:
        """Parsed correspondences, corrupted entries dropped."""
        if self._map is None:
            return []

        parsed = []
        for correspondence in self._map.correspondences:
            try:
                parsed.append((correspondence, ExternalIdentifier.from_json(correspondence.external_id)))
            except PydanticValidationError:
                self.logger.debug("Dropping unreadable correspondence", correspondence=str(correspondence.iid))
        return parsed

    def add_correspondence(
        self,
        internal_id: UUID,
        identifier: Any,
        direction: MappingDirection = MappingDirection.FROM_DST_TO_HUB,
        value_index: Optional[int] = None,
        switch_kind: ParameterSwitchKind = ParameterSwitchKind.MANUAL,
    ) -> IdCorrespondence:
        """Add or update the correspondence of (thing, identifier, direction)."""
        return self._upsert(
            internal_id,
            ExternalIdentifier(
                mapping_direction=direction,
                identifier=identifier,
                value_index=value_index,
                parameter_switch_kind=switch_kind,
            ),
        )

    def _upsert(self, internal_id: UUID, external: ExternalIdentifier) -> IdCorrespondence:
        if self._map is None:
            raise MappingError("No mapping configuration selected")

        for correspondence, existing in self.entries():
            if (
                correspondence.internal_thing == internal_id
                and existing.identifier == external.identifier
                and existing.mapping_direction is external.mapping_direction
            ):
                correspondence.external_id = external.to_json()
                return correspondence

        correspondence = IdCorrespondence(internal_thing=internal_id, external_id=external.to_json(), container=self._map)
        self._map.correspondences.append(correspondence)
        return correspondence

    def _drop_other_identifiers(
        self,
        internal_id: UUID,
        identifier: Any,
        direction: MappingDirection,
        value_index: Optional[int] = None,
    ) -> None:
        # One authoritative correspondence per (thing, direction[, value index])
        stale = [
            correspondence
            for correspondence, existing in self.entries()
            if correspondence.internal_thing == internal_id
            and existing.mapping_direction is direction
            and existing.value_index == value_index
            and existing.identifier != identifier
        ]
        for correspondence in stale:
            self._map.correspondences.remove(correspondence)

    def add_parameter_variable_correspondences(self, mapped: Iterable[Tuple[ParameterBase, WorkspaceVariable]]) -> None:
        """Record engine -> repository mappings, last write wins per parameter.

        The containing element usage (or element definition) is recorded
        with the same identifier.
        """
        direction = MappingDirection.FROM_DST_TO_HUB
        for parameter, variable in mapped:
            self._drop_other_identifiers(parameter.iid, variable.identifier, direction)
            self.add_correspondence(parameter.iid, variable.identifier, direction)

            container = parameter.get_container_of_type(ElementUsage) or parameter.get_container_of_type(ElementDefinition)
            if container is not None:
                self.add_correspondence(container.iid, variable.identifier, direction)

    def add_mapping_row_correspondences(self, mappings: Iterable[ParameterToVariableMapping]) -> None:
        """Record repository -> engine mappings, keyed by value set and value index."""
        direction = MappingDirection.FROM_HUB_TO_DST
        for mapping in mappings:
            row = mapping.value_row
            if row is None or mapping.variable is None:
                continue
            internal = row.value_set.iid if row.value_set is not None else row.container.iid
            self._drop_other_identifiers(internal, mapping.variable.identifier, direction, row.index)
            self.add_correspondence(internal, mapping.variable.identifier, direction, row.index, row.switch_kind)

    # -- loading -------------------------------------------------------------

    def _resolve(self, internal_id: Optional[UUID]) -> Optional[Thing]:
        if internal_id is None:
            return None
        thing = self.repository.get_thing_by_id(internal_id)
        if thing is None:
            self.logger.debug("Skipping stale correspondence", internal_thing=str(internal_id))
        return thing

    def load_for_direction(
        self,
        direction: MappingDirection,
        candidates: List[WorkspaceVariable],
    ) -> List[WorkspaceVariable]:
        """Apply saved engine -> repository correspondences to candidate variables.

        Returns:
            The candidates that received at least one selection
        """
        by_identifier: Dict[Any, List[Thing]] = {}
        for correspondence, external in self.entries():
            if external.mapping_direction is not direction:
                continue
            thing = self._resolve(correspondence.internal_thing)
            if thing is not None:
                by_identifier.setdefault(external.identifier, []).append(thing)

        mapped: List[WorkspaceVariable] = []
        for variable in candidates:
            things = by_identifier.get(variable.identifier)
            if not things:
                continue
            for thing in sorted(things, key=_resolution_rank):
                self._apply_to_variable(variable, thing)
            if isinstance(variable.selected_parameter_type, SampledFunctionParameterType) and not variable.assignments_to_hub:
                variable.assignments_to_hub = default_rows(variable.selected_parameter_type)
            mapped.append(variable)
        return mapped

    def _apply_to_variable(self, variable: WorkspaceVariable, thing: Thing) -> None:
        if isinstance(thing, ElementDefinition):
            variable.selected_element_definition = thing.clone(deep=True)
            if isinstance(variable.selected_parameter, Parameter):
                variable.selected_parameter = self._parameter_in_selection(variable, variable.selected_parameter)

        elif isinstance(thing, ElementUsage):
            if not any(same_thing(usage, thing) for usage in variable.selected_element_usages):
                variable.selected_element_usages.append(thing.clone(deep=True))

        elif isinstance(thing, Parameter):
            variable.selected_parameter = self._parameter_in_selection(variable, thing)
            variable.selected_parameter_type = thing.parameter_type
            variable.selected_scale = variable.selected_scale or thing.scale

        elif isinstance(thing, ParameterOverride):
            parameter = thing.parameter
            if variable.selected_element_definition is None and parameter is not None:
                definition = parameter.get_container_of_type(ElementDefinition)
                variable.selected_element_definition = definition.clone(deep=True) if definition else None
            if parameter is not None:
                variable.selected_parameter = self._parameter_in_selection(variable, parameter)
                variable.selected_parameter_type = parameter.parameter_type

        elif isinstance(thing, Option):
            variable.selected_option = thing

        elif isinstance(thing, ActualFiniteState):
            variable.selected_state = thing

        elif isinstance(thing, ParameterType):
            variable.selected_parameter_type = thing

    @staticmethod
    def _parameter_in_selection(variable: WorkspaceVariable, parameter: Parameter) -> Parameter:
        definition = variable.selected_element_definition
        if definition is not None:
            for candidate in definition.parameters:
                if same_thing(candidate, parameter):
                    return candidate
        return parameter

    def load_mapping_rows(self, candidates: List[WorkspaceVariable]) -> List[ParameterToVariableMapping]:
        """Rebuild saved repository -> engine mapping rows for the candidates."""
        variables = {variable.identifier: variable for variable in candidates if variable.identifier}
        rows: List[ParameterToVariableMapping] = []

        for correspondence, external in self.entries():
            if external.mapping_direction is not MappingDirection.FROM_HUB_TO_DST:
                continue
            variable = variables.get(external.identifier)
            if variable is None:
                continue
            thing = self._resolve(correspondence.internal_thing)
            row = self._value_row(thing, external)
            if row is None:
                continue
            rows.append(ParameterToVariableMapping(row.container, row, variable))
        return rows

    def _value_row(self, thing: Optional[Thing], external: ExternalIdentifier) -> Optional[ValueSetValueRow]:
        if isinstance(thing, ParameterValueSet):
            value_set = thing
            parameter = thing.container
        elif isinstance(thing, ParameterBase) and thing.value_sets:
            value_set = thing.value_sets[0]
            parameter = thing
        else:
            return None

        if not isinstance(parameter, ParameterBase):
            return None

        common = dict(
            container=parameter,
            value_set=value_set,
            scale=parameter.scale,
            option=value_set.actual_option,
            state=value_set.actual_state,
            switch_kind=external.parameter_switch_kind,
        )
        values = _values_for_switch(value_set, external.parameter_switch_kind)

        if isinstance(parameter.parameter_type, STRUCTURED_TYPES):
            return ValueSetValueRow(value=list(values), **common)

        index = external.value_index or 0
        if index >= len(values):
            self.logger.debug("Skipping correspondence past the value set end", value_index=index)
            return None
        return ValueSetValueRow(value=values[index], index=index, **common)

    # -- persistence ---------------------------------------------------------

    def persist(self, transaction: ThingTransaction, iteration_clone: Iteration) -> None:
        """Register the map and its correspondences in the transaction.

        Must be called once per transfer, after every mapping decision.
        """
        if self._map is None:
            return

        if self._map.iid is None:
            self._map.iid = uuid4()
            self._map.container = iteration_clone
            iteration_clone.external_identifier_maps.append(self._map)

        for correspondence in self._map.correspondences:
            correspondence.container = self._map
            if correspondence.iid is None:
                correspondence.iid = uuid4()
                transaction.create(correspondence, self._map)
            else:
                transaction.create_or_update(correspondence)

        transaction.create_or_update(self._map)
        self.logger.info("Mapping configuration processed", correspondences=len(self._map.correspondences))

    def refresh(self) -> None:
        """Reload the persisted map, dropping local changes."""
        if self._map is None or self._map.iid is None:
            return
        persisted = self.repository.get_thing_by_id(self._map.iid, ExternalIdentifierMap)
        if persisted is not None:
            self._map = persisted.clone(deep=True)


def _resolution_rank(thing: Thing) -> int:
    for rank, thing_type in enumerate(_RESOLUTION_ORDER):
        if isinstance(thing, thing_type):
            return rank
    return len(_RESOLUTION_ORDER)


def _values_for_switch(value_set: ParameterValueSet, switch_kind: ParameterSwitchKind) -> List[str]:
    if switch_kind is ParameterSwitchKind.COMPUTED:
        return value_set.computed
    if switch_kind is ParameterSwitchKind.REFERENCE:
        return value_set.reference
    return value_set.manual
