"""Mapping rules and the direction-keyed rule registry."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from ..contracts.errors import IncompatibleTypeError, MappingError
from ..contracts.interfaces import MappingRule, Repository
from ..contracts.types import MappingDirection
from ..domain.rows import (
    MappedParameter,
    ParameterToVariableMapping,
    default_rows,
    time_tagged_index,
)
from ..domain.things import (
    ArrayParameterType,
    DomainOfExpertise,
    ElementBase,
    ElementDefinition,
    Parameter,
    ParameterBase,
    ParameterSwitchKind,
    ParameterValueSet,
    SampledFunctionParameterType,
    same_thing,
)
from ..domain.workspace import WorkspaceVariable
from .arrays import ArrayReconstructor, format_invariant
from .mapping_configuration import MappingCorrespondenceStore
from .validity import is_type_compatible

logger = structlog.get_logger()


@dataclass
class RuleInfo:
    """Information about a registered rule."""

    name: str
    direction: MappingDirection
    rule: MappingRule


class MappingEngine:
    """Dispatches mapping requests to the rule registered for a direction."""

    def __init__(self):
        self._rules: Dict[MappingDirection, RuleInfo] = {}

    def register(self, rule: MappingRule, name: Optional[str] = None) -> None:
        """Register a rule, replacing the previous one of the same direction.

        Args:
            rule: Rule exposing ``direction`` and ``transform``
            name: Display name, the rule class name by default
        """
        self._rules[rule.direction] = RuleInfo(
            name=name or type(rule).__name__,
            direction=rule.direction,
            rule=rule,
        )

    def get_rule(self, direction: MappingDirection) -> MappingRule:
        """Get the rule of a direction.

        Raises:
            KeyError: If no rule is registered for the direction
        """
        if direction not in self._rules:
            raise KeyError(f"No mapping rule registered for {direction.value}")
        return self._rules[direction].rule

    def list_rules(self) -> Dict[str, str]:
        return {direction.value: info.name for direction, info in self._rules.items()}

    def map(self, direction: MappingDirection, data: Any) -> Any:
        return self.get_rule(direction).transform(data)


@dataclass
class VariableMappingResult:
    """Output of the engine -> repository rule."""

    parameters: List[MappedParameter] = field(default_factory=list)
    elements: List[ElementBase] = field(default_factory=list)


class VariableToElementRule:
    """Engine -> repository: write workspace values into cloned elements and parameters."""

    direction = MappingDirection.FROM_DST_TO_HUB

    def __init__(self, repository: Repository, store: MappingCorrespondenceStore):
        self.repository = repository
        self.store = store

    def transform(self, variables: List[WorkspaceVariable]) -> VariableMappingResult:
        owner = self.repository.current_domain_of_expertise
        mapped: Dict[int, MappedParameter] = {}

        for variable in variables:
            if variable.selected_element_usages:
                self._update_from_element_usages(variable, mapped)
                continue

            if variable.selected_element_definition is None:
                existing = next(
                    (
                        other.selected_element_definition
                        for other in variables
                        if other.selected_element_definition is not None
                        and other.selected_element_definition.name == variable.name
                    ),
                    None,
                )
                variable.selected_element_definition = existing or self._create_element_definition(variable.name, owner)
            else:
                self._detach_element_definition(variable)

            definition = variable.selected_element_definition
            known_parameters = list(definition.parameters)
            parameter = self._select_parameter(variable, owner)
            try:
                self.update_value_set(variable, parameter)
            except MappingError:
                if not any(parameter is known for known in known_parameters):
                    definition.parameters.remove(parameter)
                    variable.selected_parameter = None
                raise
            mapped[id(parameter)] = MappedParameter(parameter, variable)

            self.store.add_correspondence(
                variable.selected_element_definition.iid, variable.identifier, MappingDirection.FROM_DST_TO_HUB
            )

        elements: List[ElementBase] = []
        for variable in variables:
            for element in [variable.selected_element_definition, *variable.selected_element_usages]:
                if element is not None and not any(element is known for known in elements):
                    elements.append(element)

        return VariableMappingResult(parameters=list(mapped.values()), elements=elements)

    def _is_original(self, thing: Any) -> bool:
        return thing is not None and self.repository.get_thing_by_id(thing.iid) is thing

    def _detach_element_definition(self, variable: WorkspaceVariable) -> None:
        # Never mutate things owned by the repository session
        definition = variable.selected_element_definition
        if not self._is_original(definition):
            return
        clone = definition.clone(deep=True)
        if variable.selected_parameter is not None:
            variable.selected_parameter = next(
                (parameter for parameter in clone.parameters if same_thing(parameter, variable.selected_parameter)),
                variable.selected_parameter,
            )
        variable.selected_element_definition = clone

    def _create_element_definition(self, name: str, owner: Optional[DomainOfExpertise]) -> ElementDefinition:
        for element in self.repository.open_iteration.elements:
            if element.name == name:
                return element.clone(deep=True)
        return ElementDefinition(name=name, short_name=name, owner=owner)

    def _select_parameter(self, variable: WorkspaceVariable, owner: Optional[DomainOfExpertise]) -> ParameterBase:
        definition = variable.selected_element_definition
        if variable.selected_parameter is not None:
            return variable.selected_parameter

        if variable.selected_parameter_type is None:
            raise MappingError(f"{variable.name} has neither a parameter nor a parameter type selected")

        for parameter in definition.parameters:
            if same_thing(parameter.parameter_type, variable.selected_parameter_type):
                if variable.selected_scale is not None:
                    parameter.scale = variable.selected_scale
                variable.selected_parameter = parameter
                return parameter

        placeholders = ["-"] * variable.selected_parameter_type.number_of_values
        parameter = Parameter(
            parameter_type=variable.selected_parameter_type,
            owner=owner,
            scale=variable.selected_scale,
            value_sets=[
                ParameterValueSet(
                    manual=list(placeholders),
                    reference=list(placeholders),
                    formula=list(placeholders),
                    published=list(placeholders),
                )
            ],
            container=definition,
        )
        definition.parameters.append(parameter)
        variable.selected_parameter = parameter
        return parameter

    def _update_from_element_usages(self, variable: WorkspaceVariable, mapped: Dict[int, MappedParameter]) -> None:
        usages = []
        for usage in variable.selected_element_usages:
            usages.append(usage.clone(deep=True) if self._is_original(usage) else usage)
        variable.selected_element_usages = usages

        if variable.selected_parameter is None:
            return

        for usage in usages:
            override = next(
                (
                    candidate
                    for candidate in usage.parameter_overrides
                    if candidate.parameter is not None and same_thing(candidate.parameter, variable.selected_parameter)
                ),
                None,
            )
            if override is not None:
                self.update_value_set(variable, override)
                mapped[id(override)] = MappedParameter(override, variable)

    def update_value_set(self, variable: WorkspaceVariable, parameter: ParameterBase) -> None:
        """Write the variable's value into the matching value set as computed values."""
        value_set = parameter.query_value_set(variable.selected_option, variable.selected_state)
        if value_set is None:
            raise MappingError(
                f"No value set of {parameter.parameter_type.short_name} matches the selected option and state",
                {"variable": variable.name},
            )

        parameter_type = parameter.parameter_type
        array = variable.array_value
        selection = variable.row_column_selection_to_hub

        if isinstance(parameter_type, SampledFunctionParameterType):
            self._check_structured(variable, is_type_compatible(parameter_type, array, row_column_selection=selection))
            assignments = variable.assignments_to_hub or default_rows(parameter_type)
            time_position = time_tagged_index(assignments)
            if variable.selected_values and time_position is not None:
                values = ArrayReconstructor.time_tagged_parameter_values(
                    variable.selected_values, time_position, parameter_type.number_of_values, variable.is_averaged
                )
            else:
                values = ArrayReconstructor.to_parameter_values(parameter_type, array, selection, assignments)
        elif isinstance(parameter_type, ArrayParameterType):
            self._check_structured(variable, is_type_compatible(parameter_type, array, variable.selected_scale))
            values = ArrayReconstructor.to_parameter_values(parameter_type, array)
        else:
            values = [format_invariant(variable.actual_value)]

        value_set.computed = values
        value_set.value_switch = ParameterSwitchKind.COMPUTED

        if parameter.is_option_dependent and variable.selected_option is not None:
            self.store.add_correspondence(variable.selected_option.iid, variable.identifier)
        if parameter.state_dependence is not None and variable.selected_state is not None:
            self.store.add_correspondence(variable.selected_state.iid, variable.identifier)

    @staticmethod
    def _check_structured(variable: WorkspaceVariable, result) -> None:
        if not result.is_valid:
            raise IncompatibleTypeError(
                f"{variable.name} does not fit the selected parameter type: {result.message}",
                {"variable": variable.name},
            )


class ParameterToVariableRule:
    """Repository -> engine: detach the target variable of every mapping row."""

    direction = MappingDirection.FROM_HUB_TO_DST

    def transform(self, rows: List[ParameterToVariableMapping]) -> List[ParameterToVariableMapping]:
        for row in rows:
            source = row.variable
            if source is None:
                continue
            copy = WorkspaceVariable(
                name=source.name,
                actual_value=source.actual_value,
                initial_value=source.initial_value,
                array_value=source.array_value,
                parent_name=source.parent_name,
                index=list(source.index) if source.index is not None else None,
                identifier=source.identifier,
                row_column_selection_to_dst=source.row_column_selection_to_dst,
                assignments_to_dst=list(source.assignments_to_dst),
            )
            parameter_type = row.parameter.parameter_type if row.parameter is not None else None
            if isinstance(parameter_type, SampledFunctionParameterType) and not copy.assignments_to_dst:
                copy.assignments_to_dst = default_rows(parameter_type)
            row.variable = copy
        return rows


def build_mapping_engine(repository: Repository, store: MappingCorrespondenceStore) -> MappingEngine:
    """Mapping engine with both built-in rules registered."""
    engine = MappingEngine()
    engine.register(VariableToElementRule(repository, store))
    engine.register(ParameterToVariableRule())
    return engine
