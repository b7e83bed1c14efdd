"""Mapping rows shared by both transfer directions."""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, List, Optional, Tuple
from uuid import UUID

import numpy as np

from ..config.constants import PLACEHOLDER_VALUE
from .observable import ObservableValue
from .things import (
    STRUCTURED_TYPES,
    ActualFiniteState,
    MeasurementScale,
    Option,
    ParameterBase,
    ParameterSwitchKind,
    ParameterTypeAssignment,
    ParameterValueSet,
    SampledFunctionParameterType,
)
from .workspace import WorkspaceVariable


@dataclass(eq=False)
class SampledFunctionAssignment:
    """Pins one column (or row) of an array to one sampled function parameter."""

    index: str
    parameter_type_assignment: ParameterTypeAssignment
    is_time_tagged: bool = False

    @property
    def parameter_name(self) -> str:
        return self.parameter_type_assignment.parameter_type.short_name


def default_rows(parameter_type: SampledFunctionParameterType) -> List[SampledFunctionAssignment]:
    """Assign ``"0".."n-1"`` to the independent then dependent parameters."""
    return [
        SampledFunctionAssignment(str(index), assignment)
        for index, assignment in enumerate(parameter_type.assignments)
    ]


def set_time_tagged(rows: List[SampledFunctionAssignment], row: Optional[SampledFunctionAssignment]) -> None:
    """Flag ``row`` as the time axis, clearing any other flag."""
    for candidate in rows:
        candidate.is_time_tagged = candidate is row


def time_tagged_index(rows: List[SampledFunctionAssignment]) -> Optional[int]:
    """Position of the time-tagged row, None when none is flagged."""
    for position, row in enumerate(rows):
        if row.is_time_tagged:
            return position
    return None


@dataclass(eq=False)
class TimeTaggedValuesRow:
    """Samples sharing one time value."""

    time_step: float
    values: List[float]
    """Non-time values of the first sample, in parameter order"""

    samples: List[List[float]] = field(default_factory=list)

    @cached_property
    def averaged_values(self) -> List[float]:
        """Column means over every sample with this time value."""
        if not self.samples:
            return list(self.values)
        return [float(value) for value in np.mean(np.asarray(self.samples, dtype=float), axis=0)]


@dataclass(eq=False)
class ValueSetValueRow:
    """One value of a parameter value set offered for transfer to the engine.

    Structured parameter types produce a single row carrying the whole
    value list, with ``index`` left to None.
    """

    container: ParameterBase
    value: Any
    value_set: Optional[ParameterValueSet] = None
    scale: Optional[MeasurementScale] = None
    option: Optional[Option] = None
    state: Optional[ActualFiniteState] = None
    index: Optional[int] = None
    switch_kind: ParameterSwitchKind = ParameterSwitchKind.COMPUTED

    @property
    def is_structured(self) -> bool:
        return self.index is None

    @property
    def representation(self) -> str:
        parts = [self.container.element_name(), self.container.parameter_type.short_name if self.container.parameter_type else ""]
        name = ".".join(part for part in parts if part)
        if self.option is not None:
            name += f"\\{self.option.short_name}"
        if self.state is not None:
            name += f"\\{self.state.short_name}"
        return name

    @property
    def display_value(self) -> str:
        if isinstance(self.value, list):
            return f"[{len(self.value)} values]"
        return str(self.value)


def value_rows(parameter: ParameterBase) -> List[ValueSetValueRow]:
    """Rows for every value of every value set of a parameter or override."""
    rows: List[ValueSetValueRow] = []
    structured = isinstance(parameter.parameter_type, STRUCTURED_TYPES)
    for value_set in parameter.value_sets:
        common = dict(
            container=parameter,
            value_set=value_set,
            scale=parameter.scale,
            option=value_set.actual_option,
            state=value_set.actual_state,
            switch_kind=value_set.value_switch,
        )
        if structured:
            rows.append(ValueSetValueRow(value=list(value_set.actual_value), **common))
        else:
            rows.extend(
                ValueSetValueRow(value=value, index=index, **common)
                for index, value in enumerate(value_set.actual_value)
            )
    return rows


class ParameterToVariableMapping:
    """Repository -> engine mapping of one parameter value onto a variable.

    The mapping is valid only when a parameter, a variable and a
    non-placeholder value are present together and type compatible. It
    is re-verified whenever one of them changes.
    """

    def __init__(
        self,
        parameter: Optional[ParameterBase] = None,
        value_row: Optional[ValueSetValueRow] = None,
        variable: Optional[WorkspaceVariable] = None,
    ):
        self.validity: ObservableValue = ObservableValue(False)
        self._parameter = parameter
        self._value_row = value_row
        self._variable = variable
        self._verify()

    @property
    def parameter(self) -> Optional[ParameterBase]:
        return self._parameter

    @parameter.setter
    def parameter(self, value: Optional[ParameterBase]) -> None:
        self._parameter = value
        self._verify()

    @property
    def value_row(self) -> Optional[ValueSetValueRow]:
        return self._value_row

    @value_row.setter
    def value_row(self, value: Optional[ValueSetValueRow]) -> None:
        self._value_row = value
        self._verify()

    @property
    def variable(self) -> Optional[WorkspaceVariable]:
        return self._variable

    @variable.setter
    def variable(self, value: Optional[WorkspaceVariable]) -> None:
        self._variable = value
        self._verify()

    @property
    def is_valid(self) -> bool:
        return bool(self.validity.value)

    @property
    def value(self) -> Any:
        return self._value_row.value if self._value_row is not None else None

    @property
    def option(self) -> Optional[Option]:
        return self._value_row.option if self._value_row is not None else None

    @property
    def state(self) -> Optional[ActualFiniteState]:
        return self._value_row.state if self._value_row is not None else None

    @property
    def key(self) -> Tuple[Optional[UUID], Optional[UUID], Optional[UUID]]:
        """Upsert key: parameter, option and state identities."""
        return (
            self._parameter.iid if self._parameter is not None else None,
            self.option.iid if self.option is not None else None,
            self.state.iid if self.state is not None else None,
        )

    def verify(self) -> bool:
        """Re-evaluate the validity, for instance after the variable's assignments changed."""
        self._verify()
        return self.is_valid

    def _verify(self) -> None:
        from ..services.validity import is_type_compatible

        value = self.value
        if (
            self._parameter is None
            or self._variable is None
            or value is None
            or (isinstance(value, str) and value == PLACEHOLDER_VALUE)
        ):
            self.validity.value = False
            return

        parameter_type = self._parameter.parameter_type
        assignments = None
        if isinstance(parameter_type, SampledFunctionParameterType):
            assignments = self._variable.assignments_to_dst
        self.validity.value = is_type_compatible(
            parameter_type,
            value,
            self._parameter.scale,
            assignments=assignments,
            row_column_selection=self._variable.row_column_selection_to_dst,
        ).is_valid

    def __repr__(self) -> str:
        return (
            f"ParameterToVariableMapping(parameter={self._parameter.iid if self._parameter else None}, "
            f"variable={self._variable.name if self._variable else None}, valid={self.is_valid})"
        )


@dataclass(eq=False)
class MappedParameter:
    """Engine -> repository mapping result: a parameter and the variable it came from."""

    parameter: ParameterBase
    variable: WorkspaceVariable

    @property
    def key(self) -> Optional[UUID]:
        return self.parameter.iid
