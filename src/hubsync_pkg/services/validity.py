"""Type and shape compatibility of variable <-> parameter pairings."""

from __future__ import annotations
from collections import Counter
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np

from ..contracts.types import RowColumnSelection, ValidationResult
from ..domain.rows import SampledFunctionAssignment
from ..domain.things import (
    ArrayParameterType,
    MeasurementScale,
    ParameterType,
    QuantityKind,
    SampledFunctionParameterType,
)
from ..domain.workspace import WorkspaceVariable


def assignments_are_complete(
    assignment_rows: Sequence[SampledFunctionAssignment],
    available_indexes: Iterable[str],
) -> bool:
    """True iff every available index is claimed by exactly one row."""
    available = list(available_indexes)
    claimed = Counter(str(row.index) for row in assignment_rows)
    return (
        len(assignment_rows) == len(available)
        and all(claimed[index] == 1 for index in available)
    )


def is_type_compatible(
    parameter_type: Optional[ParameterType],
    value: Any,
    scale: Optional[MeasurementScale] = None,
    assignments: Optional[List[SampledFunctionAssignment]] = None,
    row_column_selection: RowColumnSelection = RowColumnSelection.COLUMN,
) -> ValidationResult:
    """Check whether a value can be stored with a parameter type.

    ``value`` is either an engine value (scalar or array) or the value
    list of a repository value set.

    Args:
        parameter_type: Target parameter type
        value: Value to check
        scale: Scale of the parameter, the type's default scale otherwise
        assignments: Sampled function assignment rows, checked for
            completeness when given
        row_column_selection: Axis holding the sampled function parameters

    Returns:
        ValidationResult describing the first problem found
    """
    if parameter_type is None:
        return ValidationResult.invalid("No parameter type selected")

    if parameter_type.is_deprecated:
        return ValidationResult.invalid(f"{parameter_type.short_name} is deprecated")

    if isinstance(parameter_type, ArrayParameterType):
        return _array_compatible(parameter_type, value, scale)

    if isinstance(parameter_type, SampledFunctionParameterType):
        return _sampled_function_compatible(parameter_type, value, assignments, row_column_selection)

    if isinstance(value, (np.ndarray, list)):
        return ValidationResult.invalid(f"{parameter_type.short_name} holds a single value")

    return parameter_type.validate(value, scale)


def _array_compatible(
    parameter_type: ArrayParameterType,
    value: Any,
    scale: Optional[MeasurementScale],
) -> ValidationResult:
    if not isinstance(value, (np.ndarray, list)):
        return ValidationResult.invalid(f"{parameter_type.short_name} requires an array value")

    cells = np.asarray(value, dtype=object).reshape(-1)
    if cells.size != parameter_type.number_of_values:
        return ValidationResult.invalid(
            f"{parameter_type.short_name} holds {parameter_type.number_of_values} values, got {cells.size}"
        )

    if not parameter_type.has_single_component_type:
        return ValidationResult.invalid(f"{parameter_type.short_name} components are not a single quantity kind")

    if cells.size == 0:
        return ValidationResult.valid()

    component = parameter_type.components[0]
    return component.parameter_type.validate(cells[0], scale or component.scale)


def _sampled_function_compatible(
    parameter_type: SampledFunctionParameterType,
    value: Any,
    assignments: Optional[List[SampledFunctionAssignment]],
    row_column_selection: RowColumnSelection,
) -> ValidationResult:
    arity = parameter_type.number_of_values

    if isinstance(value, np.ndarray):
        if value.ndim != 2:
            return ValidationResult.invalid("Sampled functions require a 2-D array")
        axis_length = value.shape[1] if row_column_selection is RowColumnSelection.COLUMN else value.shape[0]
        if axis_length != arity:
            return ValidationResult.invalid(
                f"{parameter_type.short_name} declares {arity} parameters, the array provides {axis_length}"
            )
    elif isinstance(value, list):
        if arity == 0 or len(value) % arity:
            return ValidationResult.invalid(f"{len(value)} values cannot be split in samples of {arity}")
    else:
        return ValidationResult.invalid(f"{parameter_type.short_name} requires an array value")

    for assignment in parameter_type.assignments:
        if assignment.measurement_scale is None or not isinstance(assignment.parameter_type, QuantityKind):
            return ValidationResult.invalid(
                f"{parameter_type.short_name} parameters must be scaled quantity kinds"
            )

    if assignments is not None and not assignments_are_complete(
        assignments, [str(index) for index in range(arity)]
    ):
        return ValidationResult.invalid("Every column or row must be assigned exactly once")

    return ValidationResult.valid()


def variable_mapping_is_valid(variable: WorkspaceVariable) -> bool:
    """Engine -> repository validity of a workspace variable's selections."""
    if variable.selected_element_usages and (
        variable.selected_element_definition is None or variable.selected_parameter is None
    ):
        return False

    if variable.selected_parameter is not None:
        # Option and state must qualify one value set
        if variable.selected_parameter.query_value_set(variable.selected_option, variable.selected_state) is None:
            return False
        parameter_type = variable.selected_parameter.parameter_type
        scale = variable.selected_scale or variable.selected_parameter.scale
    elif variable.selected_parameter_type is not None:
        parameter_type = variable.selected_parameter_type
        scale = variable.selected_scale
    else:
        return False

    assignments = None
    if isinstance(parameter_type, SampledFunctionParameterType):
        assignments = variable.assignments_to_hub

    return is_type_compatible(
        parameter_type,
        variable.value_for_engine,
        scale,
        assignments=assignments,
        row_column_selection=variable.row_column_selection_to_hub,
    ).is_valid


def candidate_parameter_types(
    parameter_types: Iterable[ParameterType],
    variable: Optional[WorkspaceVariable] = None,
) -> List[ParameterType]:
    """Parameter types offered for a variable, never deprecated ones.

    With a variable, array values only keep structured types and
    scalar values only keep scalar types.
    """
    candidates = [parameter_type for parameter_type in parameter_types if not parameter_type.is_deprecated]
    if variable is None:
        return candidates

    structured = (ArrayParameterType, SampledFunctionParameterType)
    if variable.array_value is not None:
        return [parameter_type for parameter_type in candidates if isinstance(parameter_type, structured)]
    return [parameter_type for parameter_type in candidates if not isinstance(parameter_type, structured)]
