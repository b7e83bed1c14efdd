"""Old/new value differences of pending transfers."""

from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

import numpy as np

from ..contracts.types import DifferenceRow, MatrixCellDifference
from ..domain.things import ActualFiniteState, ElementBase, Option, ParameterBase
from ..domain.workspace import WorkspaceVariable

NOT_APPLICABLE = "N/A"


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _format_decimal(value: Decimal) -> str:
    text = format(value.normalize(), "f")
    return "0" if text in ("-0", "") else text


def compute_difference(old_value: Any, new_value: Any) -> Tuple[str, str]:
    """Difference and percent difference between two values.

    Returns:
        ``(difference, percent)`` such as ``("+2", "+50%")``; ``"N/A"``
        for both when either value is not numeric
    """
    old = _to_decimal(old_value)
    new = _to_decimal(new_value)
    if old is None or new is None:
        return NOT_APPLICABLE, NOT_APPLICABLE

    difference = new - old
    if difference == 0:
        return "0", "0%"

    percent = difference if old == 0 else round(abs(difference / abs(old) * 100), 2)
    percent_text = _format_decimal(abs(percent))

    if difference > 0:
        return f"+{_format_decimal(difference)}", f"+{percent_text}%"
    return _format_decimal(difference), f"-{percent_text}%"


def _model_code(parameter: ParameterBase) -> str:
    element = parameter.get_container_of_type(ElementBase)
    element_name = element.short_name if element is not None else ""
    if parameter.parameter_type is not None and parameter.parameter_type.short_name:
        name = f"{element_name}.{parameter.parameter_type.short_name}"
    else:
        name = element_name
    return name if name.strip(".") else NOT_APPLICABLE


def _value_of(values: List[str]) -> Any:
    if len(values) > 1:
        return "; ".join(values)
    return values[0] if values else None


def parameter_differences(
    old_parameter: Optional[ParameterBase],
    new_parameter: ParameterBase,
) -> List[DifferenceRow]:
    """One row per option/state combination of the new parameter's value sets."""
    value_sets = [value_set for value_set in new_parameter.value_sets if value_set is not None]
    if not value_sets:
        return []

    combinations: List[Tuple[Optional[Option], Optional[ActualFiniteState]]] = []
    for value_set in value_sets:
        option = value_set.actual_option if new_parameter.is_option_dependent else None
        state = value_set.actual_state if new_parameter.state_dependence is not None else None
        if not any(option is known_option and state is known_state for known_option, known_state in combinations):
            combinations.append((option, state))

    rows: List[DifferenceRow] = []
    for option, state in combinations:
        new_set = new_parameter.query_value_set(option, state)
        if new_set is None:
            continue
        old_set = old_parameter.query_value_set(option, state) if old_parameter is not None else None

        name = _model_code(new_parameter)
        if option is not None:
            name += f"\\{option.short_name}"
        if state is not None:
            name += f"\\{state.short_name}"

        old_value = _value_of(old_set.actual_value) if old_set is not None else None
        new_value = _value_of(new_set.actual_value)
        difference, percent = compute_difference(old_value, new_value)
        rows.append(DifferenceRow(name, old_value, new_value, difference, percent))
    return rows


def variable_difference(
    old_variable: Optional[WorkspaceVariable],
    new_variable: WorkspaceVariable,
) -> DifferenceRow:
    old_value = old_variable.actual_value if old_variable is not None else None
    difference, percent = compute_difference(old_value, new_variable.actual_value)
    return DifferenceRow(new_variable.name, old_value, new_variable.actual_value, difference, percent)


def matrix_differences(old_array: Optional[np.ndarray], new_array: np.ndarray) -> List[MatrixCellDifference]:
    """Per cell differences over the shape of the new array."""
    new_matrix = np.atleast_2d(np.asarray(new_array))
    old_matrix = np.atleast_2d(np.asarray(old_array)) if old_array is not None else None

    cells: List[MatrixCellDifference] = []
    for row in range(new_matrix.shape[0]):
        for column in range(new_matrix.shape[1]):
            new_value = new_matrix[row, column]
            old_value = None
            if old_matrix is not None and row < old_matrix.shape[0] and column < old_matrix.shape[1]:
                old_value = old_matrix[row, column]
            new_value = new_value.item() if isinstance(new_value, np.generic) else new_value
            old_value = old_value.item() if isinstance(old_value, np.generic) else old_value
            difference, percent = compute_difference(old_value, new_value)
            cells.append(MatrixCellDifference(row, column, old_value, new_value, difference, percent))
    return cells
