"""Conversions between repository value sets and workspace arrays."""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import structlog

from ..contracts.errors import MappingError, ShapeMismatchError
from ..contracts.types import RowColumnSelection
from ..domain.rows import SampledFunctionAssignment, TimeTaggedValuesRow, default_rows, time_tagged_index
from ..domain.things import ArrayParameterType, ParameterType, SampledFunctionParameterType

logger = structlog.get_logger()


def format_invariant(value: Any) -> str:
    """Culture invariant text of a value, integral floats without decimals."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def parse_number(value: Any) -> float:
    """Parse a repository value as a number.

    Raises:
        MappingError: If the value is not numeric
    """
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise MappingError(f"'{value}' is not a numeric value", {"value": value}) from exc


class ArrayReconstructor:
    """Lays out structured repository values as 2-D arrays and back.

    Array parameter types are stored row-major following their
    dimension. Sampled functions store one value per assignment for each
    sample; with ``COLUMN`` selection samples are rows of the array and
    assignments pick columns, with ``ROW`` it is the transpose.
    """

    @staticmethod
    def to_workspace_array(
        parameter_type: ParameterType,
        values: Sequence[Any],
        row_column_selection: RowColumnSelection = RowColumnSelection.COLUMN,
        assignments: Optional[List[SampledFunctionAssignment]] = None,
    ) -> np.ndarray:
        """Build the workspace array of a structured value set.

        Args:
            parameter_type: Array or sampled function parameter type
            values: Flat value list of the value set
            row_column_selection: Axis holding the sampled function parameters
            assignments: Column (or row) of every sampled function parameter,
                defaults to declaration order

        Returns:
            The 2-D array, empty for an empty value list

        Raises:
            ShapeMismatchError: If the value count or the assignments do not
                fit the parameter type
            MappingError: If a value is not numeric
        """
        if len(values) == 0:
            return np.empty((0, 0))

        if isinstance(parameter_type, ArrayParameterType):
            return ArrayReconstructor._array_from_values(parameter_type, values)

        if isinstance(parameter_type, SampledFunctionParameterType):
            return ArrayReconstructor._sampled_function_from_values(
                parameter_type, values, row_column_selection, assignments
            )

        raise MappingError(f"{parameter_type.short_name} is not a structured parameter type")

    @staticmethod
    def _array_from_values(parameter_type: ArrayParameterType, values: Sequence[Any]) -> np.ndarray:
        if len(values) != parameter_type.number_of_values:
            raise ShapeMismatchError(
                f"{parameter_type.short_name} expects {parameter_type.number_of_values} values, got {len(values)}",
                {"dimension": list(parameter_type.dimension)},
            )
        numbers = np.array([parse_number(value) for value in values], dtype=float)
        if parameter_type.rank == 1:
            return numbers.reshape(1, -1)
        return numbers.reshape(parameter_type.dimension)

    @staticmethod
    def _sampled_function_from_values(
        parameter_type: SampledFunctionParameterType,
        values: Sequence[Any],
        row_column_selection: RowColumnSelection,
        assignments: Optional[List[SampledFunctionAssignment]],
    ) -> np.ndarray:
        arity = parameter_type.number_of_values
        assignments = assignments or default_rows(parameter_type)
        ArrayReconstructor.check_assignments(parameter_type, assignments)

        if len(values) % arity:
            raise ShapeMismatchError(
                f"{len(values)} values cannot be split in samples of {arity}",
                {"parameter_type": parameter_type.short_name},
            )

        samples = len(values) // arity
        shape = (samples, arity) if row_column_selection is RowColumnSelection.COLUMN else (arity, samples)
        array = np.zeros(shape, dtype=float)

        for sample in range(samples):
            for position, assignment in enumerate(assignments):
                index = int(assignment.index)
                value = parse_number(values[sample * arity + position])
                if row_column_selection is RowColumnSelection.COLUMN:
                    array[sample, index] = value
                else:
                    array[index, sample] = value

        return array

    @staticmethod
    def check_assignments(
        parameter_type: SampledFunctionParameterType,
        assignments: List[SampledFunctionAssignment],
    ) -> None:
        """Reject assignments that do not claim every index exactly once.

        Raises:
            ShapeMismatchError: On arity mismatch, unassigned or duplicated index
        """
        from .validity import assignments_are_complete

        arity = parameter_type.number_of_values
        if len(assignments) != arity:
            raise ShapeMismatchError(
                f"{parameter_type.short_name} declares {arity} parameters but {len(assignments)} are assigned",
                {"parameter_type": parameter_type.short_name},
            )
        if not assignments_are_complete(assignments, [str(index) for index in range(arity)]):
            raise ShapeMismatchError(
                f"Every index of {parameter_type.short_name} must be assigned exactly once",
                {"indexes": [assignment.index for assignment in assignments]},
            )

    @staticmethod
    def to_parameter_values(
        parameter_type: ParameterType,
        array: Any,
        row_column_selection: RowColumnSelection = RowColumnSelection.COLUMN,
        assignments: Optional[List[SampledFunctionAssignment]] = None,
    ) -> List[str]:
        """Flatten a workspace value into the value list of a value set.

        Raises:
            ShapeMismatchError: If the array does not fit the parameter type
        """
        if isinstance(parameter_type, ArrayParameterType):
            array = np.asarray(array)
            if array.size != parameter_type.number_of_values:
                raise ShapeMismatchError(
                    f"{parameter_type.short_name} expects {parameter_type.number_of_values} values, got {array.size}",
                    {"shape": list(array.shape)},
                )
            return [format_invariant(value) for value in array.reshape(-1)]

        if isinstance(parameter_type, SampledFunctionParameterType):
            array = np.asarray(array)
            if array.size == 0:
                return []
            assignments = assignments or default_rows(parameter_type)
            ArrayReconstructor.check_assignments(parameter_type, assignments)

            column = row_column_selection is RowColumnSelection.COLUMN
            length = array.shape[0] if column else array.shape[1]
            values: List[str] = []
            for sample in range(length):
                for assignment in assignments:
                    index = int(assignment.index)
                    values.append(format_invariant(array[sample, index] if column else array[index, sample]))
            return values

        return [format_invariant(array)]

    @staticmethod
    def samples(
        array: np.ndarray,
        row_column_selection: RowColumnSelection,
        assignments: List[SampledFunctionAssignment],
    ) -> List[List[float]]:
        """Values of every sample, in assignment order."""
        column = row_column_selection is RowColumnSelection.COLUMN
        length = array.shape[0] if column else array.shape[1]
        return [
            [
                parse_number(array[sample, int(row.index)] if column else array[int(row.index), sample])
                for row in assignments
            ]
            for sample in range(length)
        ]

    @staticmethod
    def time_tagged_rows(
        array: np.ndarray,
        row_column_selection: RowColumnSelection,
        assignments: List[SampledFunctionAssignment],
    ) -> List[TimeTaggedValuesRow]:
        """Group samples by the value of the time-tagged assignment.

        Returns:
            One row per distinct time value in order of first appearance,
            empty when no assignment is time tagged
        """
        time_position = time_tagged_index(assignments)
        if time_position is None or array is None or np.asarray(array).size == 0:
            return []

        groups: Dict[float, List[List[float]]] = {}
        for sample in ArrayReconstructor.samples(np.asarray(array), row_column_selection, assignments):
            time_step = sample[time_position]
            values = sample[:time_position] + sample[time_position + 1:]
            groups.setdefault(time_step, []).append(values)

        return [
            TimeTaggedValuesRow(time_step=time_step, values=list(samples[0]), samples=samples)
            for time_step, samples in groups.items()
        ]

    @staticmethod
    def apply_time_step(rows: List[TimeTaggedValuesRow], step: Optional[float]) -> List[TimeTaggedValuesRow]:
        """Keep rows spaced at least ``step`` apart, starting with the first one."""
        if not rows or not step or step <= 0:
            return list(rows)

        selected = [rows[0]]
        last = rows[0].time_step
        for row in rows[1:]:
            if row.time_step - last >= step:
                selected.append(row)
                last = row.time_step
        return selected

    @staticmethod
    def time_tagged_parameter_values(
        rows: List[TimeTaggedValuesRow],
        time_position: int,
        number_of_values: int,
        is_averaged: bool = False,
    ) -> List[str]:
        """Flatten selected time-tagged rows, the time value at its parameter position."""
        values: List[str] = []
        for row in rows:
            row_values = row.averaged_values if is_averaged else row.values
            for position in range(number_of_values):
                if position == time_position:
                    values.append(format_invariant(row.time_step))
                elif position < time_position:
                    values.append(format_invariant(row_values[position]))
                else:
                    values.append(format_invariant(row_values[position - 1]))
        logger.debug("Flattened time tagged rows", rows=len(rows), values=len(values))
        return values
