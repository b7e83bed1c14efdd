"""Workspace variables of the numeric engine."""

from __future__ import annotations
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, List, Optional, Sequence, TYPE_CHECKING

import numpy as np

from ..contracts.types import RowColumnSelection
from .observable import ObservableValue
from .things import (
    ActualFiniteState,
    ElementDefinition,
    ElementUsage,
    MeasurementScale,
    Option,
    ParameterBase,
    ParameterType,
)

if TYPE_CHECKING:
    from .rows import SampledFunctionAssignment, TimeTaggedValuesRow


def _to_python(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def _as_matrix(array: np.ndarray) -> np.ndarray:
    # One-dimensional arrays are laid out as a single row
    if array.ndim == 0:
        return array.reshape(1, 1)
    if array.ndim == 1:
        return array.reshape(1, -1)
    return array


def shape_placeholder(array: np.ndarray) -> str:
    """Human readable description replacing a decomposed array value."""
    matrix = _as_matrix(array)
    rows, columns = matrix.shape[0], matrix.shape[1]
    return f"[{rows}x{columns}] matrix of {array.dtype.name}"


@dataclass(eq=False)
class WorkspaceVariable:
    """One named value of the workspace, or one cell of a decomposed array."""

    name: str
    actual_value: Any = None
    initial_value: Any = None
    array_value: Optional[np.ndarray] = None
    """Unflattened 2-D array kept after decomposition"""

    parent_name: Optional[str] = None
    index: Optional[List[int]] = None
    identifier: Optional[str] = None

    # Mapping target descriptors (engine -> repository)
    selected_element_definition: Optional[ElementDefinition] = None
    selected_element_usages: List[ElementUsage] = field(default_factory=list)
    selected_parameter: Optional[ParameterBase] = None
    selected_parameter_type: Optional[ParameterType] = None
    selected_scale: Optional[MeasurementScale] = None
    selected_option: Optional[Option] = None
    selected_state: Optional[ActualFiniteState] = None

    # Structured value layout
    row_column_selection_to_hub: RowColumnSelection = RowColumnSelection.COLUMN
    row_column_selection_to_dst: RowColumnSelection = RowColumnSelection.COLUMN
    assignments_to_hub: List["SampledFunctionAssignment"] = field(default_factory=list)
    assignments_to_dst: List["SampledFunctionAssignment"] = field(default_factory=list)

    # Time tagged sampled functions
    time_tagged_values: List["TimeTaggedValuesRow"] = field(default_factory=list)
    selected_values: List["TimeTaggedValuesRow"] = field(default_factory=list)
    is_averaged: bool = False
    selected_time_step: float = 0.0

    mapping_configurations: List[Any] = field(default_factory=list)
    mapping_validity: ObservableValue = field(default_factory=ObservableValue, repr=False)
    """Tri-state validity: None until evaluated, then True or False"""

    def __post_init__(self) -> None:
        if self.initial_value is None:
            self.initial_value = self.actual_value

    @property
    def is_variable_mapping_valid(self) -> Optional[bool]:
        return self.mapping_validity.value

    @property
    def is_array(self) -> bool:
        return self.array_value is not None or isinstance(self.actual_value, np.ndarray)

    @property
    def value_for_engine(self) -> Any:
        """Value written back to the engine, the array for decomposed variables."""
        if self.array_value is not None:
            return self.array_value
        return self.actual_value

    def decompose(self) -> List["WorkspaceVariable"]:
        """Flatten an array value into scalar children, row-major.

        The parent keeps the array in ``array_value`` and its
        ``actual_value`` becomes a shape placeholder. Cells holding
        arrays are decomposed recursively.

        Returns:
            The parent followed by every descendant, or ``[self]`` when
            the value is not an array
        """
        if not isinstance(self.actual_value, np.ndarray):
            return [self]

        matrix = _as_matrix(self.actual_value)
        self.array_value = matrix
        self.actual_value = shape_placeholder(matrix)

        variables: List[WorkspaceVariable] = [self]
        for row in range(matrix.shape[0]):
            for column in range(matrix.shape[1]):
                cell = _to_python(matrix[row, column])
                child = WorkspaceVariable(
                    name=f"{self.name}[{row},{column}]",
                    actual_value=cell,
                    parent_name=self.name,
                    index=[row, column],
                )
                variables.extend(child.decompose())
        return variables

    def derive_identifier(self, script_name: str) -> str:
        """Set and return the identifier ``{script}-{name}``, stable across reloads."""
        self.identifier = f"{script_name}-{self.name}"
        return self.identifier

    def is_valid(self) -> bool:
        """Evaluate the engine -> repository mapping and publish the result."""
        from ..services.validity import variable_mapping_is_valid

        valid = variable_mapping_is_valid(self)
        self.mapping_validity.value = valid
        return valid

    def compute_time_tagged_values(self) -> List["TimeTaggedValuesRow"]:
        """Group the array samples by their time-tagged value."""
        from ..services.arrays import ArrayReconstructor

        if self.array_value is None:
            self.time_tagged_values = []
        else:
            self.time_tagged_values = ArrayReconstructor.time_tagged_rows(
                self.array_value, self.row_column_selection_to_hub, self.assignments_to_hub
            )
        self.selected_values = list(self.time_tagged_values)
        return self.time_tagged_values

    def apply_time_step(self) -> List["TimeTaggedValuesRow"]:
        from ..services.arrays import ArrayReconstructor

        self.selected_values = ArrayReconstructor.apply_time_step(self.time_tagged_values, self.selected_time_step)
        return self.selected_values

    def set_array(self, array: np.ndarray) -> List["WorkspaceVariable"]:
        """Replace the value with a new array and decompose it again."""
        self.actual_value = np.asarray(array)
        self.array_value = None
        return self.decompose()


def recompose(children: Sequence[WorkspaceVariable], parent_name: Optional[str] = None) -> np.ndarray:
    """Rebuild the array of a decomposed variable from its cells.

    Args:
        children: Decomposed variables; entries that are not direct cells
            of ``parent_name`` are ignored
        parent_name: Name of the parent, defaults to the parent of the
            first cell

    Returns:
        The 2-D array, empty when there are no cells
    """
    cells = [child for child in children if child.index is not None and child.parent_name is not None]
    if parent_name is None and cells:
        parent_name = cells[0].parent_name
    cells = [child for child in cells if child.parent_name == parent_name]
    if not cells:
        return np.empty((0, 0))

    rows = max(child.index[0] for child in cells) + 1
    columns = max(child.index[1] for child in cells) + 1
    values = {(child.index[0], child.index[1]): child.value_for_engine for child in cells}

    if any(isinstance(value, np.ndarray) for value in values.values()):
        array = np.empty((rows, columns), dtype=object)
        for (row, column), value in values.items():
            array[row, column] = value
        return array

    grid = [[values.get((row, column)) for column in range(columns)] for row in range(rows)]
    if all(isinstance(value, Number) for value in values.values()) and len(values) == rows * columns:
        return np.array(grid)
    return np.array(grid, dtype=object)
