"""Tests for type and shape compatibility."""

import numpy as np
import pytest

from hubsync_pkg.contracts import RowColumnSelection
from hubsync_pkg.domain import (
    Parameter,
    ParameterValueSet,
    SampledFunctionAssignment,
    WorkspaceVariable,
    default_rows,
)
from hubsync_pkg.services import (
    assignments_are_complete,
    candidate_parameter_types,
    is_type_compatible,
    variable_mapping_is_valid,
)


class TestAssignmentCompleteness:
    """Test every index is claimed exactly once."""

    def _rows(self, model, indexes):
        return [
            SampledFunctionAssignment(index, assignment)
            for index, assignment in zip(indexes, model.trajectory.assignments)
        ]

    def test_duplicated_index(self, model):
        assert not assignments_are_complete(self._rows(model, ["1", "1"]), ["0", "1"])

    def test_complete(self, model):
        assert assignments_are_complete(self._rows(model, ["0", "1"]), ["0", "1"])

    def test_row_count_must_match(self, model):
        assert not assignments_are_complete(self._rows(model, ["0"]), ["0", "1"])


class TestTypeCompatibility:
    """Test is_type_compatible."""

    def test_missing_type(self):
        assert not is_type_compatible(None, 1).is_valid

    def test_deprecated_type(self, model):
        result = is_type_compatible(model.deprecated, 1)
        assert not result.is_valid
        assert "deprecated" in result.message

    def test_scalar(self, model):
        assert is_type_compatible(model.mass, 2.0).is_valid
        assert not is_type_compatible(model.mass, "abc").is_valid

    def test_scalar_rejects_array(self, model):
        assert not is_type_compatible(model.mass, np.zeros((2, 2))).is_valid

    def test_array_type(self, model):
        assert is_type_compatible(model.matrix, np.ones((2, 2))).is_valid
        assert not is_type_compatible(model.matrix, np.ones((1, 3))).is_valid
        assert not is_type_compatible(model.matrix, 1.0).is_valid

    def test_array_type_value_list(self, model):
        assert is_type_compatible(model.matrix, ["1", "2", "3", "4"]).is_valid

    def test_sampled_function_columns(self, model):
        array = np.ones((5, 3))
        assert is_type_compatible(model.trajectory, array).is_valid
        assert not is_type_compatible(model.trajectory, np.ones((5, 2))).is_valid

    def test_sampled_function_rows(self, model):
        array = np.ones((3, 5))
        assert is_type_compatible(model.trajectory, array, row_column_selection=RowColumnSelection.ROW).is_valid
        assert not is_type_compatible(model.trajectory, array).is_valid

    def test_sampled_function_value_list(self, model):
        assert is_type_compatible(model.trajectory, ["1"] * 6).is_valid
        assert not is_type_compatible(model.trajectory, ["1"] * 5).is_valid

    def test_sampled_function_assignments(self, model):
        rows = default_rows(model.trajectory)
        assert is_type_compatible(model.trajectory, np.ones((2, 3)), assignments=rows).is_valid

        rows[2].index = "0"
        assert not is_type_compatible(model.trajectory, np.ones((2, 3)), assignments=rows).is_valid


class TestVariableMappingValidity:
    """Test engine -> repository validity."""

    def test_nothing_selected(self):
        assert not variable_mapping_is_valid(WorkspaceVariable(name="a", actual_value=1.0))

    def test_parameter_selected(self, model):
        variable = WorkspaceVariable(name="a", actual_value=1.0, selected_parameter=model.mass_parameter)
        assert variable_mapping_is_valid(variable)

    def test_usages_require_definition_and_parameter(self, model):
        variable = WorkspaceVariable(
            name="a",
            actual_value=1.0,
            selected_parameter_type=model.mass,
            selected_element_usages=[model.battery_usage],
        )
        assert not variable_mapping_is_valid(variable)

    def test_option_dependent_parameter_requires_option(self, model):
        parameter = Parameter(
            parameter_type=model.mass,
            scale=model.kg,
            value_sets=[ParameterValueSet(actual_option=model.option, manual=["1"])],
            is_option_dependent=True,
        )
        variable = WorkspaceVariable(name="a", actual_value=1.0, selected_parameter=parameter)
        assert not variable_mapping_is_valid(variable)

        variable.selected_option = model.option
        assert variable_mapping_is_valid(variable)

    def test_decomposed_array(self, model):
        variable = WorkspaceVariable(name="m", actual_value=np.ones((2, 2)))
        variable.decompose()
        variable.selected_parameter_type = model.matrix

        assert variable_mapping_is_valid(variable)


class TestCandidateParameterTypes:
    """Test parameter types offered for a variable."""

    def test_deprecated_excluded(self, model):
        candidates = candidate_parameter_types(model.iteration.parameter_types)
        assert model.deprecated not in candidates
        assert model.mass in candidates

    def test_array_variable(self, model):
        variable = WorkspaceVariable(name="m", actual_value=np.ones((2, 2)))
        variable.decompose()
        candidates = candidate_parameter_types(model.iteration.parameter_types, variable)

        assert candidates == [model.matrix, model.trajectory]

    def test_scalar_variable(self, model):
        variable = WorkspaceVariable(name="a", actual_value=1.0)
        candidates = candidate_parameter_types(model.iteration.parameter_types, variable)

        assert model.matrix not in candidates
        assert model.label in candidates
