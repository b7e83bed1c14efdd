"""Tests for old/new value differences."""

import numpy as np
import pytest

from hubsync_pkg.domain import Parameter, ParameterSwitchKind, WorkspaceVariable
from hubsync_pkg.services import compute_difference, matrix_differences, parameter_differences, variable_difference


class TestComputeDifference:
    """Test difference formatting."""

    @pytest.mark.parametrize(
        "old, new, expected",
        [
            ("2", "3", ("+1", "+50%")),
            ("4", "3", ("-1", "-25%")),
            ("0", "5", ("+5", "+5%")),
            ("3", "3", ("0", "0%")),
            ("3", "2.5", ("-0.5", "-16.67%")),
        ],
    )
    def test_numeric(self, old, new, expected):
        assert compute_difference(old, new) == expected

    def test_negative_old_value(self):
        assert compute_difference("-2", "-1") == ("+1", "+50%")

    def test_non_numeric(self):
        assert compute_difference("abc", "2") == ("N/A", "N/A")
        assert compute_difference(None, "2") == ("N/A", "N/A")


class TestParameterDifferences:
    """Test per value set rows."""

    def test_mapped_clone_against_original(self, model):
        clone = model.mass_parameter.clone(deep=True)
        clone.value_sets[0].computed = ["15"]
        clone.value_sets[0].value_switch = ParameterSwitchKind.COMPUTED

        rows = parameter_differences(model.mass_parameter, clone)

        assert len(rows) == 1
        assert rows[0].name == "sat.mass"
        assert rows[0].old_value == "10"
        assert rows[0].new_value == "15"
        assert rows[0].difference == "+5"

    def test_new_parameter(self, model):
        parameter = Parameter(parameter_type=model.mass, container=model.satellite)
        parameter.value_sets.append(model.mass_parameter.value_sets[0].clone())

        rows = parameter_differences(None, parameter)
        assert rows[0].old_value is None
        assert rows[0].difference == "N/A"

    def test_option_in_name(self, model):
        value_set = model.mass_parameter.value_sets[0].clone()
        value_set.actual_option = model.option
        parameter = Parameter(
            parameter_type=model.mass, container=model.satellite, value_sets=[value_set], is_option_dependent=True
        )

        rows = parameter_differences(None, parameter)
        assert rows[0].name == "sat.mass\\opt1"


class TestVariableDifferences:
    """Test workspace side differences."""

    def test_scalar(self):
        row = variable_difference(WorkspaceVariable(name="a", actual_value=2), WorkspaceVariable(name="a", actual_value=4))
        assert (row.name, row.difference, row.percent_difference) == ("a", "+2", "+100%")

    def test_matrix_cells(self):
        cells = matrix_differences(np.array([[1.0, 2.0]]), np.array([[1.0, 3.0], [4.0, 5.0]]))

        assert len(cells) == 4
        assert not cells[0].has_changed
        assert cells[1].difference == "+1"
        assert cells[2].old_value is None
