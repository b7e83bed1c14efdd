"""Tests for workspace variables."""

import numpy as np
import pytest

from hubsync_pkg.domain import WorkspaceVariable, recompose, shape_placeholder


class TestDecomposition:
    """Test array decomposition."""

    def test_scalar_is_not_decomposed(self):
        variable = WorkspaceVariable(name="a", actual_value=2.0)
        assert variable.decompose() == [variable]
        assert not variable.is_array

    def test_matrix_decomposition_is_row_major(self):
        variable = WorkspaceVariable(name="m", actual_value=np.array([[1.0, 2.0], [3.0, 4.0]]))
        decomposed = variable.decompose()

        assert decomposed[0] is variable
        assert [child.name for child in decomposed[1:]] == ["m[0,0]", "m[0,1]", "m[1,0]", "m[1,1]"]
        assert [child.actual_value for child in decomposed[1:]] == [1.0, 2.0, 3.0, 4.0]
        assert all(child.parent_name == "m" for child in decomposed[1:])
        assert decomposed[2].index == [0, 1]

    def test_parent_keeps_array(self):
        array = np.array([[1.0, 2.0, 3.0]])
        variable = WorkspaceVariable(name="v", actual_value=array)
        variable.decompose()

        assert variable.actual_value == "[1x3] matrix of float64"
        np.testing.assert_array_equal(variable.array_value, array)
        assert variable.value_for_engine is variable.array_value

    def test_vector_laid_out_as_row(self):
        variable = WorkspaceVariable(name="v", actual_value=np.array([5, 6]))
        decomposed = variable.decompose()

        assert variable.array_value.shape == (1, 2)
        assert decomposed[2].name == "v[0,1]"

    def test_shape_placeholder(self):
        assert shape_placeholder(np.zeros((3, 2))) == "[3x2] matrix of float64"


class TestRecompose:
    """Test rebuilding arrays from cells."""

    def test_decompose_then_recompose(self):
        array = np.array([[1.0, 2.0], [3.0, 4.0]])
        variable = WorkspaceVariable(name="m", actual_value=array.copy())
        children = variable.decompose()[1:]

        np.testing.assert_array_equal(recompose(children, "m"), array)

    def test_recompose_uses_edited_cells(self):
        variable = WorkspaceVariable(name="m", actual_value=np.array([[1.0, 2.0]]))
        children = variable.decompose()[1:]
        children[1].actual_value = 7.0

        np.testing.assert_array_equal(recompose(children), np.array([[1.0, 7.0]]))

    def test_recompose_without_cells(self):
        assert recompose([]).shape == (0, 0)

    def test_recompose_mixed_values(self):
        variable = WorkspaceVariable(name="m", actual_value=np.array([[1.0, 2.0]]))
        children = variable.decompose()[1:]
        children[0].actual_value = "text"

        result = recompose(children)
        assert result.dtype == object
        assert result[0, 0] == "text"


class TestIdentity:
    """Test identifiers and validity."""

    def test_identifier_is_stable(self):
        first = WorkspaceVariable(name="a")
        second = WorkspaceVariable(name="a", actual_value=5)

        assert first.derive_identifier("model") == "model-a"
        assert second.derive_identifier("model") == first.identifier

    def test_initial_value_defaults_to_actual(self):
        assert WorkspaceVariable(name="a", actual_value=3).initial_value == 3

    def test_validity_published(self, model):
        variable = WorkspaceVariable(name="a", actual_value=2.0)
        seen = []
        variable.mapping_validity.subscribe(lambda old, new: seen.append(new))

        assert not variable.is_valid()
        variable.selected_parameter_type = model.mass
        assert variable.is_valid()
        assert seen == [False, True]
        assert variable.is_variable_mapping_valid is True

    def test_set_array_redecomposes(self):
        variable = WorkspaceVariable(name="m", actual_value=np.array([[1.0]]))
        variable.decompose()
        children = variable.set_array(np.array([[1.0, 2.0]]))

        assert len(children) == 3
        assert variable.array_value.shape == (1, 2)
