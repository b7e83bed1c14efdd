"""Tests for script input detection."""

from pathlib import Path

import numpy as np
import pytest

from hubsync_pkg.config import ScriptConfig
from hubsync_pkg.contracts import ScriptParseError
from hubsync_pkg.services import ScriptParser, parse_array_literal, split_statements


SCRIPT = """% orbit model
mass = 12.5;
offset = -3
gains = [1 2; 3 4];
weights = [1, 2, 3]';
name = 'lander';
total = mass * 2;
for i = 1:3
    step = 4;
end
mass2 = 1e3;
"""


@pytest.fixture
def script(temp_dir: Path) -> Path:
    path = temp_dir / "orbit.m"
    path.write_text(SCRIPT)
    return path


class TestStatementSplitting:
    """Test statement boundaries."""

    def test_terminators(self):
        statements = list(split_statements("a = 1; b = 2, c = 3\nd = 4"))
        assert [statement.text for statement in statements] == ["a = 1", "b = 2", "c = 3", "d = 4"]
        assert statements[0].terminator == ";"

    def test_brackets_span_lines(self):
        statements = list(split_statements("m = [1 2\n3 4];\nx = 1"))
        assert statements[0].text == "m = [1 2\n3 4]"

    def test_comments_skipped(self):
        statements = list(split_statements("% a = 1\nb = 2 % trailing"))
        assert [statement.text for statement in statements] == ["b = 2"]

    def test_quotes_and_transpose(self):
        statements = list(split_statements("s = 'a;b'; t = v';"))
        assert [statement.text for statement in statements] == ["s = 'a;b'", "t = v'"]


class TestArrayLiterals:
    """Test numeric array literals."""

    def test_matrix(self):
        np.testing.assert_array_equal(parse_array_literal("1 2; 3 4"), [[1.0, 2.0], [3.0, 4.0]])

    def test_transpose(self):
        assert parse_array_literal("1, 2, 3", transpose=True).shape == (3, 1)

    def test_ragged_rows(self):
        assert parse_array_literal("1 2; 3") is None

    def test_non_numeric(self):
        assert parse_array_literal("a b") is None


class TestScriptParser:
    """Test input detection on a script file."""

    def test_detected_inputs(self, script: Path):
        result = ScriptParser().parse(script)
        names = [variable.name for variable in result.variables]

        assert names == ["mass", "offset", "gains", "weights", "mass2"]
        assert result.variables[0].actual_value == 12.5
        assert result.variables[1].actual_value == -3.0
        assert result.variables[4].actual_value == 1000.0
        assert result.variables[3].actual_value.shape == (3, 1)

    def test_loop_assignments_ignored(self, script: Path):
        result = ScriptParser().parse(script)
        assert "step" not in [variable.name for variable in result.variables]

    def test_copy_without_inputs(self, script: Path):
        result = ScriptParser().parse(script)
        copy = Path(result.script_without_inputs_path)

        assert copy.parent == script.parent
        assert copy.name.startswith("f") and copy.suffix == ".m"
        content = copy.read_text()
        assert "mass = 12.5" not in content
        assert "gains" not in content
        assert "total = mass * 2;" in content
        assert "step = 4;" in content

    def test_duplicates_dropped(self, temp_dir: Path):
        path = temp_dir / "dup.m"
        path.write_text("a = 1;\na = 2;\nb = 3;\n")

        result = ScriptParser().parse(path)

        assert [variable.name for variable in result.variables] == ["b"]
        assert result.duplicated_names == ("a",)
        assert "a = 1" in Path(result.script_without_inputs_path).read_text()

    def test_custom_temp_name(self, script: Path):
        result = ScriptParser(ScriptConfig(temp_prefix="tmp_", temp_suffix=".txt")).parse(script)
        copy = Path(result.script_without_inputs_path)

        assert copy.name.startswith("tmp_")
        assert copy.suffix == ".txt"

    def test_missing_script(self, temp_dir: Path):
        with pytest.raises(ScriptParseError, match="Cannot read script"):
            ScriptParser().parse(temp_dir / "missing.m")
