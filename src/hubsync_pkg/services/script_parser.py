"""Detection of input assignments in engine scripts."""

from __future__ import annotations
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union

import numpy as np
import structlog

from ..config.model import ScriptConfig
from ..contracts.errors import ScriptParseError
from ..contracts.types import ScriptParseResult
from ..domain.workspace import WorkspaceVariable

NUMBER = r"(?:\d+\.?\d*|\.\d+)(?:[eEdD][+-]?\d+)?"
_ASSIGNMENT = re.compile(r"^([A-Za-z]\w*)\s*=(?!=)\s*(.+?)\s*$", re.DOTALL)
_POSITIVE = re.compile(rf"^\+?{NUMBER}$")
_NEGATIVE = re.compile(rf"^-\s*{NUMBER}$")
_ELEMENT = re.compile(rf"^[+-]?{NUMBER}$")
_ARRAY = re.compile(r"^\[(?P<body>.*)\](?P<transpose>'?)$", re.DOTALL)

_BLOCK_OPENERS = {"for", "parfor", "while", "if", "switch", "try", "function"}
_LOOP_OPENERS = {"for", "parfor"}
_BLOCK_ENDS = {"end", "endfor", "endwhile", "endif", "endfunction"}


@dataclass
class Statement:
    """One top-level statement with its span in the script text."""

    text: str
    start: int
    end: int
    """End of the statement, excluding its terminator"""

    terminator: str = ""
    terminator_at: int = -1


def split_statements(source: str) -> Iterator[Statement]:
    """Split script text in statements, tracking brackets, strings and comments.

    Newlines inside brackets belong to the statement; ``;``, ``,`` and
    newlines at bracket depth zero terminate it.
    """
    depth = 0
    start = 0
    index = 0
    previous = ""
    length = len(source)

    def emit(end: int, terminator: str) -> Optional[Statement]:
        text = source[start:end]
        if not text.strip():
            return None
        leading = len(text) - len(text.lstrip())
        return Statement(text.strip(), start + leading, start + leading + len(text.strip()), terminator, end)

    while index < length:
        char = source[index]

        if char == "%":
            comment_end = source.find("\n", index)
            comment_end = length if comment_end == -1 else comment_end
            if depth == 0:
                statement = emit(index, "")
                if statement:
                    yield statement
                start = comment_end
            index = comment_end
            continue

        if char == "'" and not (previous.isalnum() or (previous and previous in ")]}_.'")):
            closing = source.find("'", index + 1)
            index = length if closing == -1 else closing + 1
            previous = "'"
            continue

        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(depth - 1, 0)
        elif depth == 0 and char in ";,\n":
            statement = emit(index, char)
            if statement:
                yield statement
            start = index + 1

        if not char.isspace():
            previous = char
        index += 1

    statement = emit(length, "")
    if statement:
        yield statement


def _first_word(text: str) -> str:
    match = re.match(r"[A-Za-z]+", text)
    return match.group(0) if match else ""


def parse_array_literal(body: str, transpose: bool = False) -> Optional[np.ndarray]:
    """Numeric value of an array literal body, None when it is not numeric."""
    rows = []
    for row_text in re.split(r"[;\n]", body):
        elements = [element for element in re.split(r"[,\s]+", row_text.strip()) if element]
        if not elements:
            continue
        if not all(_ELEMENT.match(element) for element in elements):
            return None
        rows.append([_to_float(element) for element in elements])

    if not rows or len({len(row) for row in rows}) != 1:
        return None

    array = np.array(rows, dtype=float)
    return array.T if transpose else array


def _to_float(text: str) -> float:
    return float(re.sub(r"[dD]", "e", text))


class ScriptParser:
    """Finds the numeric input assignments of a script.

    Detected forms are ``name = 2``, ``name = -2``, ``name = [1 2; 3 4]``
    and the transposed ``name = [1 2 3]'``. Assignments inside ``for``
    loops are not inputs. Names assigned more than once are reported and
    dropped.
    """

    def __init__(self, config: Optional[ScriptConfig] = None):
        self.config = config or ScriptConfig()

    def parse(self, path: Union[str, Path]) -> ScriptParseResult:
        """Parse a script and write a copy without its input statements.

        Args:
            path: Script file

        Returns:
            Detected inputs, the path of the copy and the duplicated names

        Raises:
            ScriptParseError: If the script cannot be read or the copy written
        """
        path = Path(path)
        log = structlog.get_logger().bind(script=str(path))
        log.info("Parsing script started")

        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScriptParseError(f"Cannot read script {path}: {exc}", {"path": str(path)}) from exc

        inputs = list(self._detect_inputs(source))

        counts = Counter(name for name, _, _ in inputs)
        duplicated = tuple(name for name, count in counts.items() if count > 1)
        for name in duplicated:
            log.info("Input removed due to duplication", variable=name)
        inputs = [entry for entry in inputs if entry[0] not in duplicated]

        stripped = self._remove_statements(source, [statement for _, _, statement in inputs])
        temp_path = self._save_modified_script(path.parent, stripped)

        variables = [WorkspaceVariable(name=name, actual_value=value) for name, value, _ in inputs]
        log.info("Parsing script ended", inputs=len(variables), duplicated=len(duplicated))
        return ScriptParseResult(
            variables=variables,
            script_without_inputs_path=str(temp_path),
            duplicated_names=duplicated,
        )

    def _detect_inputs(self, source: str):
        blocks: List[str] = []
        for statement in split_statements(source):
            word = _first_word(statement.text)
            if word in _BLOCK_OPENERS and (len(statement.text) == len(word) or not statement.text[len(word)].isalnum()):
                blocks.append(word)
                continue
            if word in _BLOCK_ENDS and statement.text == word:
                if blocks:
                    blocks.pop()
                continue

            if any(block in _LOOP_OPENERS for block in blocks):
                continue

            match = _ASSIGNMENT.match(statement.text)
            if match is None:
                continue

            name, expression = match.group(1), match.group(2).strip()
            value = self._literal_value(expression)
            if value is not None:
                yield name, value, statement

    @staticmethod
    def _literal_value(expression: str):
        if _POSITIVE.match(expression):
            return _to_float(expression.lstrip("+"))
        if _NEGATIVE.match(expression):
            return -_to_float(expression[1:].strip())
        array_match = _ARRAY.match(expression)
        if array_match:
            return parse_array_literal(array_match.group("body"), bool(array_match.group("transpose")))
        return None

    @staticmethod
    def _remove_statements(source: str, statements: List[Statement]) -> str:
        # Replace from the end so earlier spans stay valid
        for statement in sorted(statements, key=lambda item: item.start, reverse=True):
            end = statement.terminator_at + 1 if statement.terminator == ";" else statement.end
            source = source[:statement.start] + "\n" + source[end:]
        return source

    def _save_modified_script(self, directory: Path, content: str) -> Path:
        name = f"{self.config.temp_prefix}{datetime.now():%Y%m%d%H%M%S}{self.config.temp_suffix}"
        target = directory / name
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ScriptParseError(f"Cannot write script copy {target}: {exc}", {"path": str(target)}) from exc
        return target
