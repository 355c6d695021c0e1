"""Data-driven tests for the Lox pipeline.

Test cases live in tests/{parser,resolver,apps}/*.tests. Format:

    === test name
    source code
    ---
    expected
    ---

Expected is one of:
    ok                         no errors
    error: <message>           a static error containing message (repeatable)
    path.to.value = expected   dotpath assertions against phase data (one per line)

App tests run the program and compare its printed output line by line. A last
line of `runtime error: <message>` expects the run to stop with that error
after printing the lines above it.
"""

import dataclasses
import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from lox import analyze, parse as lox_parse, run as lox_run
from lox.ast import Assign, Expr, This, Variable
from lox.tokens import Token

RUN_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

TESTS = {
    "lox_parse": {"dir": "parser", "run": "phase"},
    "lox_resolve": {"dir": "resolver", "run": "phase"},
    "lox_app": {"dir": "apps", "run": "app"},
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("test timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Spec file parsing
# ---------------------------------------------------------------------------


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_spec_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)
    data: dict | None = None


def resolve_dotpath(obj: object, path: str) -> object:
    """Resolve a dot-separated path against a nested dict/list structure."""
    current = obj
    for part in path.split("."):
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(
                f"cannot traverse {type(current).__name__} with key {part!r}"
            )
    return current


def to_comparable(value: object) -> str:
    """Convert a value to its string form for comparison."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def node_to_data(node: object) -> object:
    """Turn an AST into nested dicts: {"kind": ClassName, field: ...}. Tokens become lexemes."""
    if isinstance(node, Token):
        return node.lexeme
    if isinstance(node, list):
        return [node_to_data(n) for n in node]
    if dataclasses.is_dataclass(node):
        data: dict = {"kind": type(node).__name__}
        for f in dataclasses.fields(node):
            if f.name == "id":
                continue
            data[f.name] = node_to_data(getattr(node, f.name))
        return data
    return node


def collect_refs(node: object, out: list[Expr]) -> None:
    """Collect every Variable, Assign and This node in the tree."""
    if isinstance(node, list):
        for n in node:
            collect_refs(n, out)
        return
    if not dataclasses.is_dataclass(node) or isinstance(node, Token):
        return
    if isinstance(node, (Variable, Assign, This)):
        out.append(node)
    for f in dataclasses.fields(node):
        collect_refs(getattr(node, f.name), out)


def check_expected(expected: str, result: PhaseResult, phase: str) -> None:
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        for line in expected.split("\n"):
            expected_msg = line.strip()[6:].strip()
            if not result.errors:
                pytest.fail(f"Expected error containing '{expected_msg}', got ok")
            found = any(expected_msg.lower() in e.lower() for e in result.errors)
            if not found:
                pytest.fail(
                    f"Expected error containing '{expected_msg}', got: {result.errors}"
                )
        return
    # Dotpath assertions
    if result.errors:
        pytest.fail(f"{phase} failed: {result.errors[0]}")
    assert result.data is not None, f"No data returned from {phase}"
    for line in expected.split("\n"):
        line = line.strip()
        if not line:
            continue
        if "=" not in line:
            pytest.fail(f"Bad assertion (no '='): {line}")
        path, expected_val = line.split("=", 1)
        path = path.strip()
        expected_val = expected_val.strip()
        try:
            actual = resolve_dotpath(result.data, path)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            pytest.fail(f"Path '{path}' not found in result: {e}")
        actual_str = to_comparable(actual)
        if actual_str != expected_val:
            pytest.fail(
                f"Assertion failed: {path}\n"
                f"  expected: {expected_val!r}\n"
                f"  actual:   {actual_str!r}"
            )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_lox_parse(source: str) -> PhaseResult:
    try:
        signal.alarm(RUN_TIMEOUT)
        statements, errors = lox_parse(source)
        if errors:
            return PhaseResult(errors=[str(e) for e in errors])
        return PhaseResult(data={"statements": node_to_data(statements)})
    finally:
        signal.alarm(0)


def run_lox_resolve(source: str) -> PhaseResult:
    try:
        signal.alarm(RUN_TIMEOUT)
        program = analyze(source)
        if program.errors:
            return PhaseResult(errors=[str(e) for e in program.errors])
        refs: list[Expr] = []
        collect_refs(program.statements, refs)
        refs.sort(key=lambda r: r.id)
        entries: list[str] = []
        for ref in refs:
            name = ref.keyword.lexeme if isinstance(ref, This) else ref.name.lexeme
            distance = program.locals.get(ref.id)
            entries.append(f"{name}:{'global' if distance is None else distance}")
        return PhaseResult(data={"refs": entries})
    finally:
        signal.alarm(0)


RUNNERS = {
    "lox_parse": run_lox_parse,
    "lox_resolve": run_lox_resolve,
}


def check_app(source: str, expected: str) -> None:
    try:
        signal.alarm(RUN_TIMEOUT)
        result = lox_run(source)
    finally:
        signal.alarm(0)
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if result.exit_code != 65:
            pytest.fail(f"Expected static error, got exit {result.exit_code}")
        assert expected_msg in result.stderr, result.stderr
        assert result.stdout == ""
        return
    expected_lines = expected.split("\n") if expected else []
    runtime_msg = None
    if expected_lines and expected_lines[-1].startswith("runtime error:"):
        runtime_msg = expected_lines.pop()[len("runtime error:") :].strip()
    if runtime_msg is None:
        if result.exit_code != 0:
            pytest.fail(f"Exit code {result.exit_code}:\n{result.stderr}")
    else:
        if result.exit_code != 70:
            pytest.fail(f"Expected runtime error, got exit {result.exit_code}")
        assert runtime_msg in result.stderr, result.stderr
    actual_lines = result.stdout.split("\n")
    if actual_lines and actual_lines[-1] == "":
        actual_lines.pop()
    assert actual_lines == expected_lines


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, cfg in TESTS.items():
        fixture = f"{name}_input"
        if fixture not in metafunc.fixturenames:
            continue
        specs = discover_specs(TESTS_DIR / cfg["dir"])
        params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
        metafunc.parametrize(f"{fixture},{name}_expected", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_lox_parse(lox_parse_input, lox_parse_expected):
    check_expected(
        lox_parse_expected, RUNNERS["lox_parse"](lox_parse_input), "lox_parse"
    )


def test_lox_resolve(lox_resolve_input, lox_resolve_expected):
    check_expected(
        lox_resolve_expected, RUNNERS["lox_resolve"](lox_resolve_input), "lox_resolve"
    )


def test_lox_app(lox_app_input, lox_app_expected):
    check_app(lox_app_input, lox_app_expected)
