from pathlib import Path

import pytest
from typer.testing import CliRunner

from turingsim.scripts import app

runner = CliRunner()


@pytest.fixture
def machine_file(tmp_path: Path):
    def write(text: str) -> str:
        path = tmp_path / "machine.yaml"
        path.write_text(text, encoding="utf-8")
        return str(path)

    return write


def test_check(machine_file):
    path = machine_file("blank: ' '\nstart state: A\ntable:\n  A:\n    1: {R: B}\n  B:\n")
    result = runner.invoke(app, ["check", path])
    assert result.exit_code == 0
    assert "The machine is valid." in result.output
    assert "halting:       B" in result.output


def test_check_invalid(machine_file):
    path = machine_file("start state: A\ntable:\n  A:\n")
    result = runner.invoke(app, ["check", path])
    assert result.exit_code == 1
    assert "No blank symbol was specified" in result.output


def test_check_undeclared_state(machine_file):
    path = machine_file("blank: ' '\nstart state: A\ntable:\n  A:\n    1: {R: C}\n")
    result = runner.invoke(app, ["check", path])
    assert result.exit_code == 1
    assert "Undeclared state C" in result.output


def test_check_yaml_error(machine_file):
    path = machine_file("blank: ' '\nstart state: A\ntable:\n  A: {1: R\n")
    result = runner.invoke(app, ["check", path])
    assert result.exit_code == 1
    assert "not valid YAML" in result.output
    assert "line " in result.output


def test_needs_exactly_one_source(machine_file):
    assert runner.invoke(app, ["check"]).exit_code == 1
    path = machine_file("blank: ' '\nstart state: A\ntable:\n  A:\n")
    assert runner.invoke(app, ["check", path, "--example", "palindrome"]).exit_code == 1


def test_unknown_example():
    result = runner.invoke(app, ["run", "--example", "nope"])
    assert result.exit_code == 1
    assert "no built-in machine called 'nope'" in result.output


def test_run_example():
    result = runner.invoke(app, ["run", "--example", "binary_increment"])
    assert result.exit_code == 0
    assert "Halted in state 'done' after 8 steps." in result.output
    assert "[1] 1  0  0 " in result.output


def test_run_with_input():
    result = runner.invoke(app, ["run", "-e", "palindrome", "-i", "ab"])
    assert result.exit_code == 0
    assert "Halted in state 'reject'" in result.output


def test_run_stops_without_transition():
    result = runner.invoke(app, ["run", "-e", "div_by_3", "--input", "10100"])
    assert result.exit_code == 0
    assert "Stopped in state 'q2'" in result.output


def test_run_trace():
    result = runner.invoke(app, ["run", "-e", "binary_increment", "--trace"])
    assert result.exit_code == 0
    assert "Configuration sequence:" in result.output
    assert "[right]" in result.output
    assert "[done]" in result.output


def test_run_step_limit():
    result = runner.invoke(app, ["run", "-e", "repeat01", "--max-steps", "25"])
    assert result.exit_code == 2
    assert "did not halt within 25 steps" in result.output


def test_run_config_file(tmp_path: Path):
    config = tmp_path / "turingsim.toml"
    config.write_text("[turingsim]\nmax_steps = 7\n", encoding="utf-8")
    result = runner.invoke(app, ["run", "-e", "repeat01", "--config", str(config)])
    assert result.exit_code == 2
    assert "within 7 steps" in result.output


def test_run_bad_config(tmp_path: Path):
    config = tmp_path / "turingsim.toml"
    config.write_text("[turingsim]\nwindow = -3\n", encoding="utf-8")
    result = runner.invoke(app, ["run", "-e", "repeat01", "--config", str(config)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_graph():
    result = runner.invoke(app, ["graph", "--example", "busy_beaver_3"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "stateDiagram-v2"
    assert "    s3 --> [*]" in lines


def test_examples():
    result = runner.invoke(app, ["examples"])
    assert result.exit_code == 0
    assert "busy_beaver_3" in result.output
    assert "3-state busy beaver" in result.output
    assert "powers of two" in result.output


def test_check_example_shows_name():
    result = runner.invoke(app, ["check", "--example", "powers_of_two"])
    assert result.exit_code == 0
    assert "name:          powers of two" in result.output
    assert "synonyms:      accept, reject" in result.output


def test_parser_errors_are_not_reported_as_missing_examples(monkeypatch: pytest.MonkeyPatch):
    def broken(text: str):
        raise KeyError("blank")

    monkeypatch.setattr("turingsim.scripts.parse_spec", broken)
    result = runner.invoke(app, ["check", "--example", "palindrome"])
    assert isinstance(result.exception, KeyError)
    assert "no built-in machine" not in result.output
