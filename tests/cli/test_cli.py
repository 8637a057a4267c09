import pytest
from typer.testing import CliRunner

from procmgr import __version__
from procmgr.cli import EXIT_START_FAILED, EXIT_TIMEOUT, app, parse_env
from tests.fixtures.processes import PYTHON

runner = CliRunner()


def test_run_prints_stdout():
    result = runner.invoke(app, ["run", "--", PYTHON, "-c", "print('hello')"])

    assert result.exit_code == 0
    assert "hello" in result.stdout


def test_run_non_zero_exit_reports_failure():
    result = runner.invoke(
        app, ["run", "--desc", "doomed", "--", PYTHON, "-c", "import sys; sys.exit(4)"]
    )

    assert result.exit_code == 1
    assert "doomed" in result.output
    assert "exit status 4" in result.output


def test_run_timeout_exit_code():
    result = runner.invoke(
        app, ["run", "--timeout", "0.1", "--", PYTHON, "-c", "import time; time.sleep(2)"]
    )

    assert result.exit_code == EXIT_TIMEOUT
    assert "deadline exceeded" in result.output


def test_run_negative_timeout_is_usage_error():
    result = runner.invoke(app, ["run", "--timeout", "-1", "--", PYTHON, "-c", "pass"])

    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)


def test_run_missing_binary():
    result = runner.invoke(app, ["run", "--", "/nonexistent/procmgr-missing"])

    assert result.exit_code == EXIT_START_FAILED


def test_run_with_env_and_dir(temp_dir):
    code = "import os; print(os.environ['GREETING'], os.path.basename(os.getcwd()))"
    result = runner.invoke(
        app,
        ["run", "--env", "GREETING=hi", "--dir", str(temp_dir), "--", PYTHON, "-c", code],
    )

    assert result.exit_code == 0
    assert f"hi {temp_dir.name}" in result.stdout


def test_run_with_stdin_file(temp_dir):
    path = temp_dir / "in.txt"
    path.write_text("piped")

    result = runner.invoke(
        app,
        ["run", "--stdin-file", str(path), "--", PYTHON, "-c", "import sys; print(sys.stdin.read())"],
    )

    assert result.exit_code == 0
    assert "piped" in result.stdout


def test_run_with_config_file(temp_dir):
    config = temp_dir / "procmgr.yaml"
    config.write_text("exec:\n  default_timeout: 0.1\n")

    result = runner.invoke(
        app,
        ["run", "--config", str(config), "--", PYTHON, "-c", "import time; time.sleep(2)"],
    )

    assert result.exit_code == EXIT_TIMEOUT


def test_run_with_missing_config(temp_dir):
    result = runner.invoke(
        app, ["run", "--config", str(temp_dir / "none.yaml"), "--", PYTHON, "-c", "pass"]
    )

    assert result.exit_code == 2


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_parse_env_inherit_when_empty():
    assert parse_env([], clean=False) is None


def test_parse_env_clean():
    assert parse_env(["A=1", "B=x=y"], clean=True) == {"A": "1", "B": "x=y"}


def test_parse_env_merges_host(monkeypatch):
    monkeypatch.setenv("PROCMGR_CLI_HOST", "kept")

    env = parse_env(["A=1"], clean=False)

    assert env["PROCMGR_CLI_HOST"] == "kept"
    assert env["A"] == "1"


def test_parse_env_rejects_malformed():
    import typer

    with pytest.raises(typer.BadParameter):
        parse_env(["NOEQUALS"], clean=True)
