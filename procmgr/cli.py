"""
Command Line Interface for procmgr.

Runs a single command through the execution facade and reports its output,
mostly useful for trying timeouts and environments from a shell.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from procmgr import __version__
from procmgr.core.config import Config
from procmgr.core.exceptions import ConfigError, ExecError
from procmgr.core.observability import configure_observability
from procmgr.process.manager import Manager

console = Console(stderr=True)
app = typer.Typer(help="procmgr - run commands with a timeout and capture their output")

EXIT_TIMEOUT = 124
EXIT_START_FAILED = 127


def setup_logging(config: Config, debug: bool = False):
    """Setup logging configuration."""
    level = "DEBUG" if debug else config.logging.level
    configure_observability(
        log_level=level,
        log_file=Path(config.logging.file) if config.logging.file else None,
        enable_metrics=config.metrics_enabled,
    )


def parse_env(pairs: List[str], clean: bool) -> Optional[Dict[str, str]]:
    """Build the child environment from KEY=VALUE pairs.

    Returns None (inherit the host environment) when nothing was given and
    ``clean`` is off.
    """
    if not pairs and not clean:
        return None
    env: Dict[str, str] = {} if clean else dict(os.environ)
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def load_config(config_path: Optional[Path]) -> Config:
    if config_path is not None:
        return Config.load_from_file(config_path)
    return Config.load_from_env()


@app.command(context_settings={"allow_interspersed_args": False})
def run(
    command: List[str] = typer.Argument(..., help="Command and its arguments"),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", min=0, help="Timeout in seconds (default from config)"
    ),
    directory: Optional[Path] = typer.Option(
        None, "--dir", "-C", help="Working directory for the command"
    ),
    env: List[str] = typer.Option(
        [], "--env", "-e", help="Environment variable KEY=VALUE (repeatable)"
    ),
    clean_env: bool = typer.Option(
        False, "--clean-env", help="Start from an empty environment"
    ),
    stdin_file: Optional[Path] = typer.Option(
        None, "--stdin-file", exists=True, dir_okay=False, help="File fed to the command's standard input"
    ),
    description: Optional[str] = typer.Option(
        None, "--desc", help="Description recorded with the process"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="YAML or JSON configuration file"
    ),
    debug: bool = typer.Option(False, help="Enable debug logging"),
):
    """Run COMMAND to completion and print its stdout and stderr."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    setup_logging(config, debug)
    manager = Manager(config=config.exec)
    child_env = parse_env(env, clean_env)
    desc = description or " ".join(command)

    stdin = open(stdin_file, "rb") if stdin_file is not None else None
    try:
        stdout, stderr = manager.exec_dir_env_stdin(
            timeout,
            str(directory) if directory else None,
            desc,
            child_env,
            stdin,
            command[0],
            *command[1:],
        )
    except OSError as e:
        console.print(f"[red]Failed to start {command[0]}:[/red] {e}")
        raise typer.Exit(EXIT_START_FAILED)
    except ExecError as e:
        typer.echo(e.stdout, nl=False)
        typer.echo(e.stderr, nl=False, err=True)
        table = Table(show_header=False, box=None)
        table.add_row("process", f"{e.process_id} ({e.description})")
        table.add_row("wait error", e.wait_error)
        table.add_row("context", str(e.context_error) if e.context_error else "-")
        console.print(Panel(table, title="[red]Command failed[/red]", border_style="red"))
        raise typer.Exit(EXIT_TIMEOUT if e.timed_out else 1)
    finally:
        if stdin is not None:
            stdin.close()

    typer.echo(stdout, nl=False)
    typer.echo(stderr, nl=False, err=True)


@app.command()
def version():
    """Show the procmgr version."""
    typer.echo(f"procmgr {__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
