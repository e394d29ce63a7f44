"""pw-agent command-line interface."""

from __future__ import annotations

import asyncio
import pathlib
import sys

import click

from pw_agent import __version__
from pw_agent.core.errors import (
    EXIT_DOCTOR_FAILURE,
    EXIT_OK,
    EXIT_SCENARIO_FAILURE,
    EXIT_STARTUP_FAILURE,
    PwAgentError,
)

_config_option = click.option(
    "--config", "config_file", default=None, metavar="FILE",
    help="Path to pw-agent.yaml (default: ./pw-agent.yaml if present)",
)


def _load_config(config_file):
    from pw_agent.config import AgentConfig

    try:
        return AgentConfig.load(config_file)
    except PwAgentError as exc:
        click.echo(str(exc), err=True)
        sys.exit(EXIT_STARTUP_FAILURE)


@click.group()
@click.version_option(__version__, prog_name="pw-agent")
def main():
    """Playwright browser automation agent (MCP server)."""
    pass


# ── init ──────────────────────────────────────────────────────────

@main.command()
def init():
    """Write a default pw-agent.yaml and create artifact directories."""
    from pw_agent.artifacts.paths import ensure_artifact_dirs
    from pw_agent.config import AgentConfig
    from pw_agent.constants import DEFAULT_CONFIG_FILE

    config = AgentConfig()
    path = pathlib.Path.cwd() / DEFAULT_CONFIG_FILE
    if config.write_default(path):
        click.echo(f"Created {path}")
    else:
        click.echo(f"Kept existing {path}")

    for d in ensure_artifact_dirs(config.artifacts):
        click.echo(f"Created {d}/")

    click.echo("\nInitialization complete. Register the MCP server in your client:")
    click.echo("  pw-agent mcp-serve")


# ── mcp-serve ─────────────────────────────────────────────────────

@main.command("mcp-serve")
@_config_option
def mcp_serve(config_file):
    """Start the MCP server (stdio transport)."""
    from pw_agent.mcp.server import run_server

    config = _load_config(config_file)
    try:
        run_server(config)
    except Exception as exc:
        click.echo(f"Failed to start MCP server: {exc}", err=True)
        sys.exit(EXIT_STARTUP_FAILURE)
    sys.exit(EXIT_OK)


# ── replay ────────────────────────────────────────────────────────

@main.command()
@click.option("--file", "file_path", required=True, help="Path to actions JSON")
@click.option("--delay-ms", default=0, type=int, help="Pause between steps")
@click.option("--stop-on-error", is_flag=True, help="Stop at the first failing step")
@_config_option
def replay(file_path, delay_ms, stop_on_error, config_file):
    """Replay a recorded command sequence."""
    from pw_agent.mcp.dispatcher import CommandDispatcher
    from pw_agent.runner.logging import open_logger
    from pw_agent.runner.replay import load_actions, replay_actions

    config = _load_config(config_file)
    try:
        actions = load_actions(pathlib.Path(file_path))
    except PwAgentError as exc:
        click.echo(str(exc), err=True)
        sys.exit(EXIT_STARTUP_FAILURE)

    logger = open_logger(config, "replay.log")
    dispatcher = CommandDispatcher.create(config, logger)
    click.echo(f"Replaying {len(actions)} actions...")
    try:
        results = asyncio.run(replay_actions(
            actions, dispatcher, step_delay_ms=delay_ms, stop_on_error=stop_on_error,
        ))
    finally:
        logger.close()

    errors = [r for r in results if "error" in r]
    click.echo(f"Done: {len(results)} steps, {len(errors)} errors")
    for e in errors:
        click.echo(f"  - Step {e['step']} ({e['action']}): {e['error']}")
    sys.exit(EXIT_SCENARIO_FAILURE if errors else EXIT_OK)


# ── scenario ──────────────────────────────────────────────────────

@main.group()
def scenario():
    """Scenario test commands."""
    pass


@scenario.command("run")
@click.option("--file", "file_path", required=True, help="Path to scenario YAML")
@_config_option
def scenario_run(file_path, config_file):
    """Run a scenario test from a YAML file."""
    from pw_agent.mcp.dispatcher import CommandDispatcher
    from pw_agent.runner.logging import open_logger
    from pw_agent.testing.scenario import Scenario, run_scenario

    config = _load_config(config_file)
    try:
        scenario_obj = Scenario.from_file(pathlib.Path(file_path))
    except PwAgentError as exc:
        click.echo(str(exc), err=True)
        sys.exit(EXIT_STARTUP_FAILURE)

    logger = open_logger(config, "scenario.log")
    dispatcher = CommandDispatcher.create(config, logger)
    click.echo(f"Running scenario '{scenario_obj.id}'...")
    try:
        result = asyncio.run(run_scenario(scenario_obj, dispatcher))
    except PwAgentError as exc:
        click.echo(str(exc), err=True)
        sys.exit(EXIT_STARTUP_FAILURE)
    finally:
        logger.close()

    if result.passed:
        click.echo(f"PASSED ({result.steps_run} steps)")
        sys.exit(EXIT_OK)
    click.echo(f"FAILED at step {result.steps_run}")
    for f in result.failures:
        click.echo(f"  - Step {f['step']} ({f['action']}): {f['error']}")
    sys.exit(EXIT_SCENARIO_FAILURE)


# ── doctor ────────────────────────────────────────────────────────

@main.command()
@click.option("--artifact-root", default=None, help="Override the artifact root directory")
@_config_option
def doctor(artifact_root, config_file):
    """Validate the environment: Python, packages, browsers, artifact dirs.

    Exits with code 0 when all required checks pass, or 10 otherwise.
    """
    from pw_agent.config import AgentConfig
    from pw_agent.doctor import run_doctor

    try:
        config = AgentConfig.load(config_file)
    except PwAgentError:
        config = AgentConfig()
    if artifact_root:
        config.artifacts.root = artifact_root
    report = run_doctor(config=config, config_path=config_file)

    _print_report(report)

    if report.passed:
        click.echo("\n✅  Environment is ready.")
        sys.exit(EXIT_OK)
    click.echo(
        "\n❌  One or more checks failed. Fix the issues above and re-run "
        "`pw-agent doctor`.",
        err=True,
    )
    sys.exit(EXIT_DOCTOR_FAILURE)


def _print_report(report) -> None:
    """Pretty-print the doctor report to stdout."""
    click.echo(f"pw-agent doctor: environment check\n{'─' * 40}")
    for check in report.checks:
        icon = "✓" if check.passed else "✗"
        click.echo(f"  [{icon}] {check.name}: {check.message}")
        if check.hint:
            click.echo(f"       ↳ {check.hint}")
