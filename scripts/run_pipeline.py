#!/usr/bin/env python3
"""
Pipeline CLI

Runs the stages a triggering event calls for. Under GitHub Actions the event
is read from the job environment; locally, pass --tag for a manual release run.

Commands:
    run     - Run the planned stages (render, publish, release)
    plan    - Show which stages an event would run
    history - Show recent pipeline events

Examples:\n

    run_pipeline.py run                          # Event from the CI environment

    run_pipeline.py run --tag v1.3.0             # Manual release run

    run_pipeline.py run --stage release --site-url https://me.github.io/cv/   # Release earlier renders

    run_pipeline.py plan --event push --ref refs/heads/main --changed data/cv/en.yaml

    run_pipeline.py history -n 20
"""

from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from cvpress.contexts.orchestration import (
    Stage,
    classify_event,
    event_from_environment,
    export_plan,
    planned_stages,
    run_for_event,
)
from cvpress.contexts.orchestration.logger import setup_pipeline_logger
from cvpress.exceptions import CVPressError
from cvpress.utils.cli import display_path, fail, session_log_dir
from cvpress.utils.event_logging import get_recent_events
from cvpress.utils.settings import load_settings
from cvpress.utils.timestamp import format_timestamp

app = typer.Typer(
    help="Run the render / publish / release pipeline for a triggering event",
    add_completion=False,
    invoke_without_command=True,
)

SettingsOption = Annotated[
    Optional[Path],
    typer.Option("--settings", "-s", help="Pipeline settings file (default: config/pipeline.yaml)"),
]


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("run")
def run_command(
    tag: Annotated[
        Optional[str],
        typer.Option("--tag", "-t", help="Manual release run for this version tag"),
    ] = None,
    prerelease: Annotated[
        Optional[bool],
        typer.Option(
            "--prerelease/--no-prerelease",
            help="Pre-release flag for manual runs (default: tag has a pre-release suffix)",
        ),
    ] = None,
    stage: Annotated[
        Optional[List[Stage]],
        typer.Option("--stage", help="Run only these of the planned stages (repeatable)"),
    ] = None,
    site_url: Annotated[
        Optional[str],
        typer.Option("--site-url", help="Published site URL for release notes when publish ran elsewhere"),
    ] = None,
    settings_file: SettingsOption = None,
):
    """Run the stages planned for the current event."""
    log_file = None
    try:
        settings = load_settings(settings_file)
        if tag:
            event = classify_event("manual", inputs={"tag": tag, "prerelease": prerelease})
        else:
            event = event_from_environment()
        log_file = setup_pipeline_logger(session_log_dir("pipeline"), event.tag or event.kind.value)
        run = run_for_event(event, settings, only=stage, site_url=site_url)
    except CVPressError as e:
        if log_file:
            typer.echo(f"  Log: {display_path(log_file)}", err=True)
        if e.retriable:
            typer.echo("  The failure looks transient; re-running the job may succeed.", err=True)
        fail(str(e))

    if run is None:
        typer.secho("\nNothing to do for this event.\n", fg=typer.colors.YELLOW)
        raise typer.Exit()

    typer.secho(f"\n✓ Run {run.run_id} {run.state.value}", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Stages: {', '.join(s.value for s in run.stages)}")
    for code, result in run.renders.items():
        typer.echo(f"  {code}: {display_path(result.pdf_path)}")
    if run.publish:
        typer.echo(f"  Site: {run.publish.base_url}")
    if run.release:
        typer.echo(f"  Release: {run.release.tag} {run.release.url}")
    typer.echo(f"  Log: {display_path(log_file)}\n")


@app.command("plan")
def plan_command(
    event_name: Annotated[
        Optional[str],
        typer.Option("--event", "-e", help="push, pull_request or workflow_dispatch (default: CI environment)"),
    ] = None,
    ref: Annotated[str, typer.Option("--ref", help="Git ref of the event")] = "",
    changed: Annotated[
        Optional[List[str]], typer.Option("--changed", help="Changed path (repeatable)")
    ] = None,
    tag: Annotated[Optional[str], typer.Option("--tag", help="Tag for manual events")] = None,
    settings_file: SettingsOption = None,
):
    """Show the stages an event would run."""
    try:
        settings = load_settings(settings_file)
        if event_name:
            event = classify_event(event_name, ref=ref, changed_paths=changed or [], inputs={"tag": tag})
        else:
            event = event_from_environment()
    except CVPressError as e:
        fail(str(e))

    stages = planned_stages(event, settings)
    export_plan(stages)
    typer.echo(f"Event: {event.kind.value} {event.ref or event.tag or ''}".rstrip())
    typer.echo(f"Stages: {' -> '.join(s.value for s in stages) if stages else '(none)'}")


@app.command("history")
def history_command(
    n: Annotated[int, typer.Option("-n", help="Number of events to show")] = 10,
    run_id: Annotated[Optional[str], typer.Option("--run", help="Only this run")] = None,
):
    """Show recent pipeline events."""
    events = get_recent_events(n, run_id=run_id)
    if not events:
        typer.echo("No pipeline events recorded.")
        raise typer.Exit()

    for event in events:
        when = format_timestamp(event.get("timestamp", ""), relative=True)
        detail = ""
        if event["event_type"] == "state_change":
            detail = f"{event.get('old_state')} -> {event.get('new_state')}"
        elif "language" in event:
            detail = event["language"]
        elif "base_url" in event:
            detail = event["base_url"]
        typer.echo(f"{when:>10}  {event['run_id']}  {event['event_type']:<18} {detail}")


if __name__ == "__main__":
    app()
