#!/usr/bin/env python3
"""
Release Management CLI

Creates release records for tags with the rendered PDFs attached. A tag that
already has a release is refused, never overwritten.

Commands:
    create - Create the release for a tag from rendered PDFs
    show   - Show an existing release
    notes  - Print the notes a release would get, without creating it

Examples:\n

    manage_release.py create v1.3.0 --site-url https://me.github.io/cv/

    manage_release.py create v1.4.0-rc.1 --prerelease

    manage_release.py show v1.3.0
"""

from pathlib import Path
from typing import Dict, Optional

import typer
from typing_extensions import Annotated

from cvpress.contexts.releasing import create_release, generate_release_notes, store_from_settings
from cvpress.contexts.releasing.logger import setup_releasing_logger
from cvpress.contexts.rendering.metadata import (
    BuildMetadata,
    collect_build_metadata,
    read_shared_metadata,
)
from cvpress.contexts.rendering.renderer import artifacts_in
from cvpress.contexts.orchestration.triggers import is_prerelease_tag
from cvpress.contexts.publishing.site_builder import labels_for
from cvpress.exceptions import CVPressError, DuplicateReleaseError
from cvpress.utils.cli import display_path, fail, session_log_dir
from cvpress.utils.settings import languages, load_settings, project_path

app = typer.Typer(
    help="Create and inspect CV releases",
    add_completion=False,
    invoke_without_command=True,
)

SettingsOption = Annotated[
    Optional[Path],
    typer.Option("--settings", "-s", help="Pipeline settings file (default: config/pipeline.yaml)"),
]
RenderDirOption = Annotated[
    Optional[Path],
    typer.Option("--from", help="Directory holding <lang>.pdf (default: settings paths.render_output)"),
]
SiteUrlOption = Annotated[
    Optional[str], typer.Option("--site-url", help="Published site URL to link from the notes")
]


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _artifacts(settings, render_dir: Optional[Path]) -> Dict[str, Path]:
    return artifacts_in(render_dir or project_path(settings.paths.render_output), languages(settings))


def _metadata(artifacts: Dict[str, Path]) -> BuildMetadata:
    return read_shared_metadata(artifacts) or collect_build_metadata()


@app.command("create")
def create_command(
    tag: Annotated[str, typer.Argument(help="Tag name (e.g. v1.3.0)")],
    prerelease: Annotated[
        Optional[bool],
        typer.Option(
            "--prerelease/--no-prerelease",
            help="Mark as pre-release (default: tag has a pre-release suffix)",
        ),
    ] = None,
    site_url: SiteUrlOption = None,
    render_dir: RenderDirOption = None,
    settings_file: SettingsOption = None,
):
    """Create the release for TAG and attach the rendered PDFs."""
    try:
        settings = load_settings(settings_file)
        artifacts = _artifacts(settings, render_dir)
        with store_from_settings(settings) as store:
            log_file = setup_releasing_logger(session_log_dir("release"), store.name)
            record = create_release(
                store,
                tag,
                artifacts,
                _metadata(artifacts),
                prerelease=is_prerelease_tag(tag) if prerelease is None else prerelease,
                site_url=site_url,
                labels=labels_for(settings.languages),
                title=settings.project.title,
            )
    except DuplicateReleaseError as e:
        fail(f"{e}. Tag a new version instead; existing releases are never replaced.")
    except CVPressError as e:
        fail(str(e))

    typer.secho(f"\n✓ Release {record.tag} created", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Pre-release: {'yes' if record.prerelease else 'no'}")
    typer.echo(f"  Assets: {', '.join(record.assets)}")
    typer.echo(f"  URL: {record.url}")
    typer.echo(f"  Log: {display_path(log_file)}\n")


@app.command("show")
def show_command(
    tag: Annotated[str, typer.Argument(help="Tag name")],
    settings_file: SettingsOption = None,
):
    """Show the release for TAG."""
    try:
        settings = load_settings(settings_file)
        with store_from_settings(settings) as store:
            record = store.get_release(tag)
    except CVPressError as e:
        fail(str(e))

    if record is None:
        fail(f"No release for tag '{tag}'")

    typer.secho(f"\n{record.name}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"  Tag: {record.tag}")
    typer.echo(f"  Pre-release: {'yes' if record.prerelease else 'no'}")
    typer.echo(f"  Created: {record.created_at}")
    typer.echo(f"  Assets: {', '.join(record.assets) or '(none)'}")
    typer.echo(f"  URL: {record.url}\n")
    typer.echo(record.body)


@app.command("notes")
def notes_command(
    tag: Annotated[str, typer.Argument(help="Tag name")],
    site_url: SiteUrlOption = None,
    render_dir: RenderDirOption = None,
    settings_file: SettingsOption = None,
):
    """Print the release notes TAG would get."""
    try:
        settings = load_settings(settings_file)
        artifacts = _artifacts(settings, render_dir)
        notes = generate_release_notes(
            tag,
            languages=list(artifacts),
            metadata=_metadata(artifacts),
            site_url=site_url,
            labels=labels_for(settings.languages),
            prerelease=is_prerelease_tag(tag),
            title=settings.project.title,
        )
    except CVPressError as e:
        fail(str(e))

    typer.echo(notes)


if __name__ == "__main__":
    app()
