#!/usr/bin/env python3
"""
Site Publishing CLI

Builds the static CV site (landing page + <lang>.pdf) from rendered PDFs and
deploys it to the configured target. Deployments to the same target never
overlap; --policy decides whether a newer request waits or supersedes.

Commands:
    build   - Build the site from rendered PDFs
    deploy  - Build and deploy, printing the public URL
    preview - Serve a built site locally with the landing page redirects

Examples:\n

    publish_site.py build                             # Build into outs/site

    publish_site.py deploy --policy preempt           # Newest request wins

    publish_site.py preview --port 8080 --auto-detect # Try browser-language redirects
"""

from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from cvpress.contexts.publishing import build_site, deploy_site, target_from_settings
from cvpress.contexts.publishing.logger import setup_publishing_logger
from cvpress.contexts.publishing.preview import preview_site
from cvpress.contexts.publishing.site_builder import labels_for
from cvpress.contexts.rendering.metadata import read_shared_metadata
from cvpress.contexts.rendering.renderer import artifacts_in
from cvpress.exceptions import CVPressError
from cvpress.utils.cli import display_path, fail, session_log_dir
from cvpress.utils.settings import languages, load_settings, project_path

app = typer.Typer(
    help="Build, deploy and preview the static CV site",
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


def _build(settings, render_dir: Optional[Path], site_dir: Optional[Path], auto_detect: Optional[bool]):
    render_dir = render_dir or project_path(settings.paths.render_output)
    site_dir = site_dir or project_path(settings.paths.site)
    artifacts = artifacts_in(render_dir, languages(settings))
    if auto_detect is None:
        auto_detect = bool(settings.publish.auto_detect_language)
    return build_site(
        artifacts,
        site_dir,
        labels=labels_for(settings.languages),
        title=settings.project.title,
        default_language=settings.project.default_language,
        auto_detect_language=auto_detect,
        metadata=read_shared_metadata(artifacts),
    )


RenderDirOption = Annotated[
    Optional[Path],
    typer.Option("--from", help="Directory holding <lang>.pdf (default: settings paths.render_output)"),
]
SiteDirOption = Annotated[
    Optional[Path], typer.Option("--site-dir", help="Site directory (default: settings paths.site)")
]
AutoDetectOption = Annotated[
    Optional[bool],
    typer.Option(
        "--auto-detect/--no-auto-detect",
        help="Redirect by browser language when no ?lang= is given (default: from settings, off)",
    ),
]


@app.command("build")
def build_command(
    render_dir: RenderDirOption = None,
    site_dir: SiteDirOption = None,
    auto_detect: AutoDetectOption = None,
    settings_file: SettingsOption = None,
):
    """Build the static site without deploying it."""
    try:
        settings = load_settings(settings_file)
        build = _build(settings, render_dir, site_dir, auto_detect)
    except CVPressError as e:
        fail(str(e))

    typer.secho("\n✓ Site built", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Directory: {display_path(build.site_dir)}")
    for name in build.files:
        typer.echo(f"  - {name}")
    typer.echo("")


@app.command("deploy")
def deploy_command(
    render_dir: RenderDirOption = None,
    site_dir: SiteDirOption = None,
    auto_detect: AutoDetectOption = None,
    policy: Annotated[
        Optional[str],
        typer.Option("--policy", "-p", help="queue or preempt (default: from settings)"),
    ] = None,
    settings_file: SettingsOption = None,
):
    """Build the site and deploy it. Prints the public base URL on the last line."""
    try:
        settings = load_settings(settings_file)
        target = target_from_settings(settings)
        log_file = setup_publishing_logger(session_log_dir("publish"), target.name)
        build = _build(settings, render_dir, site_dir, auto_detect)
        result = deploy_site(
            build.site_dir,
            target,
            policy=policy or settings.publish.policy,
            lock_timeout_s=float(settings.publish.lock_timeout_s),
        )
    except CVPressError as e:
        fail(str(e))

    typer.secho("\n✓ Deployed", fg=typer.colors.GREEN, bold=True, err=True)
    typer.echo(f"  Target: {result.target_name} ({len(result.files)} files)", err=True)
    typer.echo(f"  Log: {display_path(log_file)}\n", err=True)
    typer.echo(result.base_url)


@app.command("preview")
def preview_command(
    site_dir: SiteDirOption = None,
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port (0 picks a free one)")] = 8000,
    auto_detect: AutoDetectOption = None,
    settings_file: SettingsOption = None,
):
    """Serve a built site locally until interrupted."""
    try:
        settings = load_settings(settings_file)
    except CVPressError as e:
        fail(str(e))

    site_dir = site_dir or project_path(settings.paths.site)
    if not (site_dir / "index.html").is_file():
        fail(f"No built site at {display_path(site_dir)}; run 'publish_site.py build' first")
    if auto_detect is None:
        auto_detect = bool(settings.publish.auto_detect_language)

    preview_site(site_dir, host=host, port=port, auto_detect_language=auto_detect)


if __name__ == "__main__":
    app()
