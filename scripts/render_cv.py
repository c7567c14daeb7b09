#!/usr/bin/env python3
"""
CV Rendering CLI

Validates document descriptions and renders them to PDF with the external
renderer. Only PDFs are produced; HTML, Markdown and PNG outputs are suppressed.

Commands:
    validate   - Structural check of descriptions, writes nothing
    render     - Render one language to PDF
    render-all - Render every configured language

Examples:\n

    render_cv.py validate                      # Validate every configured language

    render_cv.py validate data/cv/pt.yaml      # Validate one file

    render_cv.py render pt                     # Render data/cv/pt.yaml to outs/render/pt.pdf

    render_cv.py render-all --verbose          # Render everything, dump renderer output
"""

from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from cvpress.contexts.rendering import render_all, render_description, validate_file
from cvpress.contexts.rendering.logger import setup_rendering_logger
from cvpress.contexts.rendering.renderer import find_description
from cvpress.exceptions import CVPressError
from cvpress.utils.cli import display_path, fail, session_log_dir
from cvpress.utils.settings import languages, load_settings, project_path

app = typer.Typer(
    help="Validate CV document descriptions and render them to PDF",
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


@app.command("validate")
def validate_command(
    paths: Annotated[
        Optional[List[Path]],
        typer.Argument(help="Description files (default: every configured language)"),
    ] = None,
    settings_file: SettingsOption = None,
):
    """
    Validate document descriptions without rendering anything.

    Exits with code 1 if any description is invalid.
    """
    try:
        settings = load_settings(settings_file)
        if not paths:
            descriptions_dir = project_path(settings.paths.descriptions)
            paths = [find_description(descriptions_dir, code) for code in languages(settings)]
    except CVPressError as e:
        fail(str(e))

    invalid = 0
    for path in paths:
        result = validate_file(path)
        if result.is_valid:
            typer.secho(f"✓ {display_path(path)}", fg=typer.colors.GREEN)
        else:
            invalid += 1
            typer.secho(f"✗ {display_path(path)}", fg=typer.colors.RED, bold=True)
            for issue in result.issues:
                typer.secho(f"  - {issue}", fg=typer.colors.RED)
        for warning in result.warnings:
            typer.secho(f"  ! {warning}", fg=typer.colors.YELLOW)

    typer.echo("")
    raise typer.Exit(code=1 if invalid else 0)


@app.command("render")
def render_command(
    language: Annotated[str, typer.Argument(help="Language code (e.g. en, pt)")],
    source: Annotated[
        Optional[Path],
        typer.Option("--source", help="Description file (default: <descriptions>/<lang>.yaml)"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="PDF path (default: <render_output>/<lang>.pdf)"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log renderer stdout/stderr")
    ] = False,
    settings_file: SettingsOption = None,
):
    """Render one language to PDF."""
    try:
        settings = load_settings(settings_file)
        source = source or find_description(project_path(settings.paths.descriptions), language)
        output = output or project_path(settings.paths.render_output) / f"{language}.pdf"

        log_file = setup_rendering_logger(session_log_dir("render"), settings.render.executable)
        result = render_description(
            source,
            output,
            language=language,
            executable=settings.render.executable,
            timeout_s=settings.render.timeout_s,
            suppress_html=settings.render.suppress_html,
            suppress_markdown=settings.render.suppress_markdown,
            suppress_png=settings.render.suppress_png,
            verbose=verbose,
        )
    except CVPressError as e:
        fail(str(e))

    typer.secho("\n✓ Render succeeded", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Pages: {result.page_count}")
    typer.echo(f"  PDF: {display_path(result.pdf_path)}")
    typer.echo(f"  Metadata: {display_path(result.metadata_path)}")
    typer.echo(f"  Log: {display_path(log_file)}\n")


@app.command("render-all")
def render_all_command(
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Output directory (default: settings paths.render_output)"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log renderer stdout/stderr")
    ] = False,
    settings_file: SettingsOption = None,
):
    """Render every configured language, stopping at the first failure."""
    try:
        settings = load_settings(settings_file)
        output_dir = output_dir or project_path(settings.paths.render_output)
        log_file = setup_rendering_logger(session_log_dir("render"), settings.render.executable)
        results = render_all(
            project_path(settings.paths.descriptions),
            output_dir,
            languages(settings),
            executable=settings.render.executable,
            timeout_s=settings.render.timeout_s,
            suppress_html=settings.render.suppress_html,
            suppress_markdown=settings.render.suppress_markdown,
            suppress_png=settings.render.suppress_png,
            verbose=verbose,
        )
    except CVPressError as e:
        fail(str(e))

    typer.secho(f"\n✓ Rendered {len(results)} language(s)", fg=typer.colors.GREEN, bold=True)
    for code, result in results.items():
        typer.echo(f"  {code}: {display_path(result.pdf_path)} ({result.page_count} page(s))")
    typer.echo(f"  Log: {display_path(log_file)}\n")


if __name__ == "__main__":
    app()
