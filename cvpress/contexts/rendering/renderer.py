"""
PDF Rendering Module

Renders document descriptions to PDF with the external renderer (a
RenderCV-compatible command line). Only the PDF is kept: HTML, Markdown and
PNG outputs are suppressed on the command line and anything the renderer
produces anyway is discarded with its scratch directory.
"""

import os
import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from cvpress.contexts.rendering.description import load_description, validate_description
from cvpress.contexts.rendering.logger import (
    _log_info,
    log_render_result,
    log_render_start,
    log_validation_issues,
    log_validation_warnings,
)
from cvpress.contexts.rendering.metadata import (
    BuildMetadata,
    collect_build_metadata,
    write_metadata,
)
from cvpress.exceptions import (
    DescriptionValidationError,
    MissingArtifactError,
    RendererError,
)
from cvpress.utils.event_logging import log_pipeline_event
from cvpress.utils.pdf_processing import is_readable_pdf, page_count
from cvpress.utils.settings import RENDERCV_EXECUTABLE

DESCRIPTION_SUFFIXES = (".yaml", ".yml")
OUTPUT_FOLDER_NAME = "rendercv_output"

# Output suffix -> the toggle that suppresses it
AUXILIARY_OUTPUTS = {
    ".html": "suppress_html",
    ".md": "suppress_markdown",
    ".png": "suppress_png",
}


@dataclass
class RenderResult:
    """
    Result of rendering one document description.

    Attributes:
        success: Whether a verified PDF now exists at pdf_path
        language: Language code of the description
        pdf_path: Final PDF location (None if failed)
        metadata_path: Build metadata written next to the PDF
        page_count: Number of pages in the PDF
        stdout: Standard output from the renderer
        stderr: Standard error from the renderer
        errors: Error messages collected while rendering
        discarded_outputs: Suppressed outputs the renderer produced anyway
        elapsed_s: Wall-clock render time
    """

    success: bool
    language: str
    pdf_path: Optional[Path] = None
    metadata_path: Optional[Path] = None
    page_count: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    errors: List[str] = field(default_factory=list)
    discarded_outputs: List[Path] = field(default_factory=list)
    elapsed_s: float = 0.0


def build_render_command(
    source: Path,
    pdf_path: Path,
    executable: str = RENDERCV_EXECUTABLE,
    output_folder: Optional[Path] = None,
    suppress_html: bool = True,
    suppress_markdown: bool = True,
    suppress_png: bool = True,
) -> List[str]:
    """
    Build the renderer command line.

    Example:
        >>> build_render_command(Path("cv/en.yaml"), Path("out/en.pdf"))
        ['rendercv', 'render', 'cv/en.yaml', '--pdf-path', 'out/en.pdf',
         '--dont-generate-html', '--dont-generate-markdown', '--dont-generate-png']
    """
    cmd = [executable, "render", str(source), "--pdf-path", str(pdf_path)]
    if output_folder is not None:
        cmd += ["--output-folder-name", str(output_folder)]
    if suppress_html:
        cmd.append("--dont-generate-html")
    if suppress_markdown:
        cmd.append("--dont-generate-markdown")
    if suppress_png:
        cmd.append("--dont-generate-png")
    return cmd


def _find_suppressed_outputs(scratch_dir: Path, suppressed: Iterable[str]) -> List[Path]:
    suffixes = {suffix for suffix, toggle in AUXILIARY_OUTPUTS.items() if toggle in suppressed}
    return sorted(p for p in scratch_dir.rglob("*") if p.is_file() and p.suffix in suffixes)


def render_description(
    source: Path,
    pdf_path: Path,
    language: Optional[str] = None,
    executable: str = RENDERCV_EXECUTABLE,
    metadata: Optional[BuildMetadata] = None,
    timeout_s: Optional[float] = None,
    suppress_html: bool = True,
    suppress_markdown: bool = True,
    suppress_png: bool = True,
    verbose: bool = False,
) -> RenderResult:
    """
    Render one document description to exactly one PDF at *pdf_path*.

    The renderer runs in a scratch directory next to the destination. The PDF
    is only moved into place after it has been verified, so a failed render
    never leaves a partial artifact at *pdf_path*.

    Args:
        source: Document description (YAML)
        pdf_path: Destination PDF path
        language: Language code (default: source file stem)
        executable: Renderer executable
        metadata: Build metadata to record (default: collected from the environment)
        timeout_s: Kill the renderer after this many seconds (default: no limit)
        suppress_html / suppress_markdown / suppress_png: Output toggles
        verbose: Log renderer output even on success

    Returns:
        RenderResult for the verified artifact

    Raises:
        DescriptionValidationError: Description failed structural validation
        RendererError: Renderer missing, timed out or exited non-zero
        MissingArtifactError: Renderer reported success but no readable PDF exists
    """
    source = Path(source).resolve()
    pdf_path = Path(pdf_path).resolve()
    language = language or source.stem

    description = load_description(source, language)
    validation = validate_description(description)
    log_validation_warnings(source, validation.warnings)
    if not validation.is_valid:
        log_validation_issues(source, validation.issues)
    validation.raise_for_issues()

    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    metadata = metadata or collect_build_metadata()
    toggles = {
        "suppress_html": suppress_html,
        "suppress_markdown": suppress_markdown,
        "suppress_png": suppress_png,
    }
    suppressed = [name for name, enabled in toggles.items() if enabled]

    start_time = time.time()

    # Scratch dir lives next to the destination so the final move is an atomic rename
    with tempfile.TemporaryDirectory(prefix=f".render-{language}-", dir=pdf_path.parent) as tmp:
        scratch_dir = Path(tmp)
        scratch_pdf = scratch_dir / pdf_path.name
        cmd = build_render_command(
            source,
            scratch_pdf,
            executable=executable,
            output_folder=scratch_dir / OUTPUT_FOLDER_NAME,
            **toggles,
        )
        log_render_start(language, source, pdf_path, cmd)

        try:
            proc = subprocess.run(
                cmd,
                cwd=scratch_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_s,
            )
        except FileNotFoundError as e:
            raise RendererError(f"Renderer executable not found: {executable}") from e
        except subprocess.TimeoutExpired as e:
            raise RendererError(f"Renderer timed out after {timeout_s}s rendering {source}") from e

        result = RenderResult(
            success=False,
            language=language,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )

        if proc.returncode != 0:
            result.errors.append(f"renderer exited with code {proc.returncode}")
            result.elapsed_s = time.time() - start_time
            log_render_result(result, verbose=verbose)
            raise RendererError(
                f"Renderer failed for {source.name} (exit {proc.returncode})",
                returncode=proc.returncode,
                stderr=result.stderr,
            )

        if not is_readable_pdf(scratch_pdf):
            reason = "not a readable PDF" if scratch_pdf.exists() else "file was not produced"
            result.errors.append(f"{scratch_pdf.name}: {reason}")
            result.elapsed_s = time.time() - start_time
            log_render_result(result, verbose=verbose)
            raise MissingArtifactError(pdf_path, reason)

        result.discarded_outputs = [
            p.relative_to(scratch_dir) for p in _find_suppressed_outputs(scratch_dir, suppressed)
        ]
        result.page_count = page_count(scratch_pdf)

        os.replace(scratch_pdf, pdf_path)

    result.pdf_path = pdf_path
    result.metadata_path = write_metadata(
        pdf_path,
        metadata,
        language=language,
        page_count=result.page_count,
        renderer=executable,
    )
    result.success = True
    result.elapsed_s = time.time() - start_time
    log_render_result(result, verbose=verbose)
    return result


def artifacts_in(output_dir: Path, languages: Iterable[str]) -> Dict[str, Path]:
    """Expected <output_dir>/<lang>.pdf per language, as left by an earlier render."""
    return {language: Path(output_dir) / f"{language}.pdf" for language in languages}


def find_description(descriptions_dir: Path, language: str) -> Path:
    """Locate <language>.yaml (or .yml) in *descriptions_dir*."""
    for suffix in DESCRIPTION_SUFFIXES:
        candidate = Path(descriptions_dir) / f"{language}{suffix}"
        if candidate.is_file():
            return candidate
    raise DescriptionValidationError(
        Path(descriptions_dir) / f"{language}.yaml",
        [f"no description for language '{language}' in {descriptions_dir}"],
    )


def render_all(
    descriptions_dir: Path,
    output_dir: Path,
    languages: Iterable[str],
    run_id: Optional[str] = None,
    metadata: Optional[BuildMetadata] = None,
    **render_kwargs,
) -> Dict[str, RenderResult]:
    """
    Render every language to <output_dir>/<lang>.pdf.

    Stops at the first failure. All artifacts of one call share the same build
    metadata. When *run_id* is given each render is recorded in the pipeline
    event log.

    Returns:
        Mapping of language code -> RenderResult, in language order
    """
    output_dir = Path(output_dir)
    metadata = metadata or collect_build_metadata()
    results: Dict[str, RenderResult] = {}

    for language in languages:
        source = find_description(descriptions_dir, language)
        try:
            result = render_description(
                source,
                output_dir / f"{language}.pdf",
                language=language,
                metadata=metadata,
                **render_kwargs,
            )
        except Exception as e:
            if run_id:
                log_pipeline_event(
                    "render_failed", run_id, source="rendering", language=language, error=str(e)
                )
            raise

        results[language] = result
        if run_id:
            log_pipeline_event(
                "render_completed",
                run_id,
                source="rendering",
                language=language,
                pdf_path=str(result.pdf_path),
                page_count=result.page_count,
            )

    _log_info(f"Rendered {len(results)} language(s) into {output_dir}")
    return results
