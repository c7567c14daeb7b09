"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from cvpress.utils.logger import setup_logger as _setup_logger
from cvpress.utils.settings import RENDERCV_EXECUTABLE

CONTEXT_PREFIX = "[render]"


def setup_rendering_logger(log_dir: Path, executable: str = RENDERCV_EXECUTABLE) -> Path:
    """
    Setup logger for rendering context.

    Args:
        log_dir: Directory for this rendering session
        executable: Renderer executable recorded in the provenance header

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance={"Renderer": executable},
    )


def _log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_render_start(language: str, source: Path, pdf_path: Path, command: list) -> None:
    """Log start of a render with context."""
    _log_info(f"Rendering '{language}': {source.name} -> {pdf_path}")
    _log_debug(f"  Command: {' '.join(command)}")


def log_validation_issues(source: Path, issues: list) -> None:
    _log_error(f"{source}: {len(issues)} validation issue(s)")
    for i, issue in enumerate(issues, 1):
        _log_error(f"  Issue {i}: {issue}")


def log_validation_warnings(source: Path, warnings: list) -> None:
    for warning in warnings:
        _log_warning(f"{source}: {warning}")


def log_render_result(result, verbose: bool = False) -> None:
    """
    Log render result with diagnostics.

    Args:
        result: RenderResult from render_description()
        verbose: Dump renderer stdout/stderr even on success
    """
    if result.success:
        _log_success(
            f"{result.language}: {result.page_count} page(s) ({result.elapsed_s:.2f}s)"
        )
        _log_debug(f"  PDF: {result.pdf_path}")
        _log_debug(f"  Metadata: {result.metadata_path}")
    else:
        _log_error(f"{result.language}: render failed ({result.elapsed_s:.2f}s)")
        for i, err in enumerate(result.errors[:10], 1):
            _log_error(f"  Error {i}: {err}")

    if result.discarded_outputs:
        _log_warning(
            f"Renderer produced suppressed outputs, discarded: "
            f"{', '.join(p.name for p in result.discarded_outputs)}"
        )

    # Raw output bypasses the format template so multi-line text stays readable
    if verbose or not result.success:
        if result.stdout:
            logger.opt(raw=True).debug(
                f"\n{'=' * 80}\nRENDERER STDOUT:\n{'=' * 80}\n{result.stdout}\n"
            )
        if result.stderr:
            logger.opt(raw=True).debug(
                f"\n{'=' * 80}\nRENDERER STDERR:\n{'=' * 80}\n{result.stderr}\n"
            )
