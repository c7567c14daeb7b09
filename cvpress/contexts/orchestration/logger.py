"""
Orchestration context logger.

Provides logging interface for pipeline runs with automatic [pipeline] prefix.
"""

from pathlib import Path

from loguru import logger

from cvpress.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[pipeline]"


def setup_pipeline_logger(log_dir: Path, trigger: str) -> Path:
    """Setup logger for a pipeline session started by *trigger* (tag or event kind)."""
    return _setup_logger(
        context_name="pipeline",
        log_dir=log_dir,
        extra_provenance={"Trigger": trigger},
    )


def _log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def log_transition(run_id: str, old_state: str, new_state: str) -> None:
    _log_info(f"{run_id}: {old_state} -> {new_state}")
