"""
Releasing context logger.

Provides logging interface for releasing context with automatic [release] prefix.
"""

from pathlib import Path

from loguru import logger

from cvpress.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[release]"


def setup_releasing_logger(log_dir: Path, backend: str) -> Path:
    """Setup logger for a release session against *backend*."""
    return _setup_logger(
        context_name="release",
        log_dir=log_dir,
        extra_provenance={"Release backend": backend},
    )


def _log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")
