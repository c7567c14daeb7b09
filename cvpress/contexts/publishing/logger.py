"""
Publishing context logger.

Provides logging interface for publishing context with automatic [publish] prefix.
"""

from pathlib import Path

from loguru import logger

from cvpress.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[publish]"


def setup_publishing_logger(log_dir: Path, target_name: str) -> Path:
    """Setup logger for a publishing session against *target_name*."""
    return _setup_logger(
        context_name="publish",
        log_dir=log_dir,
        extra_provenance={"Deployment target": target_name},
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
