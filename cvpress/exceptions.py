"""Exception hierarchy shared by all CVPRESS contexts."""

from pathlib import Path
from typing import List, Optional


class CVPressError(Exception):
    """Base class for every error CVPRESS raises on purpose."""

    #: Whether retrying the same operation could succeed
    retriable = False


class ConfigurationError(CVPressError):
    """Pipeline settings are missing or invalid."""


class DescriptionValidationError(CVPressError):
    """
    A document description failed structural validation.

    Attributes:
        source: Path of the offending description
        issues: Every structural problem found
    """

    def __init__(self, source: Optional[Path], issues: List[str]):
        self.source = source
        self.issues = list(issues)
        where = f" ({source})" if source else ""
        lines = [f"Document description is invalid{where}:"]
        lines.extend(f"  - {issue}" for issue in self.issues)
        super().__init__("\n".join(lines))


class RendererError(CVPressError):
    """The external renderer exited with an error or could not be started."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        if stderr:
            snippet = stderr[-500:] if len(stderr) > 500 else stderr
            message = f"{message}\n{snippet}"
        super().__init__(message)


class MissingArtifactError(CVPressError):
    """An expected output file is absent or not a readable PDF."""

    def __init__(self, path: Path, reason: str = "file was not produced"):
        self.path = Path(path)
        super().__init__(f"Expected artifact missing: {path} ({reason})")


class DeploymentError(CVPressError):
    """Deploying the site to its target failed."""

    retriable = True


class DeploymentPreempted(DeploymentError):
    """A newer deployment request superseded this one before it went live."""

    retriable = False

    def __init__(self, target_name: str, ticket: int, latest_ticket: int):
        self.target_name = target_name
        self.ticket = ticket
        self.latest_ticket = latest_ticket
        super().__init__(
            f"Deployment #{ticket} to '{target_name}' was preempted by #{latest_ticket}"
        )


class DuplicateReleaseError(CVPressError):
    """A release for this tag already exists; it is never overwritten."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Release for tag '{tag}' already exists")


class ReleaseStoreError(CVPressError):
    """The release backend rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        self.retriable = status_code is not None and status_code >= 500
        super().__init__(message)


class InvalidTriggerError(CVPressError):
    """The triggering event cannot start the requested run."""


class PipelineError(CVPressError):
    """
    A pipeline run failed in one of its stages.

    Attributes:
        stage: State the run was in when it failed
        run_id: Identifier of the failed run
        retriable: Taken from the error that failed the run
    """

    def __init__(self, stage: str, run_id: str, cause: Exception):
        self.stage = stage
        self.run_id = run_id
        self.cause = cause
        self.retriable = bool(getattr(cause, "retriable", False))
        super().__init__(f"Run {run_id} failed during '{stage}': {cause}")
