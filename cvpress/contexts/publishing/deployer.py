"""
Site deployment with per-target serialization.

A deployment target is a directory served by a static host under a public
base URL (e.g. a GitHub Pages checkout). At most one deployment per target
name is in flight: an exclusive file lock guards the target, and requests that
find it held wait for it.

Two policies decide what happens to the in-flight deployment when a newer
request arrives:

- ``queue``: the newer request waits; every deployment goes live in turn.
- ``preempt``: every request takes a ticket. Before going live a deployment
  checks that no newer ticket exists and aborts with DeploymentPreempted
  otherwise, so the newest request is the one that ends up live.

Going live is a directory swap, so readers never see a half-copied site.
"""

import fcntl
import json
import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from cvpress.contexts.publishing.logger import _log_debug, _log_info, _log_success, _log_warning
from cvpress.exceptions import ConfigurationError, DeploymentError, DeploymentPreempted
from cvpress.utils.event_logging import log_pipeline_event
from cvpress.utils.timestamp import utc_now_iso

POLICIES = ("queue", "preempt")
DEFAULT_LOCK_TIMEOUT_S = 600.0
DEFAULT_POLL_INTERVAL_S = 0.2


@dataclass(frozen=True)
class DeploymentTarget:
    """
    Attributes:
        name: Target identifier; deployments are serialized per name
        root: Directory the static host serves
        base_url: Public URL of root
    """

    name: str
    root: Path
    base_url: str

    @property
    def state_dir(self) -> Path:
        return Path(self.root).parent / f".{self.name}.deploy"

    @property
    def lock_path(self) -> Path:
        return self.state_dir / "lock"

    @property
    def tickets_dir(self) -> Path:
        return self.state_dir / "tickets"

    @property
    def record_path(self) -> Path:
        return self.state_dir / "deployed.json"

    def url_for(self, filename: str = "") -> str:
        return f"{self.base_url.rstrip('/')}/{filename}" if filename else self.base_url.rstrip("/") + "/"


@dataclass
class PublishResult:
    """
    Attributes:
        target_name: Target the site went live on
        base_url: Public URL of the site root
        files: Site-relative paths that were deployed
        ticket: Deployment request ticket
        deployed_at: UTC ISO 8601 time the site went live
    """

    target_name: str
    base_url: str
    files: List[str] = field(default_factory=list)
    ticket: int = 0
    deployed_at: str = ""


class DeploymentLock:
    """
    Exclusive, cross-process lock for one deployment target.

    An advisory flock on the target's lock file. The file itself is never
    removed; the kernel drops the lock when the holder closes it or exits,
    so a crashed deployment cannot leave the target locked. The holder's pid
    is written into the file for diagnostics only.

    Usage:
        with DeploymentLock(target, timeout_s=60):
            ...
    """

    def __init__(
        self,
        target: DeploymentTarget,
        timeout_s: float = DEFAULT_LOCK_TIMEOUT_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ):
        self.target = target
        self.path = target.lock_path
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self._fd: Optional[int] = None

    @property
    def acquired(self) -> bool:
        return self._fd is not None

    def _try_acquire(self) -> bool:
        fd = os.open(self.path, os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        return True

    def holder(self) -> Optional[int]:
        """Pid last written by a holder, if readable."""
        try:
            return int(self.path.read_text().strip() or "0") or None
        except (FileNotFoundError, ValueError):
            return None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.timeout_s
        waited = False

        while not self._try_acquire():
            if not waited:
                _log_info(
                    f"Deployment to '{self.target.name}' in progress (pid {self.holder()}), waiting"
                )
                waited = True
            if time.monotonic() >= deadline:
                raise DeploymentError(
                    f"Timed out after {self.timeout_s}s waiting for deployment lock "
                    f"on '{self.target.name}'"
                )
            time.sleep(self.poll_interval_s)

        _log_debug(f"Acquired deployment lock {self.path}")

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        _log_debug(f"Released deployment lock {self.path}")

    def __enter__(self) -> "DeploymentLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def take_ticket(target: DeploymentTarget) -> int:
    """Register a deployment request; later requests get larger tickets."""
    target.tickets_dir.mkdir(parents=True, exist_ok=True)
    while True:
        ticket = time.time_ns()
        try:
            fd = os.open(target.tickets_dir / str(ticket), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            continue
        os.close(fd)
        return ticket


def drop_ticket(target: DeploymentTarget, ticket: int) -> None:
    (target.tickets_dir / str(ticket)).unlink(missing_ok=True)


def read_deployment_record(target: DeploymentTarget) -> Optional[dict]:
    """The record of the deployment currently live on *target*, if any."""
    if not target.record_path.exists():
        return None
    return json.loads(target.record_path.read_text(encoding="utf-8"))


def latest_ticket(target: DeploymentTarget) -> int:
    """Newest ticket among pending requests and the live deployment."""
    tickets = []
    if target.tickets_dir.exists():
        tickets = [int(p.name) for p in target.tickets_dir.iterdir() if p.name.isdigit()]
    record = read_deployment_record(target)
    if record:
        tickets.append(int(record.get("ticket", 0)))
    return max(tickets, default=0)


def _check_not_preempted(target: DeploymentTarget, ticket: int, policy: str) -> None:
    if policy != "preempt":
        return
    newest = latest_ticket(target)
    if newest > ticket:
        raise DeploymentPreempted(target.name, ticket, newest)


def _site_files(site_dir: Path) -> List[str]:
    return sorted(str(p.relative_to(site_dir)) for p in site_dir.rglob("*") if p.is_file())


def _swap_into_place(staging: Path, root: Path, ticket: int) -> None:
    previous = root.parent / f".{root.name}.previous-{ticket}"
    if root.exists():
        os.replace(root, previous)
    os.replace(staging, root)
    if previous.exists():
        shutil.rmtree(previous)


def deploy_site(
    site_dir: Path,
    target: DeploymentTarget,
    policy: str = "queue",
    lock_timeout_s: float = DEFAULT_LOCK_TIMEOUT_S,
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    run_id: Optional[str] = None,
) -> PublishResult:
    """
    Deploy a built site to *target* and return its public base URL.

    Args:
        site_dir: Built site (see build_site)
        target: Deployment target
        policy: "queue" or "preempt" (see module docstring)
        lock_timeout_s: Give up waiting for the target lock after this long
        poll_interval_s: Lock polling interval
        run_id: Pipeline run to record deployment events under

    Raises:
        ConfigurationError: Unknown policy or missing site directory
        DeploymentPreempted: A newer request superseded this one (preempt policy)
        DeploymentError: Lock wait timed out
    """
    if policy not in POLICIES:
        raise ConfigurationError(f"Unknown deployment policy '{policy}', expected one of {POLICIES}")

    site_dir = Path(site_dir)
    if not (site_dir / "index.html").is_file():
        raise ConfigurationError(f"No built site at {site_dir} (index.html missing)")

    root = Path(target.root)
    root.parent.mkdir(parents=True, exist_ok=True)
    ticket = take_ticket(target)
    _log_info(f"Deployment #{ticket} to '{target.name}' requested (policy: {policy})")

    try:
        with DeploymentLock(target, timeout_s=lock_timeout_s, poll_interval_s=poll_interval_s):
            _check_not_preempted(target, ticket, policy)

            staging = root.parent / f".{root.name}.staging-{ticket}"
            if staging.exists():
                shutil.rmtree(staging)
            shutil.copytree(site_dir, staging)

            try:
                # Last point at which a newer request can take over
                _check_not_preempted(target, ticket, policy)
                _swap_into_place(staging, root, ticket)
            finally:
                if staging.exists():
                    shutil.rmtree(staging)

            result = PublishResult(
                target_name=target.name,
                base_url=target.url_for(),
                files=_site_files(root),
                ticket=ticket,
                deployed_at=utc_now_iso(),
            )
            target.record_path.write_text(
                json.dumps(result.__dict__, indent=2) + "\n", encoding="utf-8"
            )
    except DeploymentPreempted as e:
        _log_warning(str(e))
        if run_id:
            log_pipeline_event(
                "deploy_preempted", run_id, source="publishing", target=target.name, ticket=ticket
            )
        raise
    finally:
        drop_ticket(target, ticket)

    _log_success(f"Deployed {len(result.files)} file(s) to '{target.name}': {result.base_url}")
    if run_id:
        log_pipeline_event(
            "deploy_completed",
            run_id,
            source="publishing",
            target=target.name,
            base_url=result.base_url,
            ticket=ticket,
        )
    return result
