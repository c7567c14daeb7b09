"""
Build metadata written next to each render artifact.

Downstream stages (the landing page footer, release notes) surface which
commit produced a PDF, when, and who triggered the build.
"""

import json
import os
import subprocess
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Mapping, Optional

from cvpress.utils.timestamp import utc_now_iso

METADATA_SUFFIX = ".build.json"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class BuildMetadata:
    """
    Attributes:
        commit: Source revision the artifact was built from
        timestamp: UTC ISO 8601 build time
        actor: User or bot that triggered the build
        ref: Git ref of the triggering event (may be empty)
    """

    commit: str
    timestamp: str
    actor: str
    ref: str = ""

    @property
    def short_commit(self) -> str:
        return self.commit[:7] if self.commit != UNKNOWN else self.commit

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping) -> "BuildMetadata":
        return cls(
            commit=data.get("commit", UNKNOWN),
            timestamp=data.get("timestamp", ""),
            actor=data.get("actor", UNKNOWN),
            ref=data.get("ref", ""),
        )


def _git_head(cwd: Optional[Path] = None) -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return UNKNOWN
    return result.stdout.strip() if result.returncode == 0 and result.stdout.strip() else UNKNOWN


def collect_build_metadata(
    env: Optional[Mapping[str, str]] = None, cwd: Optional[Path] = None
) -> BuildMetadata:
    """
    Collect build metadata from the CI environment.

    GITHUB_SHA / GITHUB_ACTOR / GITHUB_REF are used when present; outside CI the
    commit comes from ``git rev-parse HEAD`` and the actor from USER.
    """
    env = os.environ if env is None else env

    commit = env.get("GITHUB_SHA") or _git_head(cwd)
    actor = env.get("GITHUB_ACTOR") or env.get("USER") or env.get("USERNAME") or UNKNOWN

    return BuildMetadata(
        commit=commit,
        timestamp=utc_now_iso(),
        actor=actor,
        ref=env.get("GITHUB_REF", ""),
    )


def metadata_path_for(pdf_path: Path) -> Path:
    """en.pdf -> en.build.json"""
    pdf_path = Path(pdf_path)
    return pdf_path.with_name(f"{pdf_path.stem}{METADATA_SUFFIX}")


def write_metadata(
    pdf_path: Path,
    metadata: BuildMetadata,
    language: str,
    page_count: Optional[int],
    renderer: str,
) -> Path:
    """Write the build metadata file next to *pdf_path* and return its path."""
    path = metadata_path_for(pdf_path)
    payload = {
        "language": language,
        "artifact": Path(pdf_path).name,
        "page_count": page_count,
        "renderer": renderer,
        **metadata.to_dict(),
    }
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path


def read_metadata(path: Path) -> dict:
    """Read a metadata file (or the metadata belonging to a PDF path)."""
    path = Path(path)
    if path.suffix == ".pdf":
        path = metadata_path_for(path)
    return json.loads(path.read_text(encoding="utf-8"))


def read_shared_metadata(artifacts: Mapping[str, Path]) -> Optional[BuildMetadata]:
    """Build metadata of the first artifact that has a metadata file, if any."""
    for pdf_path in artifacts.values():
        if metadata_path_for(pdf_path).exists():
            return BuildMetadata.from_dict(read_metadata(pdf_path))
    return None
