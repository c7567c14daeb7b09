"""
Trigger classification and stage planning.

Events arrive from CI (GitHub Actions environment) or from the command line
and decide which stages run:

    pull_request                          -> render
    push to a branch                      -> render
    push to the default branch            -> render, publish
    push of a version tag (v1.2.3[-rc.1]) -> render, publish, release
    manual invocation with a tag          -> render, publish, release

Pushes and pull requests only count when they touch the descriptions
directory. An event whose changed paths are unknown is assumed to touch it,
since CI path filters have already been applied by then.
"""

import json
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Tuple

from cvpress.exceptions import InvalidTriggerError

VERSION_TAG_PATTERN = r"^v\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?$"
TAG_REF_PREFIX = "refs/tags/"
BRANCH_REF_PREFIX = "refs/heads/"
TRUTHY = {"1", "true", "yes", "on"}


class EventKind(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"
    TAG = "tag"
    MANUAL = "manual"


class Stage(str, Enum):
    RENDER = "render"
    PUBLISH = "publish"
    RELEASE = "release"


@dataclass(frozen=True)
class TriggerEvent:
    """
    Attributes:
        kind: Event kind
        ref: Full git ref (refs/heads/main, refs/tags/v1.0.0)
        changed_paths: Repository paths touched by the event; empty when unknown
        tag: Tag name for tag and manual events
        prerelease: Explicit pre-release flag (manual events only)
    """

    kind: EventKind
    ref: str = ""
    changed_paths: Tuple[str, ...] = ()
    tag: Optional[str] = None
    prerelease: Optional[bool] = None

    @property
    def branch(self) -> Optional[str]:
        if self.ref.startswith(BRANCH_REF_PREFIX):
            return self.ref[len(BRANCH_REF_PREFIX):]
        return None


def is_version_tag(tag: Optional[str], pattern: str = VERSION_TAG_PATTERN) -> bool:
    return bool(tag) and re.match(pattern, tag) is not None


def is_prerelease_tag(tag: str) -> bool:
    """v1.2.0-rc.1 is a pre-release, v1.2.0 is not."""
    return is_version_tag(tag) and "-" in tag


def _parse_flag(value) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUTHY


def classify_event(
    event_name: str,
    ref: str = "",
    changed_paths: Iterable[str] = (),
    inputs: Optional[Mapping[str, object]] = None,
) -> TriggerEvent:
    """
    Turn a CI event name and ref into a TriggerEvent.

    Args:
        event_name: GitHub event name (push, pull_request, workflow_dispatch)
        ref: Git ref of the event
        changed_paths: Paths touched by the event
        inputs: Manual invocation inputs ("tag", "prerelease")

    Raises:
        InvalidTriggerError: Unsupported event, or manual invocation without a tag
    """
    changed = tuple(changed_paths)

    if event_name == "push":
        if ref.startswith(TAG_REF_PREFIX):
            return TriggerEvent(EventKind.TAG, ref=ref, tag=ref[len(TAG_REF_PREFIX):])
        return TriggerEvent(EventKind.PUSH, ref=ref, changed_paths=changed)

    if event_name == "pull_request":
        return TriggerEvent(EventKind.PULL_REQUEST, ref=ref, changed_paths=changed)

    if event_name in ("workflow_dispatch", "manual"):
        inputs = inputs or {}
        tag = str(inputs.get("tag") or "").strip()
        if not tag:
            raise InvalidTriggerError("Manual invocation requires a tag name")
        return TriggerEvent(
            EventKind.MANUAL,
            ref=ref,
            tag=tag,
            prerelease=_parse_flag(inputs.get("prerelease")),
        )

    raise InvalidTriggerError(f"Unsupported event '{event_name}'")


def _changed_paths_from_payload(payload: Mapping) -> List[str]:
    paths = []
    for commit in payload.get("commits", []) or []:
        for key in ("added", "modified", "removed"):
            paths.extend(commit.get(key, []) or [])
    return sorted(set(paths))


def event_from_environment(env: Optional[Mapping[str, str]] = None) -> TriggerEvent:
    """
    Build the TriggerEvent of the current GitHub Actions job.

    Reads GITHUB_EVENT_NAME and GITHUB_REF, plus the event payload at
    GITHUB_EVENT_PATH for manual inputs and pushed paths.
    """
    env = os.environ if env is None else env
    event_name = env.get("GITHUB_EVENT_NAME")
    if not event_name:
        raise InvalidTriggerError("GITHUB_EVENT_NAME is not set; not running under CI?")

    payload = {}
    event_path = env.get("GITHUB_EVENT_PATH")
    if event_path and Path(event_path).is_file():
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))

    return classify_event(
        event_name,
        ref=env.get("GITHUB_REF", ""),
        changed_paths=_changed_paths_from_payload(payload),
        inputs=payload.get("inputs"),
    )


def export_plan(stages: Iterable[Stage], env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Publish *stages* to later steps of a GitHub Actions job.

    Appends ``stages=render,publish`` (empty when nothing is planned) to the
    file named by GITHUB_OUTPUT. Outside CI nothing is written.

    Returns:
        The output file written to, or None
    """
    env = os.environ if env is None else env
    output_file = env.get("GITHUB_OUTPUT")
    if not output_file:
        return None
    with open(output_file, "a", encoding="utf-8") as f:
        f.write(f"stages={','.join(Stage(stage).value for stage in stages)}\n")
    return Path(output_file)


def touches_descriptions(changed_paths: Iterable[str], descriptions_dir: str = "data/cv") -> bool:
    prefix = descriptions_dir.strip("/") + "/"
    changed_paths = list(changed_paths)
    if not changed_paths:
        return True
    return any(path.removeprefix("./").startswith(prefix) for path in changed_paths)


def plan_stages(
    event: TriggerEvent,
    default_branch: str = "main",
    descriptions_dir: str = "data/cv",
    tag_pattern: str = VERSION_TAG_PATTERN,
) -> List[Stage]:
    """Stages to run for *event*, in dependency order. Empty means nothing to do."""
    if event.kind in (EventKind.TAG, EventKind.MANUAL):
        if not is_version_tag(event.tag, tag_pattern):
            return []
        return [Stage.RENDER, Stage.PUBLISH, Stage.RELEASE]

    if not touches_descriptions(event.changed_paths, descriptions_dir):
        return []

    if event.kind == EventKind.PUSH and event.branch == default_branch:
        return [Stage.RENDER, Stage.PUBLISH]

    return [Stage.RENDER]
