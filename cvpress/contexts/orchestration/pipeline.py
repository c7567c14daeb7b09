"""
Pipeline runs.

A run moves through two working states and ends in one terminal state:

    pending -> rendering-and-publishing -> releasing -> succeeded
                         |                     |
                         +------> failed <-----+

The first failing stage ends the run. Completed stages are not rolled back,
and Release never starts after a failed Render or Publish. Stages share no
state: renders hand PDF paths to Publish and Release, Publish hands its base
URL to Release.

Every transition is appended to the pipeline event log, so the state of any
run can be read back with get_run_state().
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from omegaconf import DictConfig

from cvpress.contexts.orchestration.logger import (
    _log_error,
    _log_info,
    _log_success,
    log_transition,
)
from cvpress.contexts.orchestration.triggers import (
    EventKind,
    Stage,
    TriggerEvent,
    is_prerelease_tag,
    is_version_tag,
    plan_stages,
)
from cvpress.contexts.publishing.deployer import DeploymentTarget, PublishResult
from cvpress.contexts.publishing.publisher import publish_artifacts
from cvpress.contexts.publishing.site_builder import labels_for
from cvpress.contexts.releasing.releaser import create_release, store_from_settings
from cvpress.contexts.releasing.stores import ReleaseRecord, ReleaseStore
from cvpress.contexts.rendering.metadata import (
    BuildMetadata,
    collect_build_metadata,
    read_shared_metadata,
)
from cvpress.contexts.rendering.renderer import RenderResult, artifacts_in, render_all
from cvpress.exceptions import InvalidTriggerError, PipelineError
from cvpress.utils.event_logging import log_pipeline_event, log_state_change
from cvpress.utils.settings import languages as configured_languages
from cvpress.utils.settings import project_path
from cvpress.utils.timestamp import now

SOURCE = "pipeline"


class RunState(str, Enum):
    PENDING = "pending"
    RENDERING_AND_PUBLISHING = "rendering-and-publishing"
    RELEASING = "releasing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = {RunState.SUCCEEDED, RunState.FAILED}


@dataclass
class PipelineRun:
    """
    One execution of the pipeline.

    Attributes:
        run_id: Unique run identifier (timestamp + tag or event kind)
        stages: Stages this run executes, in order
        tag: Release tag (None for runs without a Release stage)
        prerelease: Pre-release flag passed to Release
        state: Current state
        renders: Language code -> RenderResult
        publish: Publish stage output
        release: Release stage output
        error: Message of the error that failed the run
        failed_state: State the run was in when it failed
    """

    run_id: str
    stages: List[Stage]
    tag: Optional[str] = None
    prerelease: bool = False
    state: RunState = RunState.PENDING
    renders: Dict[str, RenderResult] = field(default_factory=dict)
    publish: Optional[PublishResult] = None
    release: Optional[ReleaseRecord] = None
    error: Optional[str] = None
    failed_state: Optional[RunState] = None

    @property
    def artifacts(self) -> Dict[str, Path]:
        return {code: result.pdf_path for code, result in self.renders.items()}

    @property
    def published_url(self) -> Optional[str]:
        return self.publish.base_url if self.publish else None

    def transition(self, new_state: RunState, **extra_fields) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Run {self.run_id} already ended in '{self.state.value}'")
        old_state = self.state
        self.state = new_state
        log_transition(self.run_id, old_state.value, new_state.value)
        log_state_change(
            self.run_id, old_state.value, new_state.value, source=SOURCE, **extra_fields
        )


def new_run_id(label: str) -> str:
    """e.g. 20251114_123456_v1.2.0_3f9a1c"""
    return f"{now()}_{label}_{uuid4().hex[:6]}"


def planned_stages(event: TriggerEvent, settings: DictConfig) -> List[Stage]:
    """Stages *event* calls for under *settings* (see triggers.plan_stages)."""
    return plan_stages(
        event,
        default_branch=settings.triggers.default_branch,
        descriptions_dir=str(settings.triggers.descriptions_dir),
        tag_pattern=settings.triggers.tag_pattern,
    )


def select_stages(stages: Iterable[Stage], only: Optional[Iterable[Stage]] = None) -> List[Stage]:
    """Keep the planned stages listed in *only*, in planned order. None keeps all."""
    if only is None:
        return list(stages)
    wanted = {Stage(stage) for stage in only}
    return [stage for stage in stages if stage in wanted]


def _render_kwargs(settings: DictConfig) -> dict:
    render = settings.render
    return {
        "executable": render.executable,
        "suppress_html": bool(render.suppress_html),
        "suppress_markdown": bool(render.suppress_markdown),
        "suppress_png": bool(render.suppress_png),
        "timeout_s": render.timeout_s,
    }


def _fail(run: PipelineRun, error: BaseException) -> None:
    run.error = str(error) or type(error).__name__
    run.failed_state = run.state
    _log_error(f"{run.run_id}: failed during '{run.state.value}': {run.error}")
    run.transition(
        RunState.FAILED,
        error=run.error,
        error_type=type(error).__name__,
        retriable=getattr(error, "retriable", False),
    )


def run_stages(
    stages: List[Stage],
    settings: DictConfig,
    tag: Optional[str] = None,
    prerelease: bool = False,
    store: Optional[ReleaseStore] = None,
    target: Optional[DeploymentTarget] = None,
    metadata: Optional[BuildMetadata] = None,
    run_id: Optional[str] = None,
    site_url: Optional[str] = None,
) -> PipelineRun:
    """
    Execute *stages* in order as one run.

    Render and Publish run in the rendering-and-publishing state, Release in
    the releasing state. A run without Render works on the PDFs an earlier
    render left in paths.render_output, so CI can split the stages across
    jobs.

    Args:
        stages: Stages to run, in render, publish, release order
        settings: Pipeline settings
        tag: Release tag (required when Release is planned)
        prerelease: Pre-release flag for Release
        store: Release backend (default: from settings, closed after use)
        target: Deployment target (default: from settings)
        metadata: Build metadata shared by every artifact of the run
        run_id: Run identifier (default: generated)
        site_url: Published site URL for the notes when Publish is not part
                  of this run

    Returns:
        The succeeded PipelineRun

    Raises:
        InvalidTriggerError: Release planned without a tag
        PipelineError: A stage failed; the run ended in 'failed'
    """
    if Stage.RELEASE in stages and not tag:
        raise InvalidTriggerError("The release stage needs a tag")

    run = PipelineRun(
        run_id=run_id or new_run_id(tag or "build"),
        stages=list(stages),
        tag=tag,
        prerelease=prerelease,
    )
    log_pipeline_event(
        "run_started",
        run.run_id,
        source=SOURCE,
        state=run.state.value,
        stages=[stage.value for stage in stages],
        tag=tag,
        prerelease=prerelease,
    )
    _log_info(f"{run.run_id}: stages {', '.join(s.value for s in stages) or '(none)'}")

    languages = configured_languages(settings)
    previous_renders = artifacts_in(project_path(settings.paths.render_output), languages)
    if metadata is None and Stage.RENDER not in stages:
        metadata = read_shared_metadata(previous_renders)
    metadata = metadata or collect_build_metadata()

    try:
        if Stage.RENDER in stages or Stage.PUBLISH in stages:
            run.transition(RunState.RENDERING_AND_PUBLISHING)

        if Stage.RENDER in stages:
            run.renders = render_all(
                project_path(settings.paths.descriptions),
                project_path(settings.paths.render_output),
                languages,
                run_id=run.run_id,
                metadata=metadata,
                **_render_kwargs(settings),
            )
        artifacts = run.artifacts or previous_renders

        if Stage.PUBLISH in stages:
            run.publish = publish_artifacts(
                artifacts,
                settings,
                target=target,
                metadata=metadata,
                run_id=run.run_id,
            )

        if Stage.RELEASE in stages:
            notes_url = run.published_url or site_url
            run.transition(RunState.RELEASING, published_url=notes_url)
            release_store = store or store_from_settings(settings)
            try:
                run.release = create_release(
                    release_store,
                    tag,
                    artifacts,
                    metadata,
                    prerelease=prerelease,
                    site_url=notes_url,
                    labels=labels_for(settings.languages),
                    title=settings.project.title,
                    run_id=run.run_id,
                )
            finally:
                if store is None:
                    release_store.close()
    except KeyboardInterrupt as e:
        _fail(run, e)
        raise
    except Exception as e:
        _fail(run, e)
        raise PipelineError(run.failed_state.value, run.run_id, e) from e

    run.transition(RunState.SUCCEEDED, published_url=run.published_url or site_url)
    _log_success(f"{run.run_id}: succeeded")
    return run


def run_pipeline(
    tag: str,
    settings: DictConfig,
    prerelease: Optional[bool] = None,
    store: Optional[ReleaseStore] = None,
    target: Optional[DeploymentTarget] = None,
    metadata: Optional[BuildMetadata] = None,
    only: Optional[Iterable[Stage]] = None,
    site_url: Optional[str] = None,
) -> PipelineRun:
    """
    Tag-triggered run: render, publish, then release with the published URL.

    Args:
        tag: Version tag (v<major>.<minor>.<patch>[-<pre>])
        settings: Pipeline settings
        prerelease: Pre-release flag (default: tag has a pre-release suffix)
        only: Run just these of the three stages
        store / target / metadata / site_url: See run_stages

    Raises:
        InvalidTriggerError: *tag* is not a version tag
        PipelineError: A stage failed
    """
    if not is_version_tag(tag, settings.triggers.tag_pattern):
        raise InvalidTriggerError(f"'{tag}' is not a version tag; refusing to release")

    if prerelease is None:
        prerelease = is_prerelease_tag(tag)

    return run_stages(
        select_stages([Stage.RENDER, Stage.PUBLISH, Stage.RELEASE], only),
        settings,
        tag=tag,
        prerelease=prerelease,
        store=store,
        target=target,
        metadata=metadata,
        site_url=site_url,
    )


def run_for_event(
    event: TriggerEvent,
    settings: DictConfig,
    store: Optional[ReleaseStore] = None,
    target: Optional[DeploymentTarget] = None,
    metadata: Optional[BuildMetadata] = None,
    only: Optional[Iterable[Stage]] = None,
    site_url: Optional[str] = None,
) -> Optional[PipelineRun]:
    """
    Run whatever *event* plans, optionally narrowed to the stages in *only*.

    Returns:
        The run, or None when no stage is left to run

    Raises:
        InvalidTriggerError: A tag or manual event without a version tag
        PipelineError: A stage failed
    """
    stages = select_stages(planned_stages(event, settings), only)

    if event.kind in (EventKind.TAG, EventKind.MANUAL):
        if not is_version_tag(event.tag, settings.triggers.tag_pattern):
            raise InvalidTriggerError(f"'{event.tag}' is not a version tag; refusing to release")
        if not stages:
            return None
        return run_pipeline(
            event.tag,
            settings,
            prerelease=event.prerelease,
            store=store,
            target=target,
            metadata=metadata,
            only=stages,
            site_url=site_url,
        )

    if not stages:
        _log_info(f"Nothing to do for {event.kind.value} on {event.ref or '(no ref)'}")
        return None

    return run_stages(
        stages,
        settings,
        store=store,
        target=target,
        metadata=metadata,
        run_id=new_run_id(event.kind.value),
    )
