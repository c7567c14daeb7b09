"""
Orchestration Context

Responsibilities:
- Classifies triggering events (push, pull request, version tag, manual)
- Plans which stages an event runs
- Runs render -> publish -> release as a two-state run, passing the
  published URL into the release

Owns: Run state, stage ordering, run history in the pipeline event log
Never: Rolls back a stage that already completed
"""

from cvpress.contexts.orchestration.pipeline import (
    PipelineRun,
    RunState,
    planned_stages,
    run_for_event,
    run_pipeline,
    run_stages,
    select_stages,
)
from cvpress.contexts.orchestration.triggers import (
    EventKind,
    Stage,
    TriggerEvent,
    classify_event,
    event_from_environment,
    export_plan,
    is_prerelease_tag,
    is_version_tag,
    plan_stages,
)

__all__ = [
    # Runs
    "PipelineRun",
    "RunState",
    "run_pipeline",
    "run_stages",
    "run_for_event",
    "planned_stages",
    "select_stages",
    # Triggers
    "EventKind",
    "Stage",
    "TriggerEvent",
    "classify_event",
    "event_from_environment",
    "export_plan",
    "is_version_tag",
    "is_prerelease_tag",
    "plan_stages",
]
