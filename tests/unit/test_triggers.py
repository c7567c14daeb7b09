"""Unit tests for trigger classification and stage planning."""

import json

import pytest

from cvpress.contexts.orchestration.pipeline import planned_stages, select_stages
from cvpress.contexts.orchestration.triggers import (
    EventKind,
    Stage,
    classify_event,
    event_from_environment,
    export_plan,
    is_prerelease_tag,
    is_version_tag,
    plan_stages,
    touches_descriptions,
)
from cvpress.exceptions import InvalidTriggerError
from cvpress.utils.settings import load_settings

CV_CHANGE = ["data/cv/en.yaml"]


@pytest.mark.unit
def test_pull_request_renders_only():
    """Test that a pull request touching descriptions only renders."""
    event = classify_event("pull_request", "refs/pull/7/merge", CV_CHANGE)

    assert event.kind == EventKind.PULL_REQUEST
    assert plan_stages(event) == [Stage.RENDER]


@pytest.mark.unit
def test_push_to_default_branch_renders_and_publishes():
    """Test that a push to main publishes but never releases."""
    event = classify_event("push", "refs/heads/main", CV_CHANGE)

    assert event.branch == "main"
    assert plan_stages(event) == [Stage.RENDER, Stage.PUBLISH]


@pytest.mark.unit
def test_push_to_feature_branch_renders_only():
    """Test that pushes to other branches do not publish."""
    event = classify_event("push", "refs/heads/feature/new-job", CV_CHANGE)

    assert plan_stages(event) == [Stage.RENDER]


@pytest.mark.unit
def test_push_not_touching_descriptions_does_nothing():
    """Test that unrelated changes plan no stages."""
    event = classify_event("push", "refs/heads/main", ["README.md", "data/cvx/notes.txt"])

    assert plan_stages(event) == []


@pytest.mark.unit
def test_tag_push_runs_everything():
    """Test that a version tag push renders, publishes and releases."""
    event = classify_event("push", "refs/tags/v1.2.0")

    assert event.kind == EventKind.TAG
    assert event.tag == "v1.2.0"
    assert plan_stages(event) == [Stage.RENDER, Stage.PUBLISH, Stage.RELEASE]


@pytest.mark.unit
def test_non_version_tag_does_nothing():
    """Test that tags not matching the version pattern are ignored."""
    event = classify_event("push", "refs/tags/draft")

    assert plan_stages(event) == []


@pytest.mark.unit
def test_manual_invocation_requires_tag():
    """Test that workflow_dispatch without a tag is rejected."""
    with pytest.raises(InvalidTriggerError):
        classify_event("workflow_dispatch", "refs/heads/main", inputs={})


@pytest.mark.unit
def test_manual_invocation_with_tag_and_flag():
    """Test manual inputs, including string booleans from the CI form."""
    event = classify_event(
        "workflow_dispatch", "refs/heads/main", inputs={"tag": " v2.0.0 ", "prerelease": "true"}
    )

    assert event.kind == EventKind.MANUAL
    assert event.tag == "v2.0.0"
    assert event.prerelease is True
    assert plan_stages(event) == [Stage.RENDER, Stage.PUBLISH, Stage.RELEASE]


@pytest.mark.unit
def test_unsupported_event():
    """Test that unknown events are rejected."""
    with pytest.raises(InvalidTriggerError):
        classify_event("schedule")


@pytest.mark.unit
@pytest.mark.parametrize(
    "tag,version,prerelease",
    [
        ("v1.2.0", True, False),
        ("v1.3.0-rc.1", True, True),
        ("v10.0.12-beta", True, True),
        ("1.2.0", False, False),
        ("v1.2", False, False),
        ("", False, False),
    ],
)
def test_tag_classification(tag, version, prerelease):
    """Test version and pre-release tag recognition."""
    assert is_version_tag(tag) is version
    assert is_prerelease_tag(tag) is prerelease


@pytest.mark.unit
def test_touches_descriptions():
    """Test path filtering, with unknown paths treated as relevant."""
    assert touches_descriptions(["./data/cv/pt.yaml"])
    assert touches_descriptions([])
    assert not touches_descriptions(["data/cv.yaml"])
    assert touches_descriptions(["cv/en.yaml"], descriptions_dir="cv/")


@pytest.mark.unit
def test_event_from_environment(tmp_path):
    """Test reading the CI event name, ref and payload."""
    payload = tmp_path / "event.json"
    payload.write_text(
        json.dumps(
            {
                "commits": [
                    {"added": ["data/cv/pt.yaml"], "modified": ["README.md"], "removed": []},
                    {"modified": ["data/cv/pt.yaml"]},
                ]
            }
        )
    )

    event = event_from_environment(
        {
            "GITHUB_EVENT_NAME": "push",
            "GITHUB_REF": "refs/heads/main",
            "GITHUB_EVENT_PATH": str(payload),
        }
    )

    assert event.changed_paths == ("README.md", "data/cv/pt.yaml")
    assert plan_stages(event) == [Stage.RENDER, Stage.PUBLISH]


@pytest.mark.unit
def test_event_from_environment_outside_ci():
    """Test that a missing event name is reported."""
    with pytest.raises(InvalidTriggerError):
        event_from_environment({})


@pytest.mark.unit
def test_planning_ignores_where_descriptions_live_on_disk(tmp_path):
    """Test that change lists match the repository path even when descriptions are read from an absolute path."""
    settings = load_settings(use_env=False, paths__descriptions=str(tmp_path / "cv"))
    push = classify_event("push", "refs/heads/main", CV_CHANGE)
    pull_request = classify_event("pull_request", "refs/pull/7/merge", ["data/cv/pt.yaml"])

    assert planned_stages(push, settings) == [Stage.RENDER, Stage.PUBLISH]
    assert planned_stages(pull_request, settings) == [Stage.RENDER]


@pytest.mark.unit
def test_planning_uses_configured_descriptions_dir():
    """Test that the watched repository path comes from triggers.descriptions_dir."""
    settings = load_settings(use_env=False, triggers__descriptions_dir="cv/src")
    event = classify_event("push", "refs/heads/main", ["cv/src/en.yaml"])

    assert planned_stages(event, settings) == [Stage.RENDER, Stage.PUBLISH]
    assert planned_stages(classify_event("push", "refs/heads/main", CV_CHANGE), settings) == []


@pytest.mark.unit
def test_select_stages_keeps_planned_order():
    """Test that narrowing a plan keeps only requested stages, in plan order."""
    planned = [Stage.RENDER, Stage.PUBLISH, Stage.RELEASE]

    assert select_stages(planned) == planned
    assert select_stages(planned, ["release", Stage.RENDER]) == [Stage.RENDER, Stage.RELEASE]
    assert select_stages([Stage.RENDER], [Stage.RELEASE]) == []


@pytest.mark.unit
def test_export_plan_appends_job_output(tmp_path):
    """Test that the plan is appended to GITHUB_OUTPUT for later workflow jobs."""
    output = tmp_path / "github_output"
    output.write_text("other=1\n")
    env = {"GITHUB_OUTPUT": str(output)}

    assert export_plan([Stage.RENDER, Stage.PUBLISH], env=env) == output
    export_plan([], env=env)

    assert output.read_text() == "other=1\nstages=render,publish\nstages=\n"
    assert export_plan([Stage.RENDER], env={}) is None
