"""Unit tests for the rendering context (renderer replaced by a fake)."""

import pytest

from cvpress.contexts.rendering.metadata import metadata_path_for, read_metadata
from cvpress.contexts.rendering.renderer import (
    artifacts_in,
    build_render_command,
    find_description,
    render_all,
    render_description,
)
from cvpress.exceptions import DescriptionValidationError, MissingArtifactError, RendererError
from cvpress.utils.event_logging import get_recent_events
from cvpress.utils.pdf_processing import page_count


@pytest.mark.unit
def test_build_render_command_suppresses_auxiliary_outputs(tmp_path):
    """Test that HTML, Markdown and PNG are switched off by default."""
    cmd = build_render_command(tmp_path / "en.yaml", tmp_path / "en.pdf")

    assert cmd[:3] == ["rendercv", "render", str(tmp_path / "en.yaml")]
    assert cmd[cmd.index("--pdf-path") + 1] == str(tmp_path / "en.pdf")
    assert "--dont-generate-html" in cmd
    assert "--dont-generate-markdown" in cmd
    assert "--dont-generate-png" in cmd


@pytest.mark.unit
def test_build_render_command_toggles(tmp_path):
    """Test that each output toggle can be turned off individually."""
    cmd = build_render_command(
        tmp_path / "en.yaml",
        tmp_path / "en.pdf",
        executable="/opt/rendercv",
        output_folder=tmp_path / "out",
        suppress_png=False,
    )

    assert cmd[0] == "/opt/rendercv"
    assert "--output-folder-name" in cmd
    assert "--dont-generate-png" not in cmd
    assert "--dont-generate-html" in cmd


@pytest.mark.unit
def test_render_description_produces_single_pdf(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that a render leaves exactly one PDF and its metadata in the output dir."""
    out_dir = tmp_path / "out"

    result = render_description(
        descriptions_dir / "en.yaml", out_dir / "en.pdf", metadata=build_metadata
    )

    assert result.success
    assert result.language == "en"
    assert result.pdf_path == (out_dir / "en.pdf").resolve()
    assert result.page_count == 1
    assert sorted(p.name for p in out_dir.iterdir()) == ["en.build.json", "en.pdf"]
    assert len(fake_renderer.calls) == 1


@pytest.mark.unit
def test_render_description_discards_suppressed_outputs(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that outputs the renderer produces anyway never reach the output dir."""
    out_dir = tmp_path / "out"

    result = render_description(
        descriptions_dir / "en.yaml", out_dir / "en.pdf", metadata=build_metadata
    )

    assert [p.name for p in result.discarded_outputs] == ["en.html"]
    assert not list(out_dir.rglob("*.html"))


@pytest.mark.unit
def test_render_description_writes_build_metadata(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that commit, timestamp and actor are recorded next to the PDF."""
    result = render_description(
        descriptions_dir / "pt.yaml", tmp_path / "pt.pdf", metadata=build_metadata
    )

    assert result.metadata_path == metadata_path_for(result.pdf_path)
    metadata = read_metadata(result.pdf_path)
    assert metadata["language"] == "pt"
    assert metadata["commit"] == build_metadata.commit
    assert metadata["timestamp"] == build_metadata.timestamp
    assert metadata["actor"] == "alex"
    assert metadata["page_count"] == 1


@pytest.mark.unit
def test_invalid_description_never_starts_renderer(tmp_path, fake_renderer, build_metadata):
    """Test that structural problems are reported before rendering."""
    source = tmp_path / "en.yaml"
    source.write_text("cv:\n  email: nobody\ndesign:\n  theme: fancy\n")

    with pytest.raises(DescriptionValidationError) as exc_info:
        render_description(source, tmp_path / "en.pdf", metadata=build_metadata)

    assert len(exc_info.value.issues) == 3
    assert exc_info.value.source == source.resolve()
    assert fake_renderer.calls == []
    assert not (tmp_path / "en.pdf").exists()


@pytest.mark.unit
def test_renderer_failure_leaves_no_artifact(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that a non-zero exit raises RendererError and writes nothing."""
    fake_renderer.returncode = 2
    fake_renderer.stderr = "Typst compilation error"
    out_dir = tmp_path / "out"

    with pytest.raises(RendererError) as exc_info:
        render_description(descriptions_dir / "en.yaml", out_dir / "en.pdf", metadata=build_metadata)

    assert exc_info.value.returncode == 2
    assert "Typst compilation error" in str(exc_info.value)
    assert list(out_dir.iterdir()) == []


@pytest.mark.unit
def test_renderer_success_without_pdf(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that a zero exit without a PDF is a missing artifact, not success."""
    fake_renderer.write_pdf = False

    with pytest.raises(MissingArtifactError) as exc_info:
        render_description(descriptions_dir / "en.yaml", tmp_path / "en.pdf", metadata=build_metadata)

    assert "file was not produced" in str(exc_info.value)


@pytest.mark.unit
def test_renderer_success_with_unreadable_pdf(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that a corrupt PDF is rejected and never moved into place."""
    fake_renderer.garbage_pdf = True

    with pytest.raises(MissingArtifactError) as exc_info:
        render_description(descriptions_dir / "en.yaml", tmp_path / "en.pdf", metadata=build_metadata)

    assert "not a readable PDF" in str(exc_info.value)
    assert not (tmp_path / "en.pdf").exists()


@pytest.mark.unit
def test_missing_executable(descriptions_dir, tmp_path, build_metadata):
    """Test that a missing renderer executable is reported clearly."""
    with pytest.raises(RendererError) as exc_info:
        render_description(
            descriptions_dir / "en.yaml",
            tmp_path / "en.pdf",
            executable="definitely-not-rendercv-xyz",
            metadata=build_metadata,
        )

    assert "not found" in str(exc_info.value)


@pytest.mark.unit
def test_failed_render_keeps_previous_artifact(descriptions_dir, tmp_path, fake_renderer, build_metadata, pdf_factory):
    """Test that an existing PDF survives a failed re-render untouched."""
    previous = pdf_factory(tmp_path / "en.pdf", pages=3)
    fake_renderer.returncode = 1

    with pytest.raises(RendererError):
        render_description(descriptions_dir / "en.yaml", previous, metadata=build_metadata)

    assert page_count(previous) == 3


@pytest.mark.unit
def test_render_all_renders_every_language(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that render_all produces <lang>.pdf per language with shared metadata."""
    results = render_all(descriptions_dir, tmp_path / "out", ["en", "pt"], metadata=build_metadata)

    assert list(results) == ["en", "pt"]
    assert all(result.success for result in results.values())
    assert read_metadata(results["en"].pdf_path)["commit"] == read_metadata(results["pt"].pdf_path)["commit"]


@pytest.mark.unit
def test_render_all_stops_at_first_failure(descriptions_dir, tmp_path, fake_renderer, build_metadata):
    """Test that a failing language stops the batch and is logged under the run."""
    fake_renderer.fail_for = {"en"}
    run_id = "test_render_all_stops"

    with pytest.raises(RendererError):
        render_all(
            descriptions_dir, tmp_path / "out", ["en", "pt"], run_id=run_id, metadata=build_metadata
        )

    assert len(fake_renderer.calls) == 1
    events = get_recent_events(10, run_id=run_id)
    assert [e["event_type"] for e in events] == ["render_failed"]
    assert events[0]["language"] == "en"


@pytest.mark.unit
def test_find_description_missing_language(descriptions_dir):
    """Test that an unconfigured language fails with a clear message."""
    with pytest.raises(DescriptionValidationError) as exc_info:
        find_description(descriptions_dir, "fr")

    assert "no description for language 'fr'" in exc_info.value.issues[0]


@pytest.mark.unit
def test_unknown_color_role_still_renders(tmp_path, fake_renderer, build_metadata):
    """Test that a warning-only description goes to the renderer."""
    source = tmp_path / "en.yaml"
    source.write_text(
        "cv:\n  name: Alex Moreira\n"
        "design:\n  theme: classic\n  colors:\n    footer: gray\n    background: white\n"
    )

    result = render_description(source, tmp_path / "out" / "en.pdf", metadata=build_metadata)

    assert result.success
    assert len(fake_renderer.calls) == 1


@pytest.mark.unit
def test_artifacts_in_lists_expected_pdfs(tmp_path):
    """Test that earlier renders are located as <dir>/<lang>.pdf in language order."""
    artifacts = artifacts_in(tmp_path, ["pt", "en"])

    assert list(artifacts) == ["pt", "en"]
    assert artifacts["en"] == tmp_path / "en.pdf"
