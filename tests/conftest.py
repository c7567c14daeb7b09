"""Shared fixtures: isolated log locations, a fake renderer and sample descriptions."""

import os
import subprocess
import tempfile
from pathlib import Path

# Event log and settings locations are read at import time
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="cvpress-tests-"))
os.environ["LOGS_PATH"] = str(_SESSION_DIR / "logs")
os.environ["PIPELINE_EVENTS_FILE"] = str(_SESSION_DIR / "logs" / "pipeline_events.log")
os.environ["CVPRESS_SETTINGS"] = str(_SESSION_DIR / "no-settings.yaml")

import pytest
from PyPDF2 import PdfWriter

from cvpress.contexts.rendering import renderer as renderer_module
from cvpress.contexts.rendering.metadata import BuildMetadata
from cvpress.utils.settings import ENV_OVERRIDES, load_settings

FIXTURES_PATH = Path(__file__).parent / "fixtures"

_real_run = subprocess.run


def make_pdf(path: Path, pages: int = 1) -> Path:
    """Write a real (blank) PDF with the given number of pages."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    with open(path, "wb") as f:
        writer.write(f)
    return path


class FakeRenderer:
    """
    Stands in for the rendercv executable.

    Writes a one-page PDF to --pdf-path plus an HTML file in the output
    folder (which the pipeline must discard). Behaviour can be switched per
    test with the attributes below.
    """

    def __init__(self):
        self.calls = []
        self.returncode = 0
        self.stderr = ""
        self.write_pdf = True
        self.garbage_pdf = False
        self.fail_for = set()

    def __call__(self, cmd, *args, **kwargs):
        if len(cmd) < 2 or cmd[1] != "render":
            return _real_run(cmd, *args, **kwargs)

        self.calls.append(list(cmd))
        source = Path(cmd[2])
        pdf_path = Path(cmd[cmd.index("--pdf-path") + 1])

        if self.returncode != 0 or source.stem in self.fail_for:
            return subprocess.CompletedProcess(
                cmd, self.returncode or 1, stdout="", stderr=self.stderr or "render failed"
            )

        if "--output-folder-name" in cmd:
            output_folder = Path(cmd[cmd.index("--output-folder-name") + 1])
            output_folder.mkdir(parents=True, exist_ok=True)
            (output_folder / f"{source.stem}.html").write_text("<html></html>")

        if self.write_pdf:
            if self.garbage_pdf:
                pdf_path.write_bytes(b"not a pdf")
            else:
                make_pdf(pdf_path)

        return subprocess.CompletedProcess(cmd, 0, stdout=f"Rendered {source.name}\n", stderr="")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep CI and developer environment variables out of the tests."""
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
    for var in ("GITHUB_EVENT_NAME", "GITHUB_EVENT_PATH", "GITHUB_REF", "GITHUB_SHA"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_renderer(monkeypatch):
    fake = FakeRenderer()
    monkeypatch.setattr(renderer_module.subprocess, "run", fake)
    return fake


@pytest.fixture
def build_metadata():
    return BuildMetadata(
        commit="0123456789abcdef0123456789abcdef01234567",
        timestamp="2025-11-14T12:00:00+00:00",
        actor="alex",
        ref="refs/tags/v1.2.0",
    )


@pytest.fixture
def descriptions_dir(tmp_path):
    """en.yaml and pt.yaml copied into a scratch directory."""
    target = tmp_path / "cv"
    target.mkdir()
    for name in ("en.yaml", "pt.yaml"):
        (target / name).write_text((FIXTURES_PATH / name).read_text(encoding="utf-8"), encoding="utf-8")
    return target


@pytest.fixture
def events_file(tmp_path):
    return tmp_path / "pipeline_events.log"


@pytest.fixture
def settings(tmp_path, descriptions_dir):
    """Settings with every path inside tmp_path and the local release store."""
    return load_settings(
        use_env=False,
        paths__descriptions=str(descriptions_dir),
        paths__render_output=str(tmp_path / "render"),
        paths__site=str(tmp_path / "site"),
        publish__target__root=str(tmp_path / "deploy" / "pages"),
        publish__target__base_url="https://alex.github.io/cv/",
        publish__lock_timeout_s=5,
        release__store_path=str(tmp_path / "releases"),
    )


@pytest.fixture
def artifacts(tmp_path):
    """Rendered-looking PDFs for en and pt."""
    render_dir = tmp_path / "artifacts"
    return {
        "en": make_pdf(render_dir / "en.pdf"),
        "pt": make_pdf(render_dir / "pt.pdf", pages=2),
    }


@pytest.fixture
def pdf_factory():
    return make_pdf
