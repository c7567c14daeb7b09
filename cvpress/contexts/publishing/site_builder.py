"""
Static site generation.

Layout of a built site:

    index.html      language selection page with redirect script
    <lang>.pdf      one per published language
    .nojekyll       served as-is by GitHub Pages
"""

import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from cvpress.contexts.publishing.logger import _log_debug, _log_info
from cvpress.contexts.rendering.metadata import BuildMetadata
from cvpress.exceptions import ConfigurationError, MissingArtifactError
from cvpress.utils.pdf_processing import is_readable_pdf

TEMPLATES_PATH = Path(__file__).parent / "templates"
INDEX_TEMPLATE = "index.html.jinja"
INDEX_FILENAME = "index.html"

LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(?:-[a-z0-9]{2,8})?$")


@dataclass(frozen=True)
class SiteEntry:
    code: str
    label: str

    @property
    def filename(self) -> str:
        return pdf_filename(self.code)


@dataclass
class SiteBuild:
    """
    Attributes:
        site_dir: Root of the built site
        entries: Published languages, in page order
        files: Site-relative paths of every file written
        auto_detect_language: Whether the landing page honours browser preferences
    """

    site_dir: Path
    entries: List[SiteEntry] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    auto_detect_language: bool = False

    @property
    def languages(self) -> List[str]:
        return [entry.code for entry in self.entries]


def pdf_filename(code: str) -> str:
    """Fixed language -> filename mapping."""
    return f"{code}.pdf"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_PATH)),
        autoescape=select_autoescape(["html", "jinja"]),
        keep_trailing_newline=True,
    )


def render_index(
    entries: List[SiteEntry],
    title: str,
    default_language: str,
    auto_detect_language: bool = False,
    metadata: Optional[BuildMetadata] = None,
) -> str:
    """Render the landing page HTML."""
    template = _environment().get_template(INDEX_TEMPLATE)
    return template.render(
        title=title,
        entries=entries,
        codes=[entry.code for entry in entries],
        default_language=default_language,
        auto_detect_language=auto_detect_language,
        metadata=metadata,
    )


def build_site(
    artifacts: Mapping[str, Path],
    site_dir: Path,
    labels: Optional[Mapping[str, str]] = None,
    title: str = "Curriculum Vitae",
    default_language: Optional[str] = None,
    auto_detect_language: bool = False,
    metadata: Optional[BuildMetadata] = None,
) -> SiteBuild:
    """
    Build the static site from rendered artifacts.

    Any previous content of *site_dir* is replaced.

    Args:
        artifacts: Language code -> rendered PDF path
        site_dir: Output directory
        labels: Language code -> link text (default: the code itself)
        title: Page title
        default_language: html lang attribute (default: first language)
        auto_detect_language: Opt in to browser-preference redirects
        metadata: Build metadata shown in the page footer

    Raises:
        ConfigurationError: No artifacts, or a language code unfit for a filename
        MissingArtifactError: An artifact is absent or not a readable PDF
    """
    if not artifacts:
        raise ConfigurationError("Cannot build a site without artifacts")

    labels = labels or {}
    entries = []
    for code, pdf_path in artifacts.items():
        if not LANGUAGE_CODE_PATTERN.match(code):
            raise ConfigurationError(f"Language code '{code}' cannot be used as a file name")
        pdf_path = Path(pdf_path)
        if not pdf_path.is_file():
            raise MissingArtifactError(pdf_path)
        if not is_readable_pdf(pdf_path):
            raise MissingArtifactError(pdf_path, "not a readable PDF")
        entries.append(SiteEntry(code=code, label=labels.get(code, code)))

    site_dir = Path(site_dir)
    if site_dir.exists():
        shutil.rmtree(site_dir)
    site_dir.mkdir(parents=True)

    build = SiteBuild(site_dir=site_dir, entries=entries, auto_detect_language=auto_detect_language)

    for entry in entries:
        shutil.copyfile(artifacts[entry.code], site_dir / entry.filename)
        build.files.append(entry.filename)
        _log_debug(f"  {artifacts[entry.code]} -> {entry.filename}")

    index_html = render_index(
        entries,
        title=title,
        default_language=default_language or entries[0].code,
        auto_detect_language=auto_detect_language,
        metadata=metadata,
    )
    (site_dir / INDEX_FILENAME).write_text(index_html, encoding="utf-8")
    build.files.append(INDEX_FILENAME)

    (site_dir / ".nojekyll").touch()
    build.files.append(".nojekyll")

    _log_info(
        f"Built site in {site_dir}: {', '.join(build.languages)}"
        f" (auto-detect {'on' if auto_detect_language else 'off'})"
    )
    return build


def labels_for(languages: Mapping[str, str]) -> Dict[str, str]:
    """Copy a settings language mapping into a plain dict of labels."""
    return {str(code): str(label) for code, label in languages.items()}
