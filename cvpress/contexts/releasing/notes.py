"""Release notes generation."""

from pathlib import Path
from typing import Iterable, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from cvpress.contexts.publishing.site_builder import SiteEntry
from cvpress.contexts.rendering.metadata import BuildMetadata

TEMPLATES_PATH = Path(__file__).parent / "templates"
NOTES_TEMPLATE = "notes.md.jinja"


def generate_release_notes(
    tag: str,
    languages: Iterable[str],
    metadata: BuildMetadata,
    site_url: Optional[str] = None,
    labels: Optional[Mapping[str, str]] = None,
    prerelease: bool = False,
    title: str = "Curriculum Vitae",
) -> str:
    """
    Render Markdown release notes.

    The notes list per-language links into the published site (only when
    *site_url* is given, and quoting it verbatim), the attached assets and the
    build metadata.
    """
    labels = labels or {}
    entries = [SiteEntry(code=code, label=labels.get(code, code)) for code in languages]

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_PATH)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    return env.get_template(NOTES_TEMPLATE).render(
        tag=tag,
        title=title,
        prerelease=prerelease,
        entries=entries,
        metadata=metadata,
        site_url=site_url,
        site_root=site_url.rstrip("/") if site_url else "",
    )
