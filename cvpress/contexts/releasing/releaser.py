"""
Release stage: one release record per tag, with notes and PDF assets.
"""

from pathlib import Path
from typing import Mapping, Optional

from omegaconf import DictConfig

from cvpress.contexts.releasing.logger import _log_error, _log_info, _log_success
from cvpress.contexts.releasing.notes import generate_release_notes
from cvpress.contexts.releasing.stores import (
    GitHubReleaseStore,
    LocalReleaseStore,
    ReleaseRecord,
    ReleaseStore,
)
from cvpress.contexts.rendering.metadata import BuildMetadata
from cvpress.exceptions import DuplicateReleaseError, MissingArtifactError
from cvpress.utils.event_logging import log_pipeline_event
from cvpress.utils.pdf_processing import is_readable_pdf
from cvpress.utils.settings import project_path


def store_from_settings(settings: DictConfig) -> ReleaseStore:
    release = settings.release
    if release.backend == "github":
        return GitHubReleaseStore(
            repository=release.repository,
            api_url=release.api_url,
            uploads_url=release.uploads_url,
        )
    return LocalReleaseStore(project_path(release.store_path))


def create_release(
    store: ReleaseStore,
    tag: str,
    artifacts: Mapping[str, Path],
    metadata: BuildMetadata,
    prerelease: bool = False,
    site_url: Optional[str] = None,
    labels: Optional[Mapping[str, str]] = None,
    title: str = "Curriculum Vitae",
    run_id: Optional[str] = None,
) -> ReleaseRecord:
    """
    Create the release for *tag* and attach every artifact as <lang>.pdf.

    An existing release for the tag is never touched: the call fails before
    anything is written.

    Args:
        store: Release backend
        tag: Tag name
        artifacts: Language code -> rendered PDF
        metadata: Build metadata for the notes
        prerelease: Mark the release as a pre-release
        site_url: Published site URL to link from the notes
        labels: Language code -> display label
        title: Heading used in the notes
        run_id: Pipeline run to record release events under

    Raises:
        DuplicateReleaseError: A release for *tag* already exists (not retriable)
        MissingArtifactError: An artifact is absent or not a readable PDF
        ReleaseStoreError: The backend rejected a request
    """
    if store.get_release(tag) is not None:
        _log_error(f"Release {tag} already exists in the {store.name} store; refusing to overwrite")
        raise DuplicateReleaseError(tag)

    for pdf_path in artifacts.values():
        if not is_readable_pdf(Path(pdf_path)):
            raise MissingArtifactError(Path(pdf_path), "cannot attach to release")

    body = generate_release_notes(
        tag,
        languages=list(artifacts),
        metadata=metadata,
        site_url=site_url,
        labels=labels,
        prerelease=prerelease,
        title=title,
    )

    _log_info(f"Creating {'pre-release' if prerelease else 'release'} {tag} ({store.name})")
    record = store.create_release(tag, name=f"{title} {tag}", body=body, prerelease=prerelease)

    for code, pdf_path in artifacts.items():
        store.upload_asset(record, f"{code}.pdf", Path(pdf_path))

    _log_success(f"Release {tag} created with {len(record.assets)} asset(s): {record.url}")
    if run_id:
        log_pipeline_event(
            "release_created",
            run_id,
            source="releasing",
            tag=tag,
            prerelease=prerelease,
            assets=record.assets,
            url=record.url,
        )
    return record
