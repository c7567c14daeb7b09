"""
Releasing Context

Responsibilities:
- Generates release notes linking the published site, assets and build metadata
- Creates exactly one release record per tag and attaches the PDFs

Owns: Release records, release notes, release backends
Never: Overwrites an existing release
"""

from cvpress.contexts.releasing.notes import generate_release_notes
from cvpress.contexts.releasing.releaser import create_release, store_from_settings
from cvpress.contexts.releasing.stores import (
    GitHubReleaseStore,
    LocalReleaseStore,
    ReleaseRecord,
    ReleaseStore,
)

__all__ = [
    "generate_release_notes",
    "create_release",
    "store_from_settings",
    "ReleaseRecord",
    "ReleaseStore",
    "LocalReleaseStore",
    "GitHubReleaseStore",
]
