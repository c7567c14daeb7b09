"""
Release stores: where release records and their assets live.

- LocalReleaseStore keeps each release as a directory (release.json + assets),
  for offline runs and tests.
- GitHubReleaseStore talks to the GitHub REST API.

Both refuse to create a second release for an existing tag.
"""

import json
import os
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

import httpx

from cvpress.contexts.releasing.logger import _log_debug
from cvpress.exceptions import DuplicateReleaseError, ReleaseStoreError
from cvpress.utils.timestamp import utc_now_iso

SAFE_TAG_PATTERN = re.compile(r"^[0-9A-Za-z][0-9A-Za-z._-]*$")
RECORD_FILENAME = "release.json"

GITHUB_API_VERSION = "2022-11-28"


@dataclass
class ReleaseRecord:
    """
    Attributes:
        tag: Tag name, unique within a store
        name: Display name
        prerelease: Whether the release is marked as a pre-release
        body: Generated release notes (Markdown)
        assets: Names of attached assets
        url: Where the release can be viewed
        release_id: Backend identifier
        created_at: UTC ISO 8601 creation time
    """

    tag: str
    name: str
    prerelease: bool
    body: str
    assets: List[str] = field(default_factory=list)
    url: str = ""
    release_id: Optional[str] = None
    created_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


class ReleaseStore(ABC):
    """Backend holding release records."""

    name = "abstract"

    @abstractmethod
    def get_release(self, tag: str) -> Optional[ReleaseRecord]:
        """Return the release for *tag*, or None if there is none."""

    @abstractmethod
    def create_release(
        self, tag: str, name: str, body: str, prerelease: bool
    ) -> ReleaseRecord:
        """Create a release. Raises DuplicateReleaseError if *tag* already has one."""

    @abstractmethod
    def upload_asset(self, record: ReleaseRecord, asset_name: str, path: Path) -> None:
        """Attach the file at *path* to *record* as *asset_name*."""

    def close(self) -> None:
        """Release connections held by the backend."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class LocalReleaseStore(ReleaseStore):
    """
    Releases as directories under *root*:

        <root>/<tag>/release.json
        <root>/<tag>/<asset>
    """

    name = "local"

    def __init__(self, root: Path):
        self.root = Path(root)

    def _release_dir(self, tag: str) -> Path:
        if not SAFE_TAG_PATTERN.match(tag):
            raise ReleaseStoreError(f"Tag '{tag}' cannot be stored locally")
        return self.root / tag

    def _write_record(self, record: ReleaseRecord) -> None:
        path = self._release_dir(record.tag) / RECORD_FILENAME
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(record.to_dict(), indent=2) + "\n", encoding="utf-8")
        os.replace(tmp_path, path)

    def get_release(self, tag: str) -> Optional[ReleaseRecord]:
        path = self._release_dir(tag) / RECORD_FILENAME
        if not path.exists():
            return None
        return ReleaseRecord(**json.loads(path.read_text(encoding="utf-8")))

    def create_release(self, tag: str, name: str, body: str, prerelease: bool) -> ReleaseRecord:
        release_dir = self._release_dir(tag)
        self.root.mkdir(parents=True, exist_ok=True)
        try:
            # mkdir is the atomic claim on the tag
            release_dir.mkdir()
        except FileExistsError as e:
            raise DuplicateReleaseError(tag) from e

        record = ReleaseRecord(
            tag=tag,
            name=name,
            prerelease=prerelease,
            body=body,
            url=release_dir.resolve().as_uri(),
            release_id=tag,
            created_at=utc_now_iso(),
        )
        self._write_record(record)
        return record

    def upload_asset(self, record: ReleaseRecord, asset_name: str, path: Path) -> None:
        destination = self._release_dir(record.tag) / asset_name
        if destination.exists():
            raise ReleaseStoreError(f"Asset '{asset_name}' already attached to {record.tag}")
        shutil.copyfile(path, destination)
        record.assets.append(asset_name)
        self._write_record(record)
        _log_debug(f"  Attached {asset_name} to {record.tag}")

    def list_releases(self) -> List[ReleaseRecord]:
        if not self.root.exists():
            return []
        records = [self.get_release(p.name) for p in sorted(self.root.iterdir()) if p.is_dir()]
        return [r for r in records if r is not None]


class GitHubReleaseStore(ReleaseStore):
    """
    GitHub Releases via the REST API.

    Args:
        repository: "owner/name"
        token: Token with contents:write permission (default: GITHUB_TOKEN)
        api_url: REST API base URL
        uploads_url: Asset upload base URL
        client: Pre-configured httpx.Client (tests pass one with a MockTransport).
                A client passed in stays open after close(); the caller owns it.
    """

    name = "github"

    def __init__(
        self,
        repository: str,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com",
        uploads_url: str = "https://uploads.github.com",
        client: Optional[httpx.Client] = None,
        timeout_s: float = 30.0,
    ):
        if not repository or "/" not in repository:
            raise ReleaseStoreError(f"Repository must be 'owner/name', got '{repository}'")
        token = token or os.getenv("GITHUB_TOKEN")
        if not token and client is None:
            raise ReleaseStoreError("GITHUB_TOKEN is required for the github release backend")

        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.uploads_url = uploads_url.rstrip("/")
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout_s)
        self.client.headers.update(headers)

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.repository}{path}"

    @staticmethod
    def _record_from_payload(payload: dict) -> ReleaseRecord:
        return ReleaseRecord(
            tag=payload["tag_name"],
            name=payload.get("name") or payload["tag_name"],
            prerelease=bool(payload.get("prerelease")),
            body=payload.get("body") or "",
            assets=[asset["name"] for asset in payload.get("assets", [])],
            url=payload.get("html_url", ""),
            release_id=str(payload["id"]),
            created_at=payload.get("created_at", ""),
        )

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ReleaseStoreError(f"GitHub request failed: {method} {url}: {e}", 503) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        try:
            detail = response.json().get("message", response.text)
        except ValueError:
            detail = response.text
        raise ReleaseStoreError(
            f"GitHub rejected {action} ({response.status_code}): {detail}", response.status_code
        )

    def get_release(self, tag: str) -> Optional[ReleaseRecord]:
        response = self._request("GET", self._url(f"/releases/tags/{tag}"))
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"lookup of release {tag}")
        return self._record_from_payload(response.json())

    def create_release(self, tag: str, name: str, body: str, prerelease: bool) -> ReleaseRecord:
        response = self._request(
            "POST",
            self._url("/releases"),
            json={
                "tag_name": tag,
                "name": name,
                "body": body,
                "prerelease": prerelease,
                "draft": False,
            },
        )
        if response.status_code == 422:
            errors = response.json().get("errors", [])
            if any(err.get("code") == "already_exists" for err in errors):
                raise DuplicateReleaseError(tag)
        self._raise_for_status(response, f"creation of release {tag}")
        return self._record_from_payload(response.json())

    def upload_asset(self, record: ReleaseRecord, asset_name: str, path: Path) -> None:
        url = f"{self.uploads_url}/repos/{self.repository}/releases/{record.release_id}/assets"
        response = self._request(
            "POST",
            url,
            params={"name": asset_name},
            content=Path(path).read_bytes(),
            headers={"Content-Type": "application/pdf"},
        )
        self._raise_for_status(response, f"upload of {asset_name}")
        record.assets.append(asset_name)
        _log_debug(f"  Uploaded {asset_name} to {record.tag}")

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
