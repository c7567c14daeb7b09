"""Unit tests for release stores and release creation."""

import json

import httpx
import pytest

from cvpress.contexts.releasing.releaser import create_release
from cvpress.contexts.releasing.stores import GitHubReleaseStore, LocalReleaseStore
from cvpress.exceptions import DuplicateReleaseError, MissingArtifactError, ReleaseStoreError


@pytest.fixture
def local_store(tmp_path):
    return LocalReleaseStore(tmp_path / "releases")


@pytest.mark.unit
def test_local_store_create_and_get(local_store):
    """Test that a created release can be read back."""
    created = local_store.create_release("v1.0.0", "CV v1.0.0", "notes", prerelease=False)
    fetched = local_store.get_release("v1.0.0")

    assert fetched == created
    assert fetched.created_at
    assert local_store.get_release("v9.9.9") is None


@pytest.mark.unit
def test_local_store_refuses_duplicate_tag(local_store):
    """Test that a tag can only be released once."""
    local_store.create_release("v1.0.0", "CV v1.0.0", "first", prerelease=False)

    with pytest.raises(DuplicateReleaseError) as exc_info:
        local_store.create_release("v1.0.0", "CV v1.0.0", "second", prerelease=False)

    assert not exc_info.value.retriable
    assert local_store.get_release("v1.0.0").body == "first"


@pytest.mark.unit
def test_local_store_rejects_unsafe_tag(local_store):
    """Test that tags cannot escape the store directory."""
    with pytest.raises(ReleaseStoreError):
        local_store.create_release("../v1.0.0", "x", "x", prerelease=False)


@pytest.mark.unit
def test_create_release_attaches_assets(local_store, artifacts, build_metadata):
    """Test that every artifact is attached as <lang>.pdf and notes are generated."""
    record = create_release(
        local_store,
        "v1.2.0",
        artifacts,
        build_metadata,
        site_url="https://alex.github.io/cv/",
        labels={"en": "English", "pt": "Português"},
    )

    assert record.assets == ["en.pdf", "pt.pdf"]
    assert record.name == "Curriculum Vitae v1.2.0"
    assert "Site: https://alex.github.io/cv/" in record.body
    release_dir = local_store.root / "v1.2.0"
    assert (release_dir / "pt.pdf").read_bytes() == artifacts["pt"].read_bytes()
    assert json.loads((release_dir / "release.json").read_text())["assets"] == ["en.pdf", "pt.pdf"]


@pytest.mark.unit
def test_create_release_duplicate_leaves_existing_untouched(local_store, artifacts, build_metadata):
    """Test that a second release for a tag fails without modifying the first."""
    create_release(local_store, "v1.2.0", artifacts, build_metadata)
    before = (local_store.root / "v1.2.0" / "release.json").read_text()

    with pytest.raises(DuplicateReleaseError):
        create_release(local_store, "v1.2.0", {"en": artifacts["en"]}, build_metadata, prerelease=True)

    assert (local_store.root / "v1.2.0" / "release.json").read_text() == before


@pytest.mark.unit
def test_create_release_requires_readable_artifacts(local_store, artifacts, build_metadata):
    """Test that a broken artifact stops the release before anything is created."""
    artifacts["pt"].write_bytes(b"broken")

    with pytest.raises(MissingArtifactError):
        create_release(local_store, "v1.2.0", artifacts, build_metadata)

    assert local_store.get_release("v1.2.0") is None


class FakeGitHub:
    """In-memory stand-in for the GitHub Releases API, served through httpx.MockTransport."""

    def __init__(self):
        self.releases = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path.startswith("/repos/alex/cv/releases/tags/"):
            tag = path.rsplit("/", 1)[-1]
            if tag not in self.releases:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json=self.releases[tag])

        if request.method == "POST" and path == "/repos/alex/cv/releases":
            payload = json.loads(request.content)
            tag = payload["tag_name"]
            if tag in self.releases:
                return httpx.Response(
                    422,
                    json={
                        "message": "Validation Failed",
                        "errors": [{"resource": "Release", "code": "already_exists", "field": "tag_name"}],
                    },
                )
            self.releases[tag] = {
                "id": len(self.releases) + 1,
                "tag_name": tag,
                "name": payload["name"],
                "body": payload["body"],
                "prerelease": payload["prerelease"],
                "html_url": f"https://github.com/alex/cv/releases/tag/{tag}",
                "created_at": "2025-11-14T12:00:00Z",
                "assets": [],
            }
            return httpx.Response(201, json=self.releases[tag])

        if request.method == "POST" and path.endswith("/assets"):
            name = request.url.params["name"]
            for release in self.releases.values():
                if path == f"/repos/alex/cv/releases/{release['id']}/assets":
                    release["assets"].append({"name": name, "size": len(request.content)})
                    return httpx.Response(201, json={"name": name})
            return httpx.Response(404, json={"message": "Not Found"})

        return httpx.Response(500, json={"message": "unexpected request"})


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def github_store(github):
    client = httpx.Client(transport=httpx.MockTransport(github))
    return GitHubReleaseStore("alex/cv", token="test-token", client=client)


@pytest.mark.unit
def test_github_store_creates_release_with_assets(github_store, github, artifacts, build_metadata):
    """Test the GitHub flow: lookup, create, upload each PDF."""
    record = create_release(github_store, "v1.2.0", artifacts, build_metadata, prerelease=True)

    assert record.url == "https://github.com/alex/cv/releases/tag/v1.2.0"
    assert record.prerelease
    assert record.assets == ["en.pdf", "pt.pdf"]
    assert [a["name"] for a in github.releases["v1.2.0"]["assets"]] == ["en.pdf", "pt.pdf"]

    upload = github.requests[-1]
    assert upload.url.host == "uploads.github.com"
    assert upload.headers["Content-Type"] == "application/pdf"
    assert upload.headers["Authorization"] == "Bearer test-token"


@pytest.mark.unit
def test_github_store_duplicate_tag(github_store, github, artifacts, build_metadata):
    """Test that an existing GitHub release is detected before anything is posted."""
    create_release(github_store, "v1.2.0", artifacts, build_metadata)
    posts_before = sum(1 for r in github.requests if r.method == "POST")

    with pytest.raises(DuplicateReleaseError):
        create_release(github_store, "v1.2.0", artifacts, build_metadata)

    assert sum(1 for r in github.requests if r.method == "POST") == posts_before


@pytest.mark.unit
def test_github_store_maps_already_exists(github_store, github):
    """Test that a 422 already_exists response becomes DuplicateReleaseError."""
    github_store.create_release("v1.0.0", "CV v1.0.0", "", prerelease=False)

    with pytest.raises(DuplicateReleaseError):
        github_store.create_release("v1.0.0", "CV v1.0.0", "", prerelease=False)


@pytest.mark.unit
def test_github_store_server_error_is_retriable():
    """Test that 5xx responses are retriable store errors."""
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway")))
    store = GitHubReleaseStore("alex/cv", token="t", client=client)

    with pytest.raises(ReleaseStoreError) as exc_info:
        store.get_release("v1.0.0")

    assert exc_info.value.status_code == 502
    assert exc_info.value.retriable


@pytest.mark.unit
def test_github_store_requires_repository_and_token(monkeypatch):
    """Test constructor validation."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    with pytest.raises(ReleaseStoreError):
        GitHubReleaseStore("not-a-repo", token="t")
    with pytest.raises(ReleaseStoreError):
        GitHubReleaseStore("alex/cv")


@pytest.mark.unit
def test_github_store_closes_only_its_own_client(github):
    """Test that leaving the store closes a client it created and keeps a supplied one open."""
    with GitHubReleaseStore("alex/cv", token="t") as owned:
        assert not owned.client.is_closed
    assert owned.client.is_closed

    supplied = httpx.Client(transport=httpx.MockTransport(github))
    with GitHubReleaseStore("alex/cv", token="t", client=supplied):
        pass
    assert not supplied.is_closed
    supplied.close()


@pytest.mark.unit
def test_local_store_works_as_context_manager(tmp_path):
    """Test that every store can be used in a with-block."""
    with LocalReleaseStore(tmp_path / "releases") as store:
        store.create_release("v1.0.0", "CV v1.0.0", "notes", prerelease=False)

    assert LocalReleaseStore(tmp_path / "releases").get_release("v1.0.0") is not None
