"""Integration tests for the local preview server."""

import threading

import httpx
import pytest

from cvpress.contexts.publishing.preview import make_preview_server, published_languages
from cvpress.contexts.publishing.site_builder import build_site


@pytest.fixture
def site_dir(artifacts, tmp_path):
    return build_site(artifacts, tmp_path / "site").site_dir


def _serve(site_dir, auto_detect_language=False):
    server = make_preview_server(site_dir, port=0, auto_detect_language=auto_detect_language)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    return server, f"http://{host}:{port}"


@pytest.fixture
def preview(site_dir):
    server, url = _serve(site_dir)
    yield url
    server.shutdown()
    server.server_close()


@pytest.fixture
def preview_auto_detect(site_dir):
    server, url = _serve(site_dir, auto_detect_language=True)
    yield url
    server.shutdown()
    server.server_close()


@pytest.mark.integration
def test_published_languages(site_dir):
    """Test language discovery from the built site."""
    assert published_languages(site_dir) == ["en", "pt"]


@pytest.mark.integration
def test_lang_parameter_redirects(preview):
    """Test that /?lang=pt redirects to pt.pdf."""
    response = httpx.get(f"{preview}/?lang=pt", follow_redirects=False, trust_env=False)

    assert response.status_code == 302
    assert response.headers["Location"] == "/pt.pdf"


@pytest.mark.integration
def test_root_serves_selection_page(preview):
    """Test that without ?lang (and auto-detect off) the selection page is served."""
    response = httpx.get(f"{preview}/", headers={"Accept-Language": "pt-BR"}, follow_redirects=False, trust_env=False)

    assert response.status_code == 200
    assert 'href="en.pdf"' in response.text
    assert 'href="pt.pdf"' in response.text


@pytest.mark.integration
def test_unknown_lang_serves_selection_page(preview):
    """Test that an unpublished language falls back to the selection page."""
    response = httpx.get(f"{preview}/index.html?lang=fr", follow_redirects=False, trust_env=False)

    assert response.status_code == 200


@pytest.mark.integration
def test_auto_detect_redirects_by_browser_language(preview_auto_detect):
    """Test browser-preference redirects when auto-detection is on."""
    response = httpx.get(
        f"{preview_auto_detect}/", headers={"Accept-Language": "pt-BR,en;q=0.5"},
        follow_redirects=False,
        trust_env=False,
    )

    assert response.status_code == 302
    assert response.headers["Location"] == "/pt.pdf"


@pytest.mark.integration
def test_pdf_is_served(preview, site_dir):
    """Test that the PDFs themselves are served unchanged."""
    response = httpx.get(f"{preview}/en.pdf", trust_env=False)

    assert response.status_code == 200
    assert response.content == (site_dir / "en.pdf").read_bytes()
