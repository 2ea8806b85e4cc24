import httpx
import pytest

from yerimi.services.metadata import (
    MetadataError,
    extract_metadata_from_html,
    fetch_metadata,
)


def _transport(handler):
    return httpx.MockTransport(handler)


def test_microlink_success_returns_title_and_description():
    seen = {}

    def handler(request):
        seen["url"] = request.url.params.get("url")
        return httpx.Response(
            200,
            json={
                "status": "success",
                "data": {"title": "  Example   Domain ", "description": "For docs"},
            },
        )

    metadata = fetch_metadata(
        "https://example.com",
        endpoint="https://api.microlink.io",
        transport=_transport(handler),
    )

    assert seen["url"] == "https://example.com"
    assert metadata.title == "Example Domain"
    assert metadata.description == "For docs"


def test_microlink_failure_status_raises():
    def handler(request):
        return httpx.Response(400, json={"status": "fail", "message": "invalid url"})

    with pytest.raises(MetadataError) as excinfo:
        fetch_metadata("nope", transport=_transport(handler))

    assert "invalid url" in str(excinfo.value)


def test_network_errors_become_metadata_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(MetadataError):
        fetch_metadata("https://example.com", transport=_transport(handler))


def test_direct_provider_parses_the_page():
    html = """
    <html><head>
      <title>Fallback title</title>
      <meta property="og:title" content="Open Graph title">
      <meta name="description" content="Plain description">
    </head><body></body></html>
    """

    def handler(request):
        return httpx.Response(200, text=html, headers={"content-type": "text/html"})

    metadata = fetch_metadata(
        "https://example.com", provider="direct", transport=_transport(handler)
    )

    assert metadata.title == "Open Graph title"
    assert metadata.description == "Plain description"


def test_html_without_meta_tags_falls_back_to_title():
    metadata = extract_metadata_from_html("<html><head><title>Only title</title></head></html>")

    assert metadata.title == "Only title"
    assert metadata.description is None


def test_disabled_provider_raises():
    with pytest.raises(MetadataError):
        fetch_metadata("https://example.com", provider="none")


def test_microlink_payload_that_is_not_an_object_raises():
    def handler(request):
        return httpx.Response(200, json=["not", "an", "object"])

    with pytest.raises(MetadataError):
        fetch_metadata("https://example.com", transport=_transport(handler))


def test_microlink_data_that_is_not_an_object_raises():
    def handler(request):
        return httpx.Response(200, json={"status": "success", "data": "oops"})

    with pytest.raises(MetadataError):
        fetch_metadata("https://example.com", transport=_transport(handler))
