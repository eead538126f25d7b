import uuid

import httpx
import pytest
from fastapi.testclient import TestClient

from renderer.app.api.routes import get_http_client, get_renderer
from renderer.app.core.config import Settings
from renderer.app.main import create_app
from renderer.app.services.browser import BrowserLaunchError
from renderer.tests.fakes import FAKE_PDF, FakeRenderer
from renderer.tests.fixtures.payloads import (
    PNG_BYTES,
    PNG_DATA_URL,
    borrower_info_payload,
    mandate_payload,
)

HEADER_URL = "https://assets.test/header.png"
FOOTER_URL = "https://assets.test/footer.png"
LOGO_URL = "https://assets.test/logo.png"


class ImageServer:
    """MockTransport handler serving PNGs; paths listed in ``broken`` fail."""

    def __init__(self, broken=()):
        self.broken = set(broken)
        self.requested = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(str(request.url))
        if request.url.path in self.broken:
            return httpx.Response(503)
        return httpx.Response(
            200, content=PNG_BYTES, headers={"content-type": "image/png"}
        )


def _client(renderer=None, images=None):
    settings = Settings(
        _env_file=None,
        mandate_header_image_url=HEADER_URL,
        mandate_footer_image_url=FOOTER_URL,
        mandate_logo_url=LOGO_URL,
    )
    app = create_app(settings)

    renderer = renderer or FakeRenderer()
    images = images or ImageServer()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(images))

    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_http_client] = lambda: http_client

    return TestClient(app), renderer, images


# ------------------------------------------------------------------
# Borrower info
# ------------------------------------------------------------------

def test_borrower_info_pdf_is_returned_inline():
    client, renderer, _ = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf",
        json=borrower_info_payload(),
        headers={"X-Correlation-ID": "trace-123"},
    )

    assert response.status_code == 200
    assert response.content == FAKE_PDF
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == "inline; filename=customer-info.pdf"
    assert response.headers["x-correlation-id"] == "trace-123"

    call = renderer.calls[0]
    assert call["trace_id"] == "trace-123"
    assert "Adaeze Okafor" in call["html"]
    assert call["profile"].blocked_resource_types == frozenset({"image", "font"})


def test_borrower_info_photos_are_inlined_after_drive_rewrite():
    client, renderer, images = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf",
        json=borrower_info_payload(
            borrowerImageUrl="https://drive.google.com/file/d/PHOTO1/view?usp=sharing",
            guarantorImageUrl="https://photos.test/guarantor.png",
        ),
    )

    assert response.status_code == 200
    assert "https://drive.google.com/uc?export=download&id=PHOTO1" in images.requested
    assert renderer.calls[0]["html"].count(PNG_DATA_URL) == 2


def test_borrower_info_unreachable_photo_is_left_out():
    client, renderer, _ = _client(images=ImageServer(broken={"/missing.png"}))

    response = client.post(
        "/api/generate-borrower-info-pdf",
        json=borrower_info_payload(borrowerImageUrl="https://photos.test/missing.png"),
    )

    assert response.status_code == 200
    assert 'alt="Borrower"' not in renderer.calls[0]["html"]


def test_borrower_info_malformed_photo_url_is_left_out():
    client, renderer, _ = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf",
        json=borrower_info_payload(
            borrowerImageUrl="http://[bad",
            guarantorImageUrl="https://photos.test/guarantor.png",
        ),
    )

    assert response.status_code == 200
    html = renderer.calls[0]["html"]
    assert 'alt="Borrower"' not in html
    assert 'alt="Guarantor"' in html


def test_borrower_info_render_failure_returns_error_body():
    client, _, _ = _client(
        renderer=FakeRenderer(error=BrowserLaunchError("Failed to launch browser: boom"))
    )

    response = client.post("/api/generate-borrower-info-pdf", json={})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to generate PDF",
        "details": "Failed to launch browser: boom",
    }


@pytest.mark.parametrize("body", [b"{not json", b"[1, 2]", b""])
def test_invalid_json_is_rejected(body):
    client, renderer, _ = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf",
        content=body,
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid JSON payload"
    assert renderer.calls == []


def test_invalid_json_response_echoes_correlation_id():
    client, _, _ = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf",
        content=b"{not json",
        headers={"content-type": "application/json", "X-Correlation-ID": "trace-400"},
    )

    assert response.status_code == 400
    assert response.headers["x-correlation-id"] == "trace-400"


def test_missing_correlation_id_is_generated():
    client, renderer, _ = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf", json=borrower_info_payload()
    )

    generated = response.headers["x-correlation-id"]
    assert uuid.UUID(generated).version == 4
    assert renderer.calls[0]["trace_id"] == generated


def test_oversized_correlation_id_is_replaced():
    client, renderer, _ = _client()
    oversized = "a" * 129

    response = client.post(
        "/api/generate-borrower-info-pdf",
        json=borrower_info_payload(),
        headers={"X-Correlation-ID": oversized},
    )

    echoed = response.headers["x-correlation-id"]
    assert echoed != oversized
    assert uuid.UUID(echoed).version == 4
    assert renderer.calls[0]["trace_id"] == echoed


def test_structurally_invalid_payload_is_unprocessable():
    client, _, _ = _client()

    response = client.post(
        "/api/generate-borrower-info-pdf",
        json={"obligorName": ["not", "a", "string"]},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "Invalid payload"


# ------------------------------------------------------------------
# Direct debit mandate
# ------------------------------------------------------------------

def test_mandate_pdf_is_an_attachment_named_after_borrower():
    client, renderer, images = _client()

    response = client.post(
        "/api/generate-seeds-direct-debit-mandate-pdf",
        json=mandate_payload(borrower_name="Adaeze O'Kafor Jr."),
    )

    assert response.status_code == 200
    assert response.content == FAKE_PDF
    assert response.headers["content-disposition"] == (
        "attachment; filename=Adaeze_O_Kafor_Jr_-direct-debit-mandate.pdf"
    )

    html = renderer.calls[0]["html"]
    assert f'background-image: url("{PNG_DATA_URL}")' in html
    assert f'<img src="{PNG_DATA_URL}" alt="Seeds Logo" />' in html
    assert set(images.requested) == {HEADER_URL, FOOTER_URL, LOGO_URL}


def test_mandate_missing_images_degrade_gracefully():
    client, renderer, _ = _client(
        images=ImageServer(broken={"/header.png", "/logo.png"})
    )

    response = client.post(
        "/api/generate-seeds-direct-debit-mandate-pdf",
        json=mandate_payload(),
    )

    assert response.status_code == 200
    html = renderer.calls[0]["html"]
    assert 'background-image: url("")' in html
    assert f'<img src="{LOGO_URL}" alt="Seeds Logo" />' in html


@pytest.mark.parametrize("missing", ["borrower_name", "business_name"])
def test_mandate_requires_borrower_and_business_names(missing):
    client, renderer, _ = _client()
    payload = mandate_payload()
    del payload[missing]

    response = client.post(
        "/api/generate-seeds-direct-debit-mandate-pdf", json=payload
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "Missing required fields: borrower_name and business_name"
    }
    assert renderer.calls == []


def test_mandate_render_failure_returns_error_body():
    client, _, _ = _client(renderer=FakeRenderer(error=RuntimeError("Target closed")))

    response = client.post(
        "/api/generate-seeds-direct-debit-mandate-pdf", json=mandate_payload()
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "Mandate generation failed",
        "details": "Target closed",
    }


def test_mandate_preview_renders_html_from_query():
    client, renderer, _ = _client()

    response = client.get(
        "/api/generate-seeds-direct-debit-mandate-pdf",
        params={"borrower_name": "Ngozi Eze", "amount": "₦75,000.00"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/html; charset=utf-8"
    assert "<h2>Ngozi Eze</h2>" in response.text
    assert 'value="₦75,000.00"' in response.text
    assert 'value="GTBank"' in response.text
    assert PNG_DATA_URL in response.text
    assert renderer.calls == []


# ------------------------------------------------------------------
# Superseded mandate route (remote images)
# ------------------------------------------------------------------

def test_remote_asset_mandate_route_does_not_fetch_images():
    client, renderer, images = _client()

    response = client.post("/api/seeds-direct-debit-mandate", json=mandate_payload())

    assert response.status_code == 200
    assert images.requested == []
    html = renderer.calls[0]["html"]
    assert f'background-image: url("{HEADER_URL}")' in html
    assert f'background-image: url("{FOOTER_URL}")' in html


def test_remote_asset_mandate_route_validates_required_fields():
    client, _, _ = _client()

    response = client.post(
        "/api/seeds-direct-debit-mandate",
        json=mandate_payload(borrower_name=""),
    )

    assert response.status_code == 400


def test_remote_asset_mandate_preview():
    client, _, images = _client()

    response = client.get("/api/seeds-direct-debit-mandate")

    assert response.status_code == 200
    assert "<h2>John Doe</h2>" in response.text
    assert images.requested == []


# ------------------------------------------------------------------
# CORS, catalogue, health
# ------------------------------------------------------------------

def test_cors_preflight_is_answered():
    client, _, _ = _client()

    response = client.options(
        "/api/generate-borrower-info-pdf",
        headers={
            "Origin": "https://loans.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


@pytest.mark.parametrize(
    "path",
    [
        "/api/generate-borrower-info-pdf",
        "/api/seeds-direct-debit-mandate",
        "/api/documents",
    ],
)
def test_plain_options_is_answered_with_cors_headers(path):
    client, renderer, _ = _client()

    response = client.options(path)

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == (
        "GET, POST, PUT, DELETE, OPTIONS"
    )
    assert response.headers["access-control-allow-headers"] == (
        "Content-Type, Authorization"
    )
    assert renderer.calls == []


def test_document_catalogue_and_schemas():
    client, _, _ = _client()

    listing = client.get("/api/documents").json()
    assert [d["slug"] for d in listing] == ["borrower-info", "direct-debit-mandate"]

    schema = client.get("/api/documents/borrower-info/schema").json()
    assert "obligorName" in schema["properties"]

    missing = client.get(
        "/api/documents/unknown/schema",
        headers={"X-Correlation-ID": "trace-404"},
    )
    assert missing.status_code == 404
    assert missing.json() == {"error": "Document 'unknown' not found."}
    assert missing.headers["x-correlation-id"] == "trace-404"


def test_health_check_runs_lifespan():
    client, _, _ = _client()

    with client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "renderer"
