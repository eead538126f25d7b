"""
Remote asset helpers.

Templates are rendered with network access for images and fonts blocked
(or unreliable, on serverless hosts), so remote images are downloaded up
front and embedded as base64 ``data:`` URLs.

A missing image is never fatal: every failure is logged and reported as
``None`` so the template can fall back to an empty slot.
"""

import asyncio
import base64
import logging
import re
from typing import Dict, Mapping, Optional
from urllib.parse import parse_qs, urlparse

import httpx

logger = logging.getLogger("renderer.assets")

DEFAULT_CONTENT_TYPE = "image/png"
DEFAULT_FETCH_TIMEOUT_SECONDS = 8.0

_DRIVE_HOSTS = {"drive.google.com", "docs.google.com"}
_DRIVE_FILE_PATH = re.compile(r"^/file/d/([A-Za-z0-9_-]+)")


# ---------------------------------------------------------------------------
# Google Drive links
# ---------------------------------------------------------------------------

def to_direct_download_url(url: str) -> str:
    """
    Rewrite a Google Drive sharing link into a direct-download link.

    Handled shapes:
        https://drive.google.com/file/d/<id>/view?usp=sharing
        https://drive.google.com/open?id=<id>
        https://drive.google.com/uc?id=<id>

    Anything else is returned unchanged.
    """
    if not url:
        return url

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return url

    if hostname not in _DRIVE_HOSTS:
        return url

    file_id: Optional[str] = None

    match = _DRIVE_FILE_PATH.match(parsed.path)
    if match:
        file_id = match.group(1)
    elif parsed.path in {"/open", "/uc"}:
        ids = parse_qs(parsed.query).get("id")
        if ids:
            file_id = ids[0]

    if not file_id:
        return url

    return f"https://drive.google.com/uc?export=download&id={file_id}"


# ---------------------------------------------------------------------------
# Image inlining
# ---------------------------------------------------------------------------

async def fetch_image_as_data_url(
    client: httpx.AsyncClient,
    url: Optional[str],
    *,
    timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    max_bytes: Optional[int] = None,
) -> Optional[str]:
    """
    Fetch an image and return it as a base64 ``data:`` URL.

    Returns None when the URL is empty, the server answers with a
    non-success status, the body exceeds ``max_bytes``, or the request
    fails or exceeds ``timeout`` seconds.

    The body is streamed; reading stops as soon as ``max_bytes`` is passed.
    """
    if not url:
        return None

    if url.startswith("data:"):
        return url

    try:
        async with client.stream(
            "GET",
            url,
            follow_redirects=True,
            timeout=timeout,
            headers={"Cache-Control": "no-store"},
        ) as response:
            if not response.is_success:
                logger.warning(
                    "image_fetch_failed",
                    extra={
                        "url": url,
                        "status_code": response.status_code,
                        "reason": response.reason_phrase,
                    },
                )
                return None

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if max_bytes is not None and len(body) > max_bytes:
                    logger.warning(
                        "image_too_large",
                        extra={"url": url, "max_bytes": max_bytes},
                    )
                    return None

            content_type = (
                response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
            )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning(
            "image_fetch_error",
            extra={
                "url": url,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        return None

    encoded = base64.b64encode(bytes(body)).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


async def inline_images(
    client: httpx.AsyncClient,
    urls: Mapping[str, Optional[str]],
    *,
    timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    max_bytes: Optional[int] = None,
) -> Dict[str, Optional[str]]:
    """Fetch several images concurrently, keyed like ``urls``."""
    keys = list(urls)
    results = await asyncio.gather(
        *(
            fetch_image_as_data_url(
                client,
                urls[key],
                timeout=timeout,
                max_bytes=max_bytes,
            )
            for key in keys
        )
    )
    return dict(zip(keys, results))
