"""
Document registry.

This module defines the set of documents the renderer can produce. Each
entry explicitly binds together:

- a public document identifier (slug)
- a payload schema
- an HTML template used for rendering
- the render profile handed to the headless browser
- how the resulting PDF is named and disposed

Documents must be registered here to be addressable via the API.
"""

import re
from typing import Callable, Dict, Literal, Type

from pydantic import BaseModel, ConfigDict

from renderer.app.core.config import Settings
from renderer.app.schemas.borrower_info import BorrowerInfoPayload
from renderer.app.schemas.direct_debit_mandate import DirectDebitMandatePayload
from renderer.app.services.browser import RenderProfile


class DocumentEntry(BaseModel):
    """
    Declarative description of a renderable document.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    slug: str
    payload_schema: Type[BaseModel]
    template_path: str
    description: str
    disposition: Literal["inline", "attachment"]
    filename: Callable[[BaseModel], str]
    render_profile: Callable[[Settings], RenderProfile]


# ---------------------------------------------------------------------------
# Filename policies
# ---------------------------------------------------------------------------

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


def safe_filename_stem(value: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", value)


def _borrower_info_filename(payload: BaseModel) -> str:
    return "customer-info.pdf"


def _mandate_filename(payload: BaseModel) -> str:
    return f"{safe_filename_stem(payload.borrower_name)}-direct-debit-mandate.pdf"


# ---------------------------------------------------------------------------
# Render profiles
# ---------------------------------------------------------------------------

def _borrower_info_profile(settings: Settings) -> RenderProfile:
    return RenderProfile(
        viewport={"width": 1024, "height": 768},
        wait_until="domcontentloaded",
        content_timeout_ms=settings.content_timeout_ms,
        export_timeout_ms=settings.content_timeout_ms,
        margin={"top": "30px", "bottom": "30px"},
        print_background=True,
        blocked_resource_types=frozenset({"image", "font"}),
    )


def _mandate_profile(settings: Settings) -> RenderProfile:
    return RenderProfile(
        wait_until="domcontentloaded",
        page_timeout_ms=settings.page_timeout_ms,
        margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
        print_background=True,
        prefer_css_page_size=True,
        display_header_footer=False,
        launch_args=(
            "--disable-web-security",
            "--disable-features=VizDisplayCompositor",
        ),
    )


DOCUMENT_REGISTRY: Dict[str, DocumentEntry] = {
    "borrower-info": DocumentEntry(
        slug="borrower-info",
        payload_schema=BorrowerInfoPayload,
        template_path="borrower_info.html.jinja",
        description=(
            "Borrower KYC summary: borrower, business and guarantor "
            "details with inlined photos and links to supporting media."
        ),
        disposition="inline",
        filename=_borrower_info_filename,
        render_profile=_borrower_info_profile,
    ),
    "direct-debit-mandate": DocumentEntry(
        slug="direct-debit-mandate",
        payload_schema=DirectDebitMandatePayload,
        template_path="direct_debit_mandate.html.jinja",
        description=(
            "Seeds and Pennies direct debit mandate with beneficiary, "
            "mandate and payer details and the borrower's consent."
        ),
        disposition="attachment",
        filename=_mandate_filename,
        render_profile=_mandate_profile,
    ),
}
