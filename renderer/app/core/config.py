"""
Centralized configuration management for the Renderer service.

Pydantic v2 settings management: values are parsed from the environment
(``RENDERER_`` prefix) once at startup and fail fast when malformed.
"""

from functools import lru_cache
from typing import Annotated, List, Literal, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

Milliseconds = Annotated[
    int,
    Field(ge=1_000, le=120_000),
]

AssetUrl = Annotated[
    AnyHttpUrl,
    Field(description="Remote image referenced by a document template"),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.
    """

    # ---------------------------------------------------------------------
    # Runtime profile
    # ---------------------------------------------------------------------

    environment: Annotated[
        Literal["development", "production"],
        Field(
            default="production",
            description=(
                "Selects the browser launch profile. 'development' prefers "
                "a locally installed Chrome."
            ),
        ),
    ]

    log_level: Annotated[
        Literal["DEBUG", "INFO", "WARNING", "ERROR"],
        Field(default="INFO"),
    ]

    # ---------------------------------------------------------------------
    # Headless browser
    # ---------------------------------------------------------------------

    chrome_executable_path: Annotated[
        Optional[str],
        Field(
            default=None,
            description="Explicit browser binary; overrides every profile",
        ),
    ]

    page_timeout_ms: Annotated[
        Milliseconds,
        Field(
            default=30_000,
            description="Default page and navigation timeout (mandates)",
        ),
    ]

    content_timeout_ms: Annotated[
        Milliseconds,
        Field(
            default=15_000,
            description="set_content and PDF export timeout (borrower info)",
        ),
    ]

    # ---------------------------------------------------------------------
    # Remote assets
    # ---------------------------------------------------------------------

    image_fetch_timeout_seconds: Annotated[
        float,
        Field(default=8.0, gt=0, le=60),
    ]

    max_image_bytes: Annotated[
        int,
        Field(
            default=5 * 1024 * 1024,
            ge=1024,
            description="Images above this size are dropped, not inlined",
        ),
    ]

    mandate_header_image_url: AssetUrl = (
        "https://res.cloudinary.com/dk4cqoxcp/image/upload/"
        "v1768555572/seeds-header-pattern.png"
    )

    mandate_footer_image_url: AssetUrl = (
        "https://res.cloudinary.com/dk4cqoxcp/image/upload/"
        "v1768557489/seeds-footer-pattern-2.png"
    )

    mandate_logo_url: AssetUrl = (
        "https://res.cloudinary.com/dk4cqoxcp/image/upload/"
        "v1768554878/seeds-logo.png"
    )

    # ---------------------------------------------------------------------
    # HTTP surface
    # ---------------------------------------------------------------------

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(
        env_prefix="RENDERER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings singleton."""
    return Settings()
