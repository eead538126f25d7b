"""
Headless browser rendering service.

Converts a complete HTML document into PDF bytes by driving headless
Chromium through Playwright. Layout and PDF encoding are delegated
entirely to the browser.

Lifecycle per render:
    launch browser → new page → set content → export PDF → close browser

The Playwright driver itself is started once, lazily, and shared for the
lifetime of the process. Browsers are never reused between documents.

Launch profiles:

    development   System Chrome at the platform's default install path,
                  falling back to the production profile when absent.

    production    Playwright's bundled Chromium with the serverless
                  argument set.
"""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from playwright.async_api import async_playwright

from renderer.app.core.config import Settings

logger = logging.getLogger("renderer.browser")


class BrowserLaunchError(RuntimeError):
    """Raised when the headless browser cannot be started."""


class PdfRenderError(RuntimeError):
    """Raised when loading HTML or exporting the PDF fails."""


# ---------------------------------------------------------------------------
# Launch configuration
# ---------------------------------------------------------------------------

LOCAL_CHROME_PATHS: Dict[str, str] = {
    "win32": r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    "darwin": "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
}
DEFAULT_LOCAL_CHROME_PATH = "/usr/bin/google-chrome"

SANDBOX_ARGS: Tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
)

# Flags recommended for Chromium on memory-constrained serverless hosts.
SERVERLESS_CHROMIUM_ARGS: Tuple[str, ...] = (
    "--allow-pre-commit-input",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-client-side-phishing-detection",
    "--disable-component-update",
    "--disable-default-apps",
    "--disable-dev-shm-usage",
    "--disable-extensions",
    "--disable-hang-monitor",
    "--disable-ipc-flooding-protection",
    "--disable-popup-blocking",
    "--disable-prompt-on-repost",
    "--disable-renderer-backgrounding",
    "--disable-sync",
    "--export-tagged-pdf",
    "--force-color-profile=srgb",
    "--metrics-recording-only",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-first-run",
    "--no-pings",
    "--password-store=basic",
    "--use-mock-keychain",
)

PRODUCTION_EXTRA_ARGS: Tuple[str, ...] = (
    "--hide-scrollbars",
    "--disable-web-security",
)


def _dedupe(args: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    ordered = []
    for arg in args:
        if arg not in seen:
            seen.add(arg)
            ordered.append(arg)
    return tuple(ordered)


@dataclass(frozen=True)
class LaunchConfig:
    """Arguments passed to ``chromium.launch``; None means bundled Chromium."""

    executable_path: Optional[str]
    args: Tuple[str, ...]
    headless: bool = True

    def as_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "headless": self.headless,
            "args": list(self.args),
        }
        if self.executable_path:
            kwargs["executable_path"] = self.executable_path
        return kwargs


def local_chrome_path(platform: str) -> str:
    return LOCAL_CHROME_PATHS.get(platform, DEFAULT_LOCAL_CHROME_PATH)


def resolve_launch_config(
    settings: Settings,
    extra_args: Sequence[str] = (),
    *,
    platform: str = sys.platform,
    path_exists: Callable[[str], bool] = os.path.exists,
) -> LaunchConfig:
    """
    Select the browser binary and command line for this environment.

    ``extra_args`` are always appended after the profile's own flags;
    duplicates are dropped, first occurrence wins.
    """
    if settings.chrome_executable_path:
        return LaunchConfig(
            executable_path=settings.chrome_executable_path,
            args=_dedupe((*SANDBOX_ARGS, *extra_args)),
        )

    if settings.environment == "development":
        candidate = local_chrome_path(platform)
        if path_exists(candidate):
            return LaunchConfig(
                executable_path=candidate,
                args=_dedupe((*SANDBOX_ARGS, *extra_args)),
            )
        logger.info(
            "local_chrome_not_found",
            extra={"chrome_path": candidate, "fallback": "bundled_chromium"},
        )

    return LaunchConfig(
        executable_path=None,
        args=_dedupe(
            (
                *SERVERLESS_CHROMIUM_ARGS,
                *PRODUCTION_EXTRA_ARGS,
                *SANDBOX_ARGS,
                *extra_args,
            )
        ),
    )


# ---------------------------------------------------------------------------
# Render profiles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RenderProfile:
    """
    Page and PDF export options for one document type.

    Timeouts left as None fall back to the service settings.
    """

    viewport: Optional[Dict[str, int]] = None
    wait_until: str = "domcontentloaded"
    content_timeout_ms: Optional[int] = None
    page_timeout_ms: Optional[int] = None
    export_timeout_ms: Optional[int] = None
    pdf_format: str = "A4"
    margin: Dict[str, str] = field(default_factory=dict)
    print_background: bool = True
    prefer_css_page_size: bool = False
    display_header_footer: bool = False
    blocked_resource_types: frozenset = frozenset()
    launch_args: Tuple[str, ...] = ()

    def pdf_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "format": self.pdf_format,
            "print_background": self.print_background,
            "display_header_footer": self.display_header_footer,
            "prefer_css_page_size": self.prefer_css_page_size,
        }
        if self.margin:
            options["margin"] = dict(self.margin)
        return options


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class PdfRenderer:
    """
    Renders HTML documents to PDF bytes with a fresh browser per document.

    The Playwright driver is started on first use and stopped by
    :meth:`aclose`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.settings = settings
        self._playwright_factory = playwright_factory
        self._playwright: Any = None
        self._lock = asyncio.Lock()

    async def _driver(self) -> Any:
        async with self._lock:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()
                logger.info("playwright_driver_started")
            return self._playwright

    async def _launch(self, profile: RenderProfile, trace_id: str) -> Any:
        config = resolve_launch_config(self.settings, profile.launch_args)
        logger.info(
            "browser_launch_begin",
            extra={
                "trace_id": trace_id,
                "executable_path": config.executable_path or "bundled",
                "environment": self.settings.environment,
            },
        )
        try:
            driver = await self._driver()
            browser = await driver.chromium.launch(**config.as_kwargs())
        except Exception as exc:
            logger.exception(
                "browser_launch_failed",
                extra={"trace_id": trace_id},
            )
            raise BrowserLaunchError(
                f"Failed to launch browser: {exc}"
            ) from exc

        logger.info("browser_launched", extra={"trace_id": trace_id})
        return browser

    async def render(
        self,
        html: str,
        profile: RenderProfile,
        *,
        trace_id: str = "-",
    ) -> bytes:
        browser = await self._launch(profile, trace_id)

        try:
            page = await browser.new_page(viewport=profile.viewport)

            page.set_default_timeout(
                profile.page_timeout_ms or self.settings.page_timeout_ms
            )
            page.set_default_navigation_timeout(
                profile.page_timeout_ms or self.settings.page_timeout_ms
            )

            if profile.blocked_resource_types:
                blocked = profile.blocked_resource_types

                async def handle_route(route: Any) -> None:
                    if route.request.resource_type in blocked:
                        await route.abort()
                    else:
                        await route.continue_()

                await page.route("**/*", handle_route)

            content_timeout = (
                profile.content_timeout_ms or self.settings.page_timeout_ms
            )
            await page.set_content(
                html,
                wait_until=profile.wait_until,
                timeout=content_timeout,
            )

            export = page.pdf(**profile.pdf_options())
            if profile.export_timeout_ms:
                pdf_bytes = await asyncio.wait_for(
                    export, timeout=profile.export_timeout_ms / 1000
                )
            else:
                pdf_bytes = await export

        except Exception as exc:
            raise PdfRenderError(str(exc) or type(exc).__name__) from exc

        finally:
            try:
                await browser.close()
            except Exception:
                logger.warning(
                    "browser_close_failed",
                    extra={"trace_id": trace_id},
                    exc_info=True,
                )

        logger.info(
            "pdf_rendered",
            extra={"trace_id": trace_id, "bytes": len(pdf_bytes)},
        )
        return bytes(pdf_bytes)

    async def aclose(self) -> None:
        async with self._lock:
            if self._playwright is None:
                return
            try:
                await self._playwright.stop()
            finally:
                self._playwright = None
                logger.info("playwright_driver_stopped")
