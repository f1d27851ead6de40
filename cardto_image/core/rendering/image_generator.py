"""
Image Generator
===============

Playwright-based PNG/JPEG screenshot generation from self-contained HTML.
Each render launches its own browser, configures the viewport and device
scale factor, waits for the page to settle, measures the rendered content
and captures the full page.
"""

from typing import Optional, Dict, Any, AsyncGenerator
import asyncio
import math
import re
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from cardto_image.config.logging import get_logger
from cardto_image.config.settings import Settings, get_settings
from cardto_image.core.exceptions import (
    BrowserLaunchError,
    CaptureFailedError,
    ContentMissingError,
    PageLoadTimeoutError,
    RenderEngineUnavailableError,
)
from cardto_image.core.options import DEFAULT_OPTIONS
from cardto_image.models.schemas import ConversionOptions, RenderResult

logger = get_logger(__name__)

# Largest extent of the document across body and root element, in CSS pixels
MEASURE_CONTENT_SCRIPT = """() => {
    const body = document.body;
    const html = document.documentElement;
    return {
        width: Math.max(
            body ? body.scrollWidth : 0,
            body ? body.offsetWidth : 0,
            html.clientWidth,
            html.scrollWidth,
            html.offsetWidth
        ),
        height: Math.max(
            body ? body.scrollHeight : 0,
            body ? body.offsetHeight : 0,
            html.clientHeight,
            html.scrollHeight,
            html.offsetHeight
        ),
    };
}"""

MISSING_ENGINE_MARKERS = (
    "Executable doesn't exist",
    "playwright install",
    "Host system is missing dependencies",
)

_HEAD_OPEN_RE = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html\b[^>]*>", re.IGNORECASE)
_DOCTYPE_RE = re.compile(r"^\s*<!doctype\b[^>]*>", re.IGNORECASE)
_UNSAFE_CSS_CHARS_RE = re.compile(r"[<>{};]")


class BaseImageRenderer(ABC):
    """Abstract base class for HTML to image renderers."""

    @abstractmethod
    async def render(self, html: str, options: ConversionOptions) -> RenderResult:
        """Render self-contained HTML to encoded image bytes."""
        pass


class PlaywrightImageRenderer(BaseImageRenderer):
    """Playwright-based image renderer implementation."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(generator="playwright")  # structlog.BoundLoggerBase

    @asynccontextmanager
    async def browser_session(self) -> AsyncGenerator[Browser, None]:
        """
        Launch a dedicated browser and close it on every exit path.

        Raises:
            RenderEngineUnavailableError: If Playwright or the browser binary is missing
            BrowserLaunchError: If the browser fails to start
        """
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            self.logger.error("Failed to start Playwright", error=str(e))
            raise RenderEngineUnavailableError(f"Playwright driver unavailable: {e}") from e

        try:
            browser = await self._launch_browser(playwright)
            try:
                yield browser
            finally:
                await browser.close()
                self.logger.debug("Browser closed")
        finally:
            await playwright.stop()

    async def _launch_browser(self, playwright: Any) -> Browser:
        """Launch the configured browser engine."""
        browser_type = getattr(playwright, self.settings.browser_type)
        launch_options: Dict[str, Any] = {"headless": self.settings.playwright_headless}
        if self.settings.browser_type == "chromium":
            launch_options["args"] = self.settings.browser_args

        try:
            browser = await browser_type.launch(**launch_options)
        except PlaywrightError as e:
            message = str(e)
            if any(marker in message for marker in MISSING_ENGINE_MARKERS):
                self.logger.error("Browser engine not installed", error=message)
                raise RenderEngineUnavailableError(
                    f"{self.settings.browser_type} is not installed. "
                    f"Run: playwright install {self.settings.browser_type}"
                ) from e
            self.logger.error("Browser launch failed", error=message)
            raise BrowserLaunchError(f"Browser launch failed: {message}") from e

        self.logger.debug("Browser launched", browser_type=self.settings.browser_type)
        return browser

    async def render(self, html: str, options: ConversionOptions) -> RenderResult:
        """
        Render HTML to an image.

        Args:
            html: Self-contained HTML document
            options: Merged conversion options

        Returns:
            RenderResult with image bytes and output dimensions in physical pixels

        Raises:
            ContentMissingError: If there is no HTML to render
            RenderEngineUnavailableError: If the browser engine is missing
            BrowserLaunchError: If the browser fails to start
            PageLoadTimeoutError: If the page does not reach network idle in time
            CaptureFailedError: If measuring or capturing the page fails
        """
        if not html or not html.strip():
            raise ContentMissingError("No HTML content to render")

        scale = options.scale or DEFAULT_OPTIONS.scale
        viewport = {
            "width": options.width or self.settings.default_width,
            "height": options.height or self.settings.default_height,
        }
        wait_time = options.wait_time if options.wait_time is not None else DEFAULT_OPTIONS.wait_time

        self.logger.info(
            "Rendering HTML to image",
            html_length=len(html),
            viewport=viewport,
            scale=scale,
            format=options.format,
        )

        async with self.browser_session() as browser:
            context = await self._create_browser_context(browser, viewport, scale)
            try:
                page = await context.new_page()
                await self._load_content(page, self._prepare_html(html, options))

                if wait_time > 0:
                    await asyncio.sleep(wait_time / 1000)

                dimensions = await self._measure_content(page)
                screenshot_bytes = await self._capture(page, options)
            finally:
                await context.close()

        result = RenderResult(
            data=screenshot_bytes,
            width=scale_dimension(dimensions["width"], scale),
            height=scale_dimension(dimensions["height"], scale),
        )

        self.logger.info(
            "Render completed",
            width=result.width,
            height=result.height,
            file_size=len(screenshot_bytes),
        )
        return result

    async def _create_browser_context(
        self, browser: Browser, viewport: Dict[str, int], scale: float
    ) -> BrowserContext:
        """Create browser context with viewport and device scale factor."""
        try:
            return await browser.new_context(viewport=viewport, device_scale_factor=scale)  # type: ignore[arg-type]
        except PlaywrightError as e:
            raise BrowserLaunchError(f"Failed to create browser context: {e}") from e

    async def _load_content(self, page: Page, html: str) -> None:
        """Load HTML and wait until the network is idle."""
        try:
            await page.set_content(
                html, wait_until="networkidle", timeout=self.settings.page_load_timeout
            )
        except PlaywrightTimeoutError as e:
            self.logger.error("Page load timed out", timeout=self.settings.page_load_timeout)
            raise PageLoadTimeoutError(
                f"Page did not reach network idle within {self.settings.page_load_timeout} ms"
            ) from e
        except PlaywrightError as e:
            raise CaptureFailedError(f"Failed to load page content: {e}") from e

    async def _measure_content(self, page: Page) -> Dict[str, float]:
        """Measure the rendered document extent in CSS pixels."""
        try:
            dimensions = await page.evaluate(MEASURE_CONTENT_SCRIPT)
        except PlaywrightError as e:
            raise CaptureFailedError(f"Failed to measure page content: {e}") from e

        self.logger.debug("Measured content", **dimensions)
        return dimensions

    async def _capture(self, page: Page, options: ConversionOptions) -> bytes:
        """Capture a full page screenshot."""
        try:
            return await page.screenshot(**self._screenshot_options(options))
        except PlaywrightError as e:
            self.logger.error("Screenshot failed", error=str(e))
            raise CaptureFailedError(f"Screenshot failed: {e}") from e

    def _screenshot_options(self, options: ConversionOptions) -> Dict[str, Any]:
        """Build screenshot arguments for the requested format."""
        if options.is_jpeg:
            quality = options.quality if options.quality is not None else DEFAULT_OPTIONS.quality
            return {"type": "jpeg", "quality": quality, "full_page": True}

        return {
            "type": "png",
            "full_page": True,
            "omit_background": bool(options.transparent),
        }

    def _prepare_html(self, html: str, options: ConversionOptions) -> str:
        """Apply the fallback page background unless a transparent PNG is requested."""
        if options.transparent and not options.is_jpeg:
            return html

        color = options.background_color or DEFAULT_OPTIONS.background_color
        return apply_background_color(html, color)


def apply_background_color(html: str, color: str) -> str:
    """
    Insert a root background rule at the start of the document head.

    The rule comes before any document styles so the card's own background
    declarations still win.
    """
    color = _UNSAFE_CSS_CHARS_RE.sub("", color).strip()
    if not color:
        return html

    style = f'<style type="text/css">html {{ background-color: {color}; }}</style>'

    head = _HEAD_OPEN_RE.search(html)
    if head:
        return html[: head.end()] + style + html[head.end():]

    root = _HTML_OPEN_RE.search(html)
    if root:
        return html[: root.end()] + style + html[root.end():]

    doctype = _DOCTYPE_RE.match(html)
    if doctype:
        return html[: doctype.end()] + style + html[doctype.end():]

    return style + html


def scale_dimension(css_pixels: float, scale: float) -> int:
    """Convert a CSS pixel extent to physical pixels, rounding half up."""
    return int(math.floor(css_pixels * scale + 0.5))
