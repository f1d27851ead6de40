"""
Unit Tests for Image Generator
==============================

Tests for browser lifecycle, viewport configuration, load synchronization,
screenshot options and dimension reporting with Playwright mocked.
"""

from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from cardto_image.core.exceptions import (
    BrowserLaunchError,
    CaptureFailedError,
    ContentMissingError,
    PageLoadTimeoutError,
    RenderEngineUnavailableError,
)
from cardto_image.core.rendering.image_generator import (
    PlaywrightImageRenderer,
    apply_background_color,
    scale_dimension,
)
from cardto_image.models.schemas import ConversionOptions

from tests.utils.helpers import SIMPLE_CARD_HTML

MODULE = "cardto_image.core.rendering.image_generator"


class PlaywrightMocks:
    """Mocked Playwright object graph."""

    def __init__(self, dimensions: Dict[str, Any], screenshot: bytes = b"image-bytes"):
        self.page = AsyncMock()
        self.page.evaluate.return_value = dimensions
        self.page.screenshot.return_value = screenshot

        self.context = AsyncMock()
        self.context.new_page.return_value = self.page

        self.browser = AsyncMock()
        self.browser.new_context.return_value = self.context

        self.chromium = AsyncMock()
        self.chromium.launch.return_value = self.browser

        self.playwright = AsyncMock()
        self.playwright.chromium = self.chromium


@pytest.fixture
def mocks() -> PlaywrightMocks:
    """Create mocked Playwright components."""
    return PlaywrightMocks({"width": 100, "height": 50})


@pytest.fixture
def patched_playwright(mocks):
    """Patch async_playwright to return the mocked object graph."""
    with patch(f"{MODULE}.async_playwright") as mock_async_playwright:
        mock_async_playwright.return_value.start = AsyncMock(return_value=mocks.playwright)
        yield mock_async_playwright


@pytest.fixture
def no_sleep():
    """Patch the settle delay."""
    with patch(f"{MODULE}.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def renderer(test_settings) -> PlaywrightImageRenderer:
    """Create renderer with test settings."""
    return PlaywrightImageRenderer(test_settings)


class TestRender:
    """Test the render protocol."""

    @pytest.mark.asyncio
    async def test_render_png_success(self, renderer, mocks, patched_playwright, no_sleep):
        """Test a PNG render returns bytes and measured dimensions."""
        options = ConversionOptions(format="png", scale=1, wait_time=0)

        result = await renderer.render(SIMPLE_CARD_HTML, options)

        assert result.data == b"image-bytes"
        assert result.width == 100
        assert result.height == 50
        no_sleep.assert_not_called()
        mocks.page.screenshot.assert_called_once_with(
            type="png", full_page=True, omit_background=False
        )

    @pytest.mark.asyncio
    async def test_viewport_defaults(self, renderer, mocks, patched_playwright, no_sleep):
        """Test the default viewport and scale factor."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.browser.new_context.assert_called_once_with(
            viewport={"width": 800, "height": 600}, device_scale_factor=1.0
        )

    @pytest.mark.asyncio
    async def test_viewport_overrides(self, renderer, mocks, patched_playwright, no_sleep):
        """Test width, height and scale overrides."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(width=1200, height=900, scale=2))

        mocks.browser.new_context.assert_called_once_with(
            viewport={"width": 1200, "height": 900}, device_scale_factor=2.0
        )

    @pytest.mark.asyncio
    async def test_network_idle_wait_with_timeout(self, renderer, mocks, patched_playwright, no_sleep):
        """Test content is loaded with a bounded network idle wait."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(wait_time=0))

        _, kwargs = mocks.page.set_content.call_args
        assert kwargs == {"wait_until": "networkidle", "timeout": 30000}

    @pytest.mark.asyncio
    async def test_settle_delay(self, renderer, mocks, patched_playwright, no_sleep):
        """Test the settle delay is applied in seconds after load."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(wait_time=1500))

        no_sleep.assert_awaited_once_with(1.5)

    @pytest.mark.asyncio
    async def test_default_settle_delay(self, renderer, mocks, patched_playwright, no_sleep):
        """Test an unset wait time uses the default delay."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        no_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_scaled_dimensions(self, renderer, patched_playwright, no_sleep):
        """Test reported dimensions are measured CSS pixels times scale."""
        result = await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(scale=2))

        assert (result.width, result.height) == (200, 100)

    @pytest.mark.asyncio
    async def test_fractional_scale_rounds(self, renderer, mocks, patched_playwright, no_sleep):
        """Test fractional scales round to the nearest pixel."""
        mocks.page.evaluate.return_value = {"width": 101, "height": 33}

        result = await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(scale=1.5))

        assert (result.width, result.height) == (152, 50)

    @pytest.mark.asyncio
    async def test_jpeg_screenshot_options(self, renderer, mocks, patched_playwright, no_sleep):
        """Test JPEG capture applies quality."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(format="jpg", quality=85))

        mocks.page.screenshot.assert_called_once_with(type="jpeg", quality=85, full_page=True)

    @pytest.mark.asyncio
    async def test_jpeg_default_quality(self, renderer, mocks, patched_playwright, no_sleep):
        """Test JPEG capture falls back to the default quality."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(format="jpeg"))

        mocks.page.screenshot.assert_called_once_with(type="jpeg", quality=90, full_page=True)

    @pytest.mark.asyncio
    async def test_transparent_png(self, renderer, mocks, patched_playwright, no_sleep):
        """Test transparent PNG omits the background and skips the fallback color."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(transparent=True))

        mocks.page.screenshot.assert_called_once_with(
            type="png", full_page=True, omit_background=True
        )
        loaded_html = mocks.page.set_content.call_args[0][0]
        assert "background-color" not in loaded_html

    @pytest.mark.asyncio
    async def test_background_color_applied(self, renderer, mocks, patched_playwright, no_sleep):
        """Test the fallback background color is injected into the document."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions(background_color="#123456"))

        loaded_html = mocks.page.set_content.call_args[0][0]
        assert "html { background-color: #123456; }" in loaded_html

    @pytest.mark.asyncio
    async def test_browser_closed_on_success(self, renderer, mocks, patched_playwright, no_sleep):
        """Test browser resources are released after rendering."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.context.close.assert_awaited_once()
        mocks.browser.close.assert_awaited_once()
        mocks.playwright.stop.assert_awaited_once()


class TestRenderFailures:
    """Test failure classification and resource release."""

    @pytest.mark.asyncio
    async def test_empty_html_fails_before_launch(self, renderer, patched_playwright):
        """Test missing content fails before any browser is acquired."""
        with pytest.raises(ContentMissingError):
            await renderer.render("   ", ConversionOptions())

        patched_playwright.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_timeout(self, renderer, mocks, patched_playwright, no_sleep):
        """Test network idle timeout is reported as a load timeout."""
        mocks.page.set_content.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded.")

        with pytest.raises(PageLoadTimeoutError, match="network idle"):
            await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.context.close.assert_awaited_once()
        mocks.browser.close.assert_awaited_once()
        mocks.playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_screenshot_failure(self, renderer, mocks, patched_playwright, no_sleep):
        """Test screenshot errors are reported as capture failures."""
        mocks.page.screenshot.side_effect = PlaywrightError("Target closed")

        with pytest.raises(CaptureFailedError, match="Screenshot failed"):
            await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_measure_failure(self, renderer, mocks, patched_playwright, no_sleep):
        """Test measurement errors are reported as capture failures."""
        mocks.page.evaluate.side_effect = PlaywrightError("Execution context was destroyed")

        with pytest.raises(CaptureFailedError, match="measure"):
            await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.page.screenshot.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_browser_executable(self, renderer, mocks, patched_playwright):
        """Test a missing browser binary is reported as engine unavailable."""
        mocks.chromium.launch.side_effect = PlaywrightError(
            "BrowserType.launch: Executable doesn't exist at /ms-playwright/chromium/chrome"
        )

        with pytest.raises(RenderEngineUnavailableError, match="playwright install chromium"):
            await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_browser_launch_failure(self, renderer, mocks, patched_playwright):
        """Test other launch errors are reported as launch failures."""
        mocks.chromium.launch.side_effect = PlaywrightError("Browser closed unexpectedly")

        with pytest.raises(BrowserLaunchError):
            await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_driver_unavailable(self, renderer):
        """Test a Playwright driver that cannot start is reported as engine unavailable."""
        with patch(f"{MODULE}.async_playwright") as mock_async_playwright:
            mock_async_playwright.return_value.start = AsyncMock(side_effect=OSError("driver missing"))

            with pytest.raises(RenderEngineUnavailableError):
                await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())


class TestLaunchConfiguration:
    """Test browser launch settings."""

    @pytest.mark.asyncio
    async def test_chromium_launch_args(self, renderer, mocks, patched_playwright, no_sleep):
        """Test Chromium is launched headless with configured arguments."""
        await renderer.render(SIMPLE_CARD_HTML, ConversionOptions())

        mocks.chromium.launch.assert_called_once_with(
            headless=True, args=renderer.settings.browser_args
        )

    @pytest.mark.asyncio
    async def test_firefox_launch(self, test_settings, mocks, patched_playwright, no_sleep):
        """Test other engines launch without Chromium arguments."""
        test_settings.browser_type = "firefox"
        firefox = AsyncMock()
        firefox.launch.return_value = mocks.browser
        mocks.playwright.firefox = firefox

        await PlaywrightImageRenderer(test_settings).render(SIMPLE_CARD_HTML, ConversionOptions())

        firefox.launch.assert_called_once_with(headless=True)
        mocks.chromium.launch.assert_not_called()


class TestHelpers:
    """Test module helpers."""

    def test_background_inserted_after_head(self):
        """Test the background rule leads the head so document styles win."""
        html = "<html><head><style>html{background:red}</style></head></html>"
        result = apply_background_color(html, "#fff")

        assert result.startswith("<html><head><style type=\"text/css\">html { background-color: #fff; }</style>")
        assert result.index("#fff") < result.index("background:red")

    def test_background_without_head(self):
        """Test insertion after <html> when there is no head."""
        result = apply_background_color("<html><body></body></html>", "white")
        assert result.startswith("<html><style")

    def test_background_after_doctype(self):
        """Test insertion keeps the doctype first."""
        result = apply_background_color("<!DOCTYPE html><p>x</p>", "white")
        assert result.startswith("<!DOCTYPE html><style")

    def test_background_sanitized(self):
        """Test markup and rule delimiters are stripped from the color."""
        result = apply_background_color("<head></head>", "red;}</style><script>")
        assert "<script>" not in result
        assert "background-color: red/stylescript;" in result

    @pytest.mark.parametrize(
        "css,scale,expected",
        [(100, 1, 100), (100, 2, 200), (3, 1.5, 5), (101, 1.5, 152), (333, 0.5, 167)],
    )
    def test_scale_dimension(self, css, scale, expected):
        """Test physical pixel rounding."""
        assert scale_dimension(css, scale) == expected
