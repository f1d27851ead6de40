"""
Test Configuration
==================

Pytest configuration with fixtures for settings, file sets, mocked
collaborators and progress recording.
"""

from unittest.mock import AsyncMock

import pytest

from cardto_image.config.settings import Settings
from cardto_image.core.converter import CardToImageConverter
from cardto_image.core.rendering.html_converter import FileSetHTMLConverter
from cardto_image.core.rendering.image_generator import BaseImageRenderer
from cardto_image.core.storage import LocalFileWriter
from cardto_image.models.schemas import FileSet, RenderResult

from tests.utils.helpers import PIXEL_PNG, SIMPLE_CARD_HTML, ProgressRecorder


@pytest.fixture
def test_settings() -> Settings:
    """Test settings fixture."""
    return Settings(environment="testing", log_level="DEBUG", page_load_timeout=30000)


@pytest.fixture
def simple_file_set() -> FileSet:
    """Minimal generated file set."""
    return {"index.html": SIMPLE_CARD_HTML}


@pytest.fixture
def themed_file_set() -> FileSet:
    """File set with theme, extra stylesheet and image assets."""
    return {
        "index.html": (
            "<!DOCTYPE html><html><head>"
            '<link rel="stylesheet" href="theme.css">'
            '<link rel="stylesheet" href="styles/card.css">'
            "</head><body>"
            '<img src="assets/logo.png" alt="logo">'
            "</body></html>"
        ),
        "theme.css": "body { color: #333; }",
        "styles/card.css": ".card { padding: 8px; }",
        "assets/logo.png": PIXEL_PNG,
    }


@pytest.fixture
def progress_recorder() -> ProgressRecorder:
    """Progress observer that records events."""
    return ProgressRecorder()


@pytest.fixture
def mock_renderer() -> AsyncMock:
    """Renderer returning a fixed PNG capture."""
    renderer = AsyncMock(spec=BaseImageRenderer)
    renderer.render.return_value = RenderResult(data=PIXEL_PNG, width=100, height=50)
    return renderer


@pytest.fixture
def converter(mock_renderer: AsyncMock, test_settings: Settings) -> CardToImageConverter:
    """Converter with a mocked renderer and real file set and file output collaborators."""
    return CardToImageConverter(
        html_converter=FileSetHTMLConverter(),
        renderer=mock_renderer,
        file_writer=LocalFileWriter(),
        settings=test_settings,
    )
