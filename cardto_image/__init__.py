"""
Card to Image Renderer
======================

Convert cards into PNG or JPEG images by rendering their generated HTML in a
headless browser.

This package provides:
- Resource inlining into a single self-contained HTML document
- Browser automation with Playwright for screenshot capture
- A conversion pipeline with progress reporting and typed results
- A command line interface
"""

__version__ = "0.1.0"
__author__ = "Card to Image Team"

from cardto_image.core.converter import (  # noqa: E402
    CardToImageConverter,
    convert,
    create_converter,
    get_default_options,
    validate_options,
)
from cardto_image.models.schemas import (  # noqa: E402
    ConversionOptions,
    ConversionResult,
    ConversionStatus,
    ErrorCode,
    ImageFormat,
    ProgressEvent,
    ValidationResult,
)

__all__ = [
    "CardToImageConverter",
    "ConversionOptions",
    "ConversionResult",
    "ConversionStatus",
    "ErrorCode",
    "ImageFormat",
    "ProgressEvent",
    "ValidationResult",
    "convert",
    "create_converter",
    "get_default_options",
    "validate_options",
]
