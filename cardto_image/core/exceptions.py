"""
Conversion Exceptions
=====================

Exception hierarchy raised inside the conversion pipeline. Each exception
carries the error code reported in a failed ``ConversionResult``.
"""

from cardto_image.models.schemas import ErrorCode


class ImageConversionError(Exception):
    """Base exception for all card to image conversion errors."""

    code: ErrorCode = ErrorCode.SCREENSHOT_FAILED


class InvalidOptionsError(ImageConversionError):
    """Conversion options failed validation."""

    code = ErrorCode.INVALID_FORMAT


class HTMLConversionError(ImageConversionError):
    """The HTML generation stage failed or returned no files."""

    code = ErrorCode.HTML_CONVERSION_FAILED


class ContentMissingError(ImageConversionError):
    """No usable ``index.html`` document to render."""

    code = ErrorCode.CONTENT_MISSING


class RenderEngineUnavailableError(ImageConversionError):
    """The browser engine is not installed or cannot be loaded."""

    code = ErrorCode.RENDER_ENGINE_UNAVAILABLE


class BrowserLaunchError(ImageConversionError):
    """The browser is installed but failed to start."""

    code = ErrorCode.BROWSER_LAUNCH_FAILED


class PageLoadTimeoutError(ImageConversionError):
    """The page did not reach network idle within the load timeout."""

    code = ErrorCode.PAGE_LOAD_TIMEOUT


class CaptureFailedError(ImageConversionError):
    """Measuring or capturing the rendered page failed."""

    code = ErrorCode.SCREENSHOT_FAILED


class FileWriteError(ImageConversionError):
    """Persisting the image failed or file output is unavailable."""

    code = ErrorCode.FILE_WRITE_FAILED
