"""
Card to Image Converter
=======================

Conversion pipeline orchestration: option merging and validation, HTML
generation, resource inlining, browser rendering and optional file output,
with progress reporting at fixed checkpoints.
"""

from typing import Any, Dict, Optional
import time
import uuid

from pydantic import ValidationError

from cardto_image.config.logging import get_logger
from cardto_image.config.settings import Settings, get_settings
from cardto_image.core.exceptions import (
    ContentMissingError,
    FileWriteError,
    ImageConversionError,
    InvalidOptionsError,
)
from cardto_image.core.options import (
    OptionsInput,
    coerce_options,
    get_default_options as _get_default_options,
    merge_with_defaults,
    validate_options as _validate_options,
)
from cardto_image.core.rendering.html_converter import (
    INDEX_DOCUMENT,
    BaseHTMLConverter,
    get_html_converter,
)
from cardto_image.core.rendering.image_generator import BaseImageRenderer, PlaywrightImageRenderer
from cardto_image.core.rendering.inliner import inline_resources
from cardto_image.core.storage import BaseFileWriter, LocalFileWriter
from cardto_image.models.schemas import (
    ConversionError,
    ConversionOptions,
    ConversionResult,
    ConversionStatus,
    ErrorCode,
    FileSet,
    HTMLConversionOptions,
    HTMLConversionResult,
    ImageFormat,
    ProgressCallback,
    ProgressEvent,
    ValidationResult,
)

logger = get_logger(__name__)

PLUGIN_METADATA: Dict[str, Any] = {
    "id": "cardto-image-plugin",
    "name": "Card to Image",
    "version": "0.1.0",
    "source_types": [".card", "card"],
    "target_type": "image",
    "description": "Convert card files to PNG or JPG images with high-DPI and transparent output",
}


class ProgressReporter:
    """Report progress checkpoints for a single task, never moving backwards."""

    def __init__(self, task_id: str, callback: Optional[ProgressCallback] = None):
        self.task_id = task_id
        self.callback = callback
        self.percent = 0

    def report(self, status: ConversionStatus, percent: int, step: Optional[str] = None) -> None:
        self.percent = max(self.percent, percent)
        if self.callback is None:
            return
        self.callback(
            ProgressEvent(
                task_id=self.task_id,
                status=status,
                percent=self.percent,
                current_step=step,
            )
        )

    def fail(self, step: Optional[str] = None) -> None:
        self.report(ConversionStatus.FAILED, self.percent, step)


class CardToImageConverter:
    """
    Convert cards to PNG or JPEG images.

    The card is first converted to an HTML file set by the HTML converter,
    the file set is inlined into one document, and the document is rendered
    and captured by the image renderer. Every call owns its own browser.
    """

    id = PLUGIN_METADATA["id"]
    name = PLUGIN_METADATA["name"]
    version = PLUGIN_METADATA["version"]
    source_types = PLUGIN_METADATA["source_types"]
    target_type = PLUGIN_METADATA["target_type"]
    description = PLUGIN_METADATA["description"]

    def __init__(
        self,
        html_converter: Optional[BaseHTMLConverter] = None,
        renderer: Optional[BaseImageRenderer] = None,
        file_writer: Optional[BaseFileWriter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="converter")  # structlog.BoundLoggerBase
        self.html_converter = html_converter or get_html_converter()
        self.renderer = renderer or PlaywrightImageRenderer(self.settings)

        if file_writer is None and self.settings.file_output_enabled:
            file_writer = LocalFileWriter()
        self.file_writer = file_writer

    async def convert(self, source: Any, options: OptionsInput = None) -> ConversionResult:
        """
        Convert a card to an image.

        Args:
            source: Card source understood by the HTML converter
            options: Conversion options, as a model or a mapping

        Returns:
            ConversionResult holding the image bytes, or the output path when
            ``output_path`` is set. Failures are returned, never raised.
        """
        task_id = str(uuid.uuid4())
        start_time = time.perf_counter()
        log = self.logger.bind(task_id=task_id)

        try:
            user_options = coerce_options(options)
        except ValidationError as e:
            log.warning("Invalid conversion options", error=str(e))
            error = InvalidOptionsError(f"Invalid options: {e}")
            return self._error_result(task_id, error.code, str(error), start_time, e)

        merged = merge_with_defaults(user_options)
        progress = ProgressReporter(task_id, merged.on_progress)

        validation = _validate_options(user_options)
        if not validation.valid:
            log.warning("Option validation failed", errors=validation.errors)
            progress.fail("Option validation failed")
            error = InvalidOptionsError("; ".join(validation.errors))
            return self._error_result(task_id, error.code, str(error), start_time, error)
        for warning in validation.warnings:
            log.info("Option ignored", warning=warning)

        try:
            log.info("Starting conversion", format=merged.format, scale=merged.scale)

            # Stage 1: HTML generation
            progress.report(ConversionStatus.CONVERTING_HTML, 0, "Generating HTML from card")
            html_result = await self._generate_html(source, merged)
            if not html_result.success or html_result.data is None:
                error = html_result.error or ConversionError(
                    code=ErrorCode.HTML_CONVERSION_FAILED.value,
                    message="HTML conversion returned no data",
                )
                log.error("HTML conversion failed", code=error.code, error=error.message)
                progress.fail("HTML conversion failed")
                return ConversionResult(
                    success=False,
                    task_id=task_id,
                    error=error,
                    duration=self._elapsed_ms(start_time),
                )

            progress.report(ConversionStatus.RENDERING, 30, "HTML generated, launching browser")
            files = html_result.data.files
            html = inline_resources(self._index_document(files), files)

            # Stage 2: render and capture
            progress.report(ConversionStatus.RENDERING, 40, "Rendering page")
            rendered = await self.renderer.render(html, merged)

            progress.report(ConversionStatus.CAPTURING, 80, "Encoding image")

            # Stage 3: output
            if merged.output_path:
                await self._write_output(merged.output_path, rendered.data)

            result = ConversionResult(
                success=True,
                task_id=task_id,
                format=ImageFormat(merged.format),
                width=rendered.width,
                height=rendered.height,
                data=None if merged.output_path else rendered.data,
                output_path=merged.output_path,
                duration=self._elapsed_ms(start_time),
            )
            progress.report(
                ConversionStatus.COMPLETED,
                100,
                "Image saved to file" if merged.output_path else "Conversion completed",
            )
            log.info(
                "Conversion completed",
                width=result.width,
                height=result.height,
                duration_ms=result.duration,
            )
            return result

        except ImageConversionError as e:
            log.error("Conversion failed", code=e.code.value, error=str(e))
            progress.fail(str(e))
            return self._error_result(task_id, e.code, str(e), start_time, e)

        except Exception as e:
            log.exception("Unexpected conversion error", error=str(e))
            progress.fail("Unexpected error during conversion")
            return self._error_result(
                task_id,
                ErrorCode.SCREENSHOT_FAILED,
                str(e) or "Unknown error while rendering image",
                start_time,
                e,
            )

    def get_default_options(self) -> ConversionOptions:
        """Get a copy of the default conversion options."""
        return _get_default_options()

    def validate_options(self, options: OptionsInput) -> ValidationResult:
        """Validate conversion options."""
        return _validate_options(options)

    async def _generate_html(self, source: Any, options: ConversionOptions) -> HTMLConversionResult:
        """Run the HTML converter, turning raised errors into a failed result."""
        html_options = HTMLConversionOptions(theme_id=options.theme_id, include_assets=True)
        try:
            return await self.html_converter.convert(source, html_options)
        except Exception as e:
            return HTMLConversionResult(
                success=False,
                error=ConversionError(
                    code=ErrorCode.HTML_CONVERSION_FAILED.value,
                    message=f"HTML conversion failed: {e}",
                    cause=e,
                ),
            )

    @staticmethod
    def _index_document(files: FileSet) -> str:
        """Return the entry document, which must be text."""
        index = files.get(INDEX_DOCUMENT)
        if not isinstance(index, str):
            raise ContentMissingError(
                f"{INDEX_DOCUMENT} not found in generated files, HTML conversion may have failed"
            )
        return index

    async def _write_output(self, output_path: str, data: bytes) -> None:
        """Persist the image through the configured file writer."""
        if self.file_writer is None:
            raise FileWriteError(
                "File output is not available in this environment, use the returned data instead"
            )
        try:
            await self.file_writer.write_file(output_path, data)
        except FileWriteError:
            raise
        except Exception as e:
            raise FileWriteError(f"Failed to write image to {output_path}: {e}") from e

    def _error_result(
        self,
        task_id: str,
        code: ErrorCode,
        message: str,
        start_time: float,
        cause: Optional[BaseException] = None,
    ) -> ConversionResult:
        """Create a failed conversion result."""
        return ConversionResult(
            success=False,
            task_id=task_id,
            error=ConversionError(code=code.value, message=message, cause=cause),
            duration=self._elapsed_ms(start_time),
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)


def create_converter(**kwargs: Any) -> CardToImageConverter:
    """Create a converter instance; keyword arguments are passed to the constructor."""
    return CardToImageConverter(**kwargs)


# Global converter instance - created on first use
_default_converter: Optional[CardToImageConverter] = None


def get_converter() -> CardToImageConverter:
    """Get the shared default converter."""
    global _default_converter
    if _default_converter is None:
        _default_converter = create_converter()
    return _default_converter


async def convert(source: Any, options: OptionsInput = None) -> ConversionResult:
    """Convert a card to an image with the default converter."""
    return await get_converter().convert(source, options)


def get_default_options() -> ConversionOptions:
    """Get a copy of the default conversion options."""
    return _get_default_options()


def validate_options(options: OptionsInput) -> ValidationResult:
    """Validate conversion options."""
    return _validate_options(options)
