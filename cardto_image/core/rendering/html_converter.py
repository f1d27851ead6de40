"""
HTML Converter
==============

Contract of the HTML generation stage that turns a card into a file set
(``index.html`` plus stylesheets and assets), and a passthrough
implementation for sources that are already rendered to HTML.
"""

from typing import Any, Dict, Mapping, Optional, Union
from pathlib import Path
from abc import ABC, abstractmethod
import asyncio

from cardto_image.config.logging import get_logger
from cardto_image.core.exceptions import HTMLConversionError
from cardto_image.core.rendering.inliner import referenced_paths
from cardto_image.models.schemas import (
    ConversionError,
    ErrorCode,
    FileSet,
    HTMLConversionData,
    HTMLConversionOptions,
    HTMLConversionResult,
)

logger = get_logger(__name__)

INDEX_DOCUMENT = "index.html"

TEXT_EXTENSIONS = frozenset({".html", ".htm", ".css", ".js", ".json", ".txt"})

ConversionSource = Union[Mapping[str, Union[str, bytes]], str, Path]


class BaseHTMLConverter(ABC):
    """Abstract base class for HTML generation collaborators."""

    @abstractmethod
    async def convert(
        self, source: Any, options: HTMLConversionOptions
    ) -> HTMLConversionResult:
        """Convert a source document into an HTML file set."""
        pass


class FileSetHTMLConverter(BaseHTMLConverter):
    """
    Passthrough converter for sources that are already HTML.

    Accepts a file set mapping, a directory holding ``index.html`` and its
    assets, or a single HTML file which becomes ``index.html`` alongside the
    local files it references. Unreadable assets are skipped, an unreadable
    entry document fails the conversion. Theme selection is not applied; the
    file set is used as generated.
    """

    def __init__(self) -> None:
        self.logger: Any = logger.bind(converter="file_set")  # structlog.BoundLoggerBase

    async def convert(
        self, source: ConversionSource, options: HTMLConversionOptions
    ) -> HTMLConversionResult:
        """
        Load the file set described by ``source``.

        Args:
            source: File set mapping, directory or HTML file path
            options: HTML conversion options

        Returns:
            HTMLConversionResult with the file set, or a failure result
        """
        try:
            if isinstance(source, Mapping):
                files = dict(source)
            elif isinstance(source, (str, Path)):
                files = await asyncio.to_thread(self._load_path, Path(source), options)
            else:
                raise HTMLConversionError(
                    f"Unsupported source type: {type(source).__name__}"
                )

            self.logger.debug("Loaded file set", file_count=len(files))
            return HTMLConversionResult(
                success=True,
                data=HTMLConversionData(files=files),
                metadata={"theme_id": options.theme_id},
            )

        except (HTMLConversionError, OSError, UnicodeDecodeError) as e:
            self.logger.error("HTML conversion failed", error=str(e))
            return HTMLConversionResult(
                success=False,
                error=ConversionError(
                    code=ErrorCode.HTML_CONVERSION_FAILED.value,
                    message=str(e),
                    cause=e,
                ),
            )

    def _load_path(self, path: Path, options: HTMLConversionOptions) -> FileSet:
        """Read a directory or HTML file into a file set."""
        if path.is_dir():
            return self._read_directory(path, options.include_assets)

        if path.is_file():
            html = path.read_text(encoding="utf-8")
            files: FileSet = {}
            if options.include_assets:
                files.update(self._read_referenced(path.parent, html))
            files[INDEX_DOCUMENT] = html
            return files

        raise HTMLConversionError(f"Source path not found: {path}")

    def _read_directory(self, root: Path, include_assets: bool) -> FileSet:
        """Read every file under ``root`` keyed by its POSIX relative path."""
        files: Dict[str, Union[str, bytes]] = {}
        for file_path in sorted(root.rglob("*")):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(root).as_posix()
            if relative == INDEX_DOCUMENT:
                files[relative] = file_path.read_text(encoding="utf-8")
                continue
            content = self._read_file(file_path, include_assets)
            if content is not None:
                files[relative] = content
        return files

    def _read_referenced(self, root: Path, html: str) -> FileSet:
        """Read the files ``html`` references that live under ``root``."""
        base = root.resolve()
        files: Dict[str, Union[str, bytes]] = {}
        for reference in referenced_paths(html):
            file_path = (base / reference).resolve()
            try:
                relative = file_path.relative_to(base).as_posix()
            except ValueError:
                self.logger.debug("Skipping reference outside source directory", reference=reference)
                continue
            if relative in files or not file_path.is_file():
                continue
            content = self._read_file(file_path, True)
            if content is not None:
                files[relative] = content
        return files

    def _read_file(self, file_path: Path, include_assets: bool) -> Optional[Union[str, bytes]]:
        """Read one file as text or bytes, or None when it is skipped or unreadable."""
        try:
            if file_path.suffix.lower() in TEXT_EXTENSIONS:
                return file_path.read_text(encoding="utf-8")
            if include_assets:
                return file_path.read_bytes()
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning("Skipping unreadable file", path=str(file_path), error=str(e))
        return None


def get_html_converter(name: Optional[str] = None) -> BaseHTMLConverter:
    """Create the HTML converter registered under ``name``."""
    converters = {
        "file_set": FileSetHTMLConverter,
    }
    return converters.get(name or "file_set", FileSetHTMLConverter)()
