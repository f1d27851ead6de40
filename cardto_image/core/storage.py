"""
Image Storage
=============

Persistence of rendered images. The converter depends on the abstract
writer so that file output can be disabled or replaced.
"""

from typing import Any, Union
from pathlib import Path
from abc import ABC, abstractmethod
import asyncio

from cardto_image.config.logging import get_logger
from cardto_image.core.exceptions import FileWriteError

logger = get_logger(__name__)


class BaseFileWriter(ABC):
    """Abstract base class for image writers."""

    @abstractmethod
    async def write_file(self, path: Union[str, Path], data: bytes) -> Path:
        """Write ``data`` to ``path`` and return the written path."""
        pass


class LocalFileWriter(BaseFileWriter):
    """Write images to the local filesystem, creating parent directories."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="local_file_writer")  # structlog.BoundLoggerBase

    async def write_file(self, path: Union[str, Path], data: bytes) -> Path:
        """
        Write image bytes to disk.

        Args:
            path: Destination file path
            data: Encoded image bytes

        Returns:
            The written path

        Raises:
            FileWriteError: If the directory or file cannot be written
        """
        target = Path(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            self.logger.error("Failed to write image", path=str(target), error=str(e))
            raise FileWriteError(f"Failed to write image to {target}: {e}") from e

        self.logger.info("Image written", path=str(target), file_size=len(data))
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
