"""
Test Helpers
============

Sample assets and helper classes for testing conversions.
"""

from typing import List
import base64

from cardto_image.models.schemas import ProgressEvent

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

# 1x1 RGBA PNG
PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

SIMPLE_CARD_HTML = '<html><body style="width:100px;height:50px"></body></html>'


class ProgressRecorder:
    """Collect progress events emitted during a conversion."""

    def __init__(self) -> None:
        self.events: List[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def statuses(self) -> List[str]:
        return [event.status.value for event in self.events]

    @property
    def percents(self) -> List[int]:
        return [event.percent for event in self.events]
