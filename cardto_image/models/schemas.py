"""
Pydantic Models and Schemas
===========================

Core data models for conversion options, progress reporting, results and
the HTML generation collaborator contract.
"""

from typing import Optional, List, Dict, Any, Union, Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Type aliases
FileSet = Dict[str, Union[str, bytes]]
"""Relative path to file content, text for markup and stylesheets, bytes for assets."""


# Enums
class ImageFormat(str, Enum):
    """Supported output image formats."""
    PNG = "png"
    JPG = "jpg"
    JPEG = "jpeg"


class ConversionStatus(str, Enum):
    """Conversion pipeline status."""
    CONVERTING_HTML = "converting-html"
    RENDERING = "rendering"
    CAPTURING = "capturing"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorCode(str, Enum):
    """Error codes reported in failed conversion results."""
    HTML_CONVERSION_FAILED = "CONV-HTML-002"
    RENDER_ENGINE_UNAVAILABLE = "CONV-IMG-001"
    BROWSER_LAUNCH_FAILED = "CONV-IMG-002"
    PAGE_LOAD_TIMEOUT = "CONV-IMG-003"
    SCREENSHOT_FAILED = "CONV-IMG-004"
    FILE_WRITE_FAILED = "CONV-IMG-005"
    INVALID_FORMAT = "CONV-IMG-006"
    CONTENT_MISSING = "CONV-IMG-009"


# Progress Models
class ProgressEvent(BaseModel):
    """Progress checkpoint reported to the observer."""
    task_id: str = Field(..., alias="taskId", description="Task identifier")
    status: ConversionStatus = Field(..., description="Current status")
    percent: int = Field(..., ge=0, le=100, description="Progress percentage")
    current_step: Optional[str] = Field(None, alias="currentStep", description="Step description")

    model_config = ConfigDict(populate_by_name=True)


ProgressCallback = Callable[[ProgressEvent], None]


# Option Models
class ConversionOptions(BaseModel):
    """
    Options for converting a card to an image.

    Every field is optional; unset fields fall back to the defaults returned
    by ``get_default_options``. Values are deliberately not range-checked here
    so that ``validate_options`` can report them.
    """
    format: Optional[str] = Field(None, description="Output format: png, jpg or jpeg")
    quality: Optional[int] = Field(None, description="JPEG quality (1-100)")
    scale: Optional[float] = Field(None, description="Device pixel ratio")
    width: Optional[int] = Field(None, description="Viewport width override")
    height: Optional[int] = Field(None, description="Viewport height override")
    background_color: Optional[str] = Field(
        None, alias="backgroundColor", description="CSS background color"
    )
    transparent: Optional[bool] = Field(None, description="Transparent background (PNG only)")
    wait_time: Optional[int] = Field(
        None, alias="waitTime", description="Settle delay after page load in milliseconds"
    )
    output_path: Optional[str] = Field(
        None, alias="outputPath", description="Write the image to this path"
    )
    theme_id: Optional[str] = Field(
        None, alias="themeId", description="Theme forwarded to the HTML generator"
    )
    on_progress: Optional[ProgressCallback] = Field(
        None, alias="onProgress", description="Progress observer", exclude=True
    )

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_jpeg(self) -> bool:
        """Whether the output is JPEG encoded."""
        return self.format in (ImageFormat.JPG.value, ImageFormat.JPEG.value)


class ValidationResult(BaseModel):
    """Result of option validation."""
    valid: bool = Field(..., description="Whether the options can be used")
    errors: List[str] = Field(default_factory=list, description="Blocking errors")
    warnings: List[str] = Field(default_factory=list, description="Non-blocking warnings")


# Result Models
class ConversionError(BaseModel):
    """Error details of a failed conversion."""
    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    cause: Optional[BaseException] = Field(
        None, description="Underlying exception", exclude=True
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ConversionResult(BaseModel):
    """Outcome of a single conversion, successful or not."""
    success: bool = Field(..., description="Whether conversion succeeded")
    task_id: str = Field(..., alias="taskId", description="Task identifier")
    format: Optional[ImageFormat] = Field(None, description="Output image format")
    width: Optional[int] = Field(None, description="Image width in pixels")
    height: Optional[int] = Field(None, description="Image height in pixels")
    data: Optional[bytes] = Field(None, description="Image bytes", exclude=True)
    output_path: Optional[str] = Field(None, alias="outputPath", description="Written file path")
    error: Optional[ConversionError] = Field(None, description="Error if failed")
    duration: int = Field(..., ge=0, description="Elapsed time in milliseconds")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_outcome(self) -> "ConversionResult":
        """Successful results carry exactly one of data or output path."""
        if self.success:
            if (self.data is None) == (self.output_path is None):
                raise ValueError("Successful result requires exactly one of data or output_path")
        elif self.error is None:
            raise ValueError("Failed result requires an error")
        return self


class RenderResult(BaseModel):
    """Raw capture produced by an image renderer."""
    data: bytes = Field(..., description="Encoded image bytes", exclude=True)
    width: int = Field(..., ge=0, description="Output width in physical pixels")
    height: int = Field(..., ge=0, description="Output height in physical pixels")


# HTML Generation Collaborator Models
class HTMLConversionOptions(BaseModel):
    """Options passed to the HTML generation collaborator."""
    theme_id: Optional[str] = Field(None, alias="themeId", description="Theme identifier")
    include_assets: bool = Field(True, alias="includeAssets", description="Emit asset files")

    model_config = ConfigDict(populate_by_name=True)


class HTMLConversionData(BaseModel):
    """Generated HTML file set."""
    files: FileSet = Field(..., description="Relative path to file content")


class HTMLConversionResult(BaseModel):
    """Result of the HTML generation collaborator."""
    success: bool = Field(..., description="Whether HTML generation succeeded")
    data: Optional[HTMLConversionData] = Field(None, description="Generated files")
    error: Optional[ConversionError] = Field(None, description="Error if failed")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Generation metadata")
