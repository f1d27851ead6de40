"""
Conversion Options
==================

Default options, shallow merging and advisory validation of
``ConversionOptions``.
"""

from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from cardto_image.models.schemas import ConversionOptions, ImageFormat, ValidationResult

SUPPORTED_FORMATS = tuple(f.value for f in ImageFormat)

DEFAULT_OPTIONS = ConversionOptions(
    format=ImageFormat.PNG.value,
    quality=90,
    scale=1.0,
    background_color="#ffffff",
    transparent=False,
    wait_time=1000,
)

OptionsInput = Union[ConversionOptions, Mapping[str, Any], None]


def get_default_options() -> ConversionOptions:
    """Return a copy of the default conversion options."""
    return DEFAULT_OPTIONS.model_copy()


def coerce_options(options: OptionsInput) -> ConversionOptions:
    """
    Build ``ConversionOptions`` from a model, a mapping or ``None``.

    Mappings may use snake_case or camelCase keys.

    Raises:
        pydantic.ValidationError: If a value has the wrong type
    """
    if options is None:
        return ConversionOptions()
    if isinstance(options, ConversionOptions):
        return options
    return ConversionOptions.model_validate(dict(options))


def merge_with_defaults(options: Optional[ConversionOptions]) -> ConversionOptions:
    """
    Shallow-merge options over the defaults; unset or None fields keep the default.

    A blank ``output_path`` counts as unset, so the result stays in data mode.
    """
    if options is None:
        return get_default_options()

    overrides = {
        name: getattr(options, name)
        for name in options.model_fields_set
        if getattr(options, name) is not None
    }
    if not (overrides.get("output_path") or "").strip():
        overrides.pop("output_path", None)
    return DEFAULT_OPTIONS.model_copy(update=overrides)


def validate_options(options: OptionsInput) -> ValidationResult:
    """
    Validate conversion options.

    Errors block a conversion, warnings only flag parameters that will be
    ignored. An unset format is treated as the default PNG.

    Args:
        options: Options to validate

    Returns:
        ValidationResult with collected errors and warnings
    """
    if not isinstance(options, ConversionOptions):
        try:
            options = coerce_options(options)
        except ValidationError as e:
            return ValidationResult(
                valid=False,
                errors=[
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                ],
            )

    errors = []
    warnings = []
    effective_format = options.format or DEFAULT_OPTIONS.format

    if options.format is not None and options.format not in SUPPORTED_FORMATS:
        errors.append(
            f"Unsupported image format: {options.format}, "
            f"supported: {', '.join(SUPPORTED_FORMATS)}"
        )

    if options.quality is not None:
        if options.quality < 1 or options.quality > 100:
            errors.append(f"Quality must be between 1 and 100, got: {options.quality}")
        if effective_format == ImageFormat.PNG.value:
            warnings.append("Quality is ignored for PNG output")

    if options.scale is not None and (options.scale <= 0 or options.scale > 4):
        errors.append(f"Scale must be greater than 0 and at most 4, got: {options.scale}")

    if options.width is not None and options.width <= 0:
        errors.append(f"Width must be positive, got: {options.width}")
    if options.height is not None and options.height <= 0:
        errors.append(f"Height must be positive, got: {options.height}")

    if options.wait_time is not None and options.wait_time < 0:
        errors.append(f"Wait time must not be negative, got: {options.wait_time}")

    if options.transparent and effective_format != ImageFormat.PNG.value:
        warnings.append("Transparent background only applies to PNG output")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
