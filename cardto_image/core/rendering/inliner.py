"""
Resource Inliner
================

Rewrite an HTML document so stylesheets and raster images from the
generated file set are embedded, producing a single self-contained document
that the browser can render without file or network access.
"""

from typing import Dict, Iterable, List, Optional
import base64
import posixpath
import re

from cardto_image.models.schemas import FileSet

THEME_STYLESHEET = "theme.css"

MIME_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

_LINK_TAG_RE = re.compile(
    r"<link\b[^>]*?\bhref\s*=\s*([\"'])(?P<ref>[^\"']*)\1[^>]*>",
    re.IGNORECASE,
)
_URL_ATTR_RE = re.compile(
    r"\b(?P<attr>src|href)\s*=\s*([\"'])(?P<ref>[^\"']*)\2",
    re.IGNORECASE,
)
# data:, http:, mailto: and other URLs with a scheme
_URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def inline_resources(html: str, files: FileSet) -> str:
    """
    Embed stylesheets and images referenced by ``html``.

    ``theme.css`` replaces the first ``<link>`` that references it, other
    text ``.css`` entries replace every ``<link>`` that references them, and
    byte entries with an image extension replace matching ``src``/``href``
    values with base64 data URIs. References that match nothing are left
    untouched.

    Args:
        html: HTML document text
        files: Generated file set

    Returns:
        HTML with resources embedded
    """
    result = html

    theme_css = files.get(THEME_STYLESHEET)
    if isinstance(theme_css, str):
        link = _find_theme_link(result)
        if link is not None:
            result = result[: link.start()] + _style_tag(theme_css) + result[link.end():]

    stylesheets = {
        path: content
        for path, content in files.items()
        if isinstance(content, str) and path.endswith(".css") and path != THEME_STYLESHEET
    }
    if stylesheets:
        result = _LINK_TAG_RE.sub(
            lambda m: _replace_link(m, stylesheets),
            result,
        )

    images = {
        path: content
        for path, content in files.items()
        if isinstance(content, bytes) and is_image_path(path)
    }
    if images:
        result = _URL_ATTR_RE.sub(
            lambda m: _replace_url(m, images),
            result,
        )

    return result


def is_image_path(path: str) -> bool:
    """Whether ``path`` has a known raster or vector image extension."""
    return _extension(path) in MIME_TYPES


def get_mime_type(path: str) -> str:
    """Map a file extension to its MIME type."""
    return MIME_TYPES.get(_extension(path), DEFAULT_MIME_TYPE)


def to_data_uri(path: str, content: bytes) -> str:
    """Encode ``content`` as a base64 data URI typed by the extension of ``path``."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{get_mime_type(path)};base64,{encoded}"


def referenced_paths(html: str) -> List[str]:
    """List local relative paths referenced by ``src`` and ``href`` attributes."""
    paths: List[str] = []
    for match in _URL_ATTR_RE.finditer(html):
        reference = match.group("ref")
        if _URL_SCHEME_RE.match(reference) or reference.startswith("//"):
            continue
        target = _normalize_reference(reference)
        if target and target not in paths:
            paths.append(target)
    return paths


def resolve_reference(reference: str, paths: Iterable[str]) -> Optional[str]:
    """
    Find the file set entry a ``src``/``href`` value points to.

    An exact relative path match wins; otherwise the first entry with the
    same basename is used. Names are compared literally.
    """
    if reference.lower().startswith("data:"):
        return None

    target = _normalize_reference(reference)
    if not target:
        return None

    basename = posixpath.basename(target)
    fallback = None
    for path in paths:
        if path == target:
            return path
        if fallback is None and posixpath.basename(path) == basename:
            fallback = path
    return fallback


def _replace_link(match: "re.Match[str]", stylesheets: Dict[str, str]) -> str:
    path = resolve_reference(match.group("ref"), stylesheets)
    if path is None:
        return match.group(0)
    return _style_tag(stylesheets[path])


def _replace_url(match: "re.Match[str]", images: Dict[str, bytes]) -> str:
    path = resolve_reference(match.group("ref"), images)
    if path is None:
        return match.group(0)
    return f'{match.group("attr")}="{to_data_uri(path, images[path])}"'


def _find_theme_link(html: str) -> Optional["re.Match[str]"]:
    for match in _LINK_TAG_RE.finditer(html):
        if posixpath.basename(_strip_suffixes(match.group("ref"))) == THEME_STYLESHEET:
            return match
    return None


def _style_tag(css: str) -> str:
    return f'<style type="text/css">\n{css}\n</style>'


def _strip_suffixes(reference: str) -> str:
    return reference.split("#", 1)[0].split("?", 1)[0]


def _normalize_reference(reference: str) -> str:
    target = _strip_suffixes(reference)
    while target.startswith("./"):
        target = target[2:]
    return target.lstrip("/")


def _extension(path: str) -> str:
    _, ext = posixpath.splitext(path)
    return ext[1:].lower()
