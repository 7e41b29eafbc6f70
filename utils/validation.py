"""Input validation helpers for image sources and export targets."""
from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import urlparse

IMAGE_MEDIA_PREFIX = "image/"


def _has_url_scheme(path_str: str) -> bool:
    """Return True if *path_str* looks like a URL with a scheme.

    Single-letter schemes such as ``"C"`` are treated as drive letters on
    Windows and therefore ignored.
    """
    parsed = urlparse(path_str)
    return bool(parsed.scheme and len(parsed.scheme) > 1)


def _normalise_exts(allowed_exts: Iterable[str]) -> set[str]:
    return {f".{ext.lower().lstrip('.')}" for ext in allowed_exts}


def is_image_media_type(media_type: Optional[str]) -> bool:
    """Return True when *media_type* declares an image (``image/*``)."""
    if not media_type:
        return False
    return media_type.strip().lower().startswith(IMAGE_MEDIA_PREFIX)


def guess_media_type(name: Union[str, Path]) -> str:
    """Guess a media type from a file name, falling back to octet-stream."""
    guessed, _ = mimetypes.guess_type(str(name), strict=False)
    return guessed or "application/octet-stream"


def validate_image_path(
    path: Union[str, Path], allowed_exts: Optional[Iterable[str]] = None
) -> Path:
    """Validate a user-supplied image *path*.

    The path must point to an existing file and must not include a URL scheme.
    When *allowed_exts* is given the extension must also be one of them.
    Returns the resolved ``Path`` object.
    """
    path_str = str(path)
    if _has_url_scheme(path_str):
        raise ValueError("URLs are not allowed")

    p = Path(path_str).expanduser()
    try:
        p = p.resolve(strict=True)
    except FileNotFoundError as exc:
        raise ValueError(f"File does not exist: {path_str}") from exc

    if not p.is_file():
        raise ValueError(f"Not a file: {path_str}")

    if allowed_exts is not None and p.suffix.lower() not in _normalise_exts(allowed_exts):
        raise ValueError(f"Unsupported file extension: {p.suffix}")

    return p


def validate_output_path(path: Union[str, Path], allowed_exts: Iterable[str]) -> Path:
    """Validate an export target *path*.

    Ensures the directory exists, the extension is allowed and the path does not
    contain a URL scheme.  Returns the resolved ``Path``.
    """
    path_str = str(path)
    if _has_url_scheme(path_str):
        raise ValueError("URLs are not allowed")

    p = Path(path_str).expanduser().resolve()

    if not p.parent.exists():
        raise ValueError(f"Directory does not exist: {p.parent}")

    if p.suffix.lower() not in _normalise_exts(allowed_exts):
        raise ValueError(f"Unsupported file extension: {p.suffix}")

    return p
