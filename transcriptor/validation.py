from __future__ import annotations

"""
Input file checks run before anything reaches a backend or the upload path.

Validators return a ``ValidationResult`` for any user-correctable problem and only
raise for malformed calls (missing attributes, negative limits).
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

ALLOWED_EXTENSIONS = (".mp3", ".wav", ".m4a", ".webm", ".ogg", ".flac", ".aac", ".mp4")
MAX_FILENAME_LENGTH = 255

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")


class FileValidationError(ValueError):
    """Raised by callers that turn a failed ValidationResult into an exception."""


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None

    def raise_if_invalid(self) -> None:
        if not self.is_valid:
            raise FileValidationError(self.error or "Invalid file")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"isValid": self.is_valid}
        if self.error:
            payload["error"] = self.error
        return payload


_VALID = ValidationResult(is_valid=True)


def _size_error(max_size: int) -> str:
    return f"File size exceeds maximum limit of {round(max_size / (1024 * 1024))}MB"


def _require(file: Any, *attributes: str) -> None:
    missing = [name for name in attributes if not hasattr(file, name)]
    if missing:
        raise TypeError(f"file-like object is missing attribute(s): {', '.join(missing)}")


def _check_max_size(max_size: int) -> None:
    if max_size < 0:
        raise ValueError("max_size must be non-negative")


def validate_audio_file(file: Any, *, max_size: int, allowed_types: Iterable[str]) -> ValidationResult:
    """
    Check size, MIME type, extension and filename characters, in that order.

    ``file`` only needs ``size``, ``content_type`` and ``filename`` attributes. The
    first failing check determines the returned error.
    """
    _require(file, "size", "content_type", "filename")
    _check_max_size(max_size)
    allowed = [entry.lower() for entry in allowed_types]

    if file.size > max_size:
        return ValidationResult(False, _size_error(max_size))

    file_type = (file.content_type or "").lower()
    type_ok = any(file_type == entry or file_type.startswith(entry.split("/")[0] + "/") for entry in allowed)
    if not type_ok:
        return ValidationResult(
            False,
            f"File type {file_type} is not supported. Supported types: {', '.join(allowed)}",
        )

    filename = file.filename or ""
    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        return ValidationResult(
            False,
            f"File extension not supported. Supported extensions: {', '.join(ALLOWED_EXTENSIONS)}",
        )

    if _INVALID_CHARS.search(filename):
        return ValidationResult(False, "Filename contains invalid characters")

    return _VALID


def sanitize_filename(filename: str) -> str:
    """Replace forbidden characters and whitespace with ``_`` and cap the length at 255."""
    sanitized = _INVALID_CHARS.sub("_", filename or "")
    sanitized = _WHITESPACE.sub("_", sanitized)
    sanitized = _UNDERSCORES.sub("_", sanitized).strip("_")

    if not sanitized:
        sanitized = "untitled"

    if len(sanitized) > MAX_FILENAME_LENGTH:
        base, dot, extension = sanitized.rpartition(".")
        if dot and base and len(extension) + 1 < MAX_FILENAME_LENGTH:
            suffix = f".{extension}"
            sanitized = base[: MAX_FILENAME_LENGTH - len(suffix)] + suffix
        else:
            sanitized = sanitized[:MAX_FILENAME_LENGTH]

    return sanitized


def validate_upload_request(file: Any, filename: Optional[str], max_size: int) -> ValidationResult:
    """Gate a raw upload: empty and oversized files are reported separately."""
    _check_max_size(max_size)
    if file is None:
        return ValidationResult(False, "No file provided")
    _require(file, "size")

    if file.size == 0:
        return ValidationResult(False, "File is empty")

    if file.size > max_size:
        return ValidationResult(False, _size_error(max_size))

    if not filename or not filename.strip():
        return ValidationResult(False, "Filename is required")

    if not sanitize_filename(filename):
        return ValidationResult(False, "Invalid filename")

    return _VALID
