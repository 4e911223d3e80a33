from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from transcriptor.transcription.models import TranscriptionResult

from .formats import generate_json, generate_srt, generate_txt, generate_vtt
from .models import ExportedDocument, ExportFormat, ExportOptions

_MIME_TYPES = {
    ExportFormat.TXT: "text/plain",
    ExportFormat.SRT: "application/x-subrip",
    ExportFormat.VTT: "text/vtt",
    ExportFormat.JSON: "application/json",
}

_EXTENSION = re.compile(r"\.[^/.]+$")


class UnsupportedExportFormatError(ValueError):
    """Raised for an export format outside txt/srt/vtt/json."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unsupported export format: {value}")
        self.value = value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_format(value: ExportFormat | str) -> ExportFormat:
    try:
        return ExportFormat(value)
    except ValueError:
        raise UnsupportedExportFormatError(value) from None


def export_filename(filename: str, export_format: ExportFormat) -> str:
    return _EXTENSION.sub("", filename) + f".{export_format.value}"


def export_transcript(
    result: TranscriptionResult,
    export_format: ExportFormat | str,
    options: ExportOptions,
    filename: str,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> ExportedDocument:
    """
    Serialise ``result`` into ``export_format``.

    The format is resolved before any serialisation so an unknown format never
    yields partial output. ``clock`` only feeds the JSON ``exportedAt`` stamp.
    """
    fmt = parse_format(export_format)

    content: str
    if fmt is ExportFormat.SRT:
        content = generate_srt(result, options)
    elif fmt is ExportFormat.VTT:
        content = generate_vtt(result, options)
    elif fmt is ExportFormat.TXT:
        content = generate_txt(result, options)
    else:
        content = generate_json(result, options, exported_at=clock())

    document = ExportedDocument(
        content=content,
        mime_type=_MIME_TYPES[fmt],
        extension=f".{fmt.value}",
        filename=export_filename(filename, fmt),
    )
    logger.info("Exported transcript {} as {} ({} chars)", result.id, fmt.value, len(content))
    return document
