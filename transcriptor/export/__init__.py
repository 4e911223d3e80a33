from .formats import (
    format_srt_time,
    format_timestamp,
    format_vtt_time,
    generate_json,
    generate_srt,
    generate_txt,
    generate_vtt,
)
from .models import ExportedDocument, ExportFormat, ExportOptions
from .service import UnsupportedExportFormatError, export_filename, export_transcript, parse_format

__all__ = [
    "ExportFormat",
    "ExportOptions",
    "ExportedDocument",
    "UnsupportedExportFormatError",
    "export_filename",
    "export_transcript",
    "format_srt_time",
    "format_timestamp",
    "format_vtt_time",
    "generate_json",
    "generate_srt",
    "generate_txt",
    "generate_vtt",
    "parse_format",
]
