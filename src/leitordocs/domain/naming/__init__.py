"""Suggested file names for analyzed documents."""

from leitordocs.domain.naming.file_names import (
    generate_file_name_from_analysis,
    generate_unique_name,
    sanitize_file_name,
    unique_archive_name,
)

__all__ = [
    "generate_file_name_from_analysis",
    "generate_unique_name",
    "sanitize_file_name",
    "unique_archive_name",
]
