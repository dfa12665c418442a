"""File name generation from AI extraction results.

Receipts come back from the model as one line such as
``26-03 VENDA 1747 HELIO FILHO 1285,00``; companies may also configure a
naming pattern with ``{{TAG}}`` placeholders.
"""

import re
import time
from collections.abc import Mapping
from typing import Any

from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

FALLBACK_FILE_NAME = "arquivo_sem_nome"
RECEIPT_ANALYSIS_TYPES = frozenset({"financial-receipt", "financial-payment"})
GENERATED_NAME_MAX_LENGTH = 80
ARCHIVE_NAME_MAX_LENGTH = 200

_FORBIDDEN_CHARS = re.compile(r'[<>:"/\\|?*+()]')
_ARCHIVE_FORBIDDEN_CHARS = re.compile(r'[\\/:*?"<>|]')
_MULTI_SPACE = re.compile(r"\s{2,}")
_EDGE_PUNCTUATION = re.compile(r"^[._\-\s]+|[._\-\s]+$")

_TAG_LINE = re.compile(r"^([A-ZÀ-Ú_]+):\s*(.+)$", re.IGNORECASE)
_DATE = re.compile(r"(\d{2}-\d{2})")
_TRAILING_AMOUNT = re.compile(r"(\d+[,.]\d{2})$")
_SALE_NUMBER = re.compile(r"VENDA\s+(\d+)", re.IGNORECASE)
_FULL_RECEIPT = re.compile(
    r"(\d{2}-\d{2})\s+VENDA\s+(\d+)\s+(.+?)\s+(\d+[,.]\d{2})", re.IGNORECASE
)
_RECEIPT_LINE = re.compile(r"(\d{2}-\d{2})\s+VENDA\s+(\w+)\s+(.+?)\s+(\d+[,.]?\d*)", re.IGNORECASE)
_LEGACY_RECEIPT_LINE = re.compile(r"(\d{2}-\d{2})\s+(.+?)\s+(\d+[,.]?\d*)")
_SENTENCE_END = re.compile(r"[.!?]")


def _now_ms() -> int:
    return int(time.time() * 1000)


def sanitize_file_name(text: Any, max_length: int = 100) -> str:
    """Strip characters that are invalid in file names on common platforms."""
    if not text or not isinstance(text, str):
        return FALLBACK_FILE_NAME

    sanitized = _FORBIDDEN_CHARS.sub("", text.strip())
    sanitized = _MULTI_SPACE.sub(" ", sanitized)
    sanitized = _EDGE_PUNCTUATION.sub("", sanitized)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].strip()

    return sanitized or FALLBACK_FILE_NAME


def analysis_to_text(analysis: Any) -> str | None:
    """Render a structured result as ``KEY: value`` lines so templates can read it."""
    if isinstance(analysis, str):
        return analysis
    if isinstance(analysis, Mapping):
        lines = [
            f"{str(key).upper()}: {value}"
            for key, value in analysis.items()
            if isinstance(value, (str, int, float)) and not isinstance(value, bool)
        ]
        return "\n".join(lines) or None
    return None


def apply_template(analysis: str, template: str) -> str | None:
    """Fill a ``{{TAG}}`` naming pattern from the analysis text.

    Returns None when any placeholder cannot be filled, so the caller can fall
    back to the built-in naming.
    """
    variables: dict[str, str] = {}

    for line in analysis.split("\n"):
        match = _TAG_LINE.match(line)
        if match:
            variables[match.group(1).upper().strip()] = match.group(2).strip()

    if "DATA" not in variables:
        date_match = _DATE.search(analysis)
        if date_match:
            variables["DATA"] = date_match.group(1)

    if "VALOR" not in variables:
        amount_match = _TRAILING_AMOUNT.search(analysis)
        if amount_match:
            variables["VALOR"] = amount_match.group(1)

    if "VENDA" not in variables:
        sale_match = _SALE_NUMBER.search(analysis)
        if sale_match:
            variables["VENDA"] = sale_match.group(1)

    full_match = _FULL_RECEIPT.search(analysis)
    if full_match and "NOME" not in variables:
        variables["DATA"] = full_match.group(1)
        variables["VENDA"] = full_match.group(2)
        variables["NOME"] = full_match.group(3).strip()
        variables["VALOR"] = full_match.group(4)

    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", value)

    if "{{" in result:
        return None
    return result


def _receipt_file_name(analysis: str) -> str:
    lines = [line for line in analysis.split("\n") if line.strip()]

    for line in lines:
        match = _RECEIPT_LINE.search(line)
        if match:
            date, sale_number, name, value = match.groups()
            return f"{date} VENDA {sale_number} {name.strip()} {value}"

        legacy = _LEGACY_RECEIPT_LINE.search(line)
        if legacy:
            date, name, value = legacy.groups()
            return f"{date} {name.strip()} {value}"

    # First six words keep "VENDA 1234" when the line did not parse
    return " ".join(analysis.split()[:6]) or "comprovante"


def _general_file_name(analysis: str, analysis_type: str) -> str:
    for sentence in _SENTENCE_END.split(analysis):
        if len(sentence.strip()) > 10:
            words = [word for word in sentence.split() if len(word) > 2][:4]
            if words:
                return " ".join(words)
            break
    return f"analise {analysis_type}"


def generate_file_name_from_analysis(
    analysis: Any,
    analysis_type: str,
    extension: str,
    pattern: str | None = None,
    now_ms: int | None = None,
) -> str:
    """Build the suggested file name for an analyzed document.

    Args:
        analysis: Analysis text, or a structured result
        analysis_type: e.g. ``financial-receipt``
        extension: Original extension including the dot (``.pdf``)
        pattern: Company naming pattern with ``{{TAG}}`` placeholders
        now_ms: Timestamp for the fallback name (defaults to now)

    Returns:
        Sanitized file name with the original extension
    """
    text = analysis_to_text(analysis)
    if not text:
        return f"analise_{analysis_type}_{now_ms if now_ms is not None else _now_ms()}{extension}"

    file_name: str | None = None
    if pattern:
        file_name = apply_template(text, pattern)
        if file_name is None:
            logger.debug("naming_pattern_unfilled", analysis_type=analysis_type)

    if not file_name:
        if analysis_type in RECEIPT_ANALYSIS_TYPES:
            file_name = _receipt_file_name(text)
        else:
            file_name = _general_file_name(text, analysis_type)

    return f"{sanitize_file_name(file_name, GENERATED_NAME_MAX_LENGTH)}{extension}"


def generate_unique_name(
    file_name: str,
    existing_names: set[str] | None = None,
    now_ms: int | None = None,
) -> str:
    """Append a timestamp before the extension when the name is taken."""
    if not existing_names or file_name not in existing_names:
        return file_name

    timestamp = now_ms if now_ms is not None else _now_ms()
    name, dot, extension = file_name.rpartition(".")
    if not dot or not name:
        return f"{file_name}_{timestamp}"
    return f"{name}_{timestamp}.{extension}"


def unique_archive_name(base_name: str, extension: str, used_names: set[str]) -> str:
    """Name a renamed file for export, numbering duplicates ``name (1).ext``.

    ``used_names`` holds lowercased names and is updated in place.
    """
    base = _ARCHIVE_FORBIDDEN_CHARS.sub("", base_name)
    base = re.sub(r"\s+", " ", base).strip()[:ARCHIVE_NAME_MAX_LENGTH]

    final_name = f"{base}.{extension}"
    if final_name.lower() in used_names:
        counter = 1
        while f"{base} ({counter}).{extension}".lower() in used_names:
            counter += 1
        final_name = f"{base} ({counter}).{extension}"

    used_names.add(final_name.lower())
    return final_name
