"""
Rejection log export service.

Builds the per-batch rejection log (Row, Reason, Field, Value, Message) as CSV
and stores it for the uploading partner.

Security:
- Offending values are partner-supplied. Every cell is sanitized against
  spreadsheet formula injection and a warning is logged when characters are
  stripped.
"""

from __future__ import annotations

import csv
import logging
from io import StringIO
from typing import Callable, Optional, Sequence
from uuid import UUID

from domain.rejection import RejectionRecord

logger = logging.getLogger(__name__)

REJECTION_LOG_HEADER: tuple[str, ...] = ("Row", "Reason", "Field", "Value", "Message")

_FORMULA_PREFIXES = frozenset({"=", "+", "-", "@", "\t", "\r"})

RejectionLogUploader = Callable[[UUID, str], str]


def sanitize_csv_field(value: Optional[str], field_name: str = "unknown") -> str:
    """
    Strip leading characters that make Excel/Sheets evaluate a cell as a formula.

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "Value")  # -> "HYPERLINK(...)"
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original = text

    stripped = []
    while text and text[0] in _FORMULA_PREFIXES:
        stripped.append(text[0])
        text = text[1:]

    if stripped:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped),
                "original_value": original[:100],
                "sanitized_value": text[:100],
            },
        )

    return text


def build_rejection_csv(rejections: Sequence[RejectionRecord]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(REJECTION_LOG_HEADER)

    for rejection in rejections:
        row = rejection.as_row()
        writer.writerow(
            [sanitize_csv_field(cell, name) for cell, name in zip(row, REJECTION_LOG_HEADER)]
        )

    return buffer.getvalue()


def _default_uploader() -> RejectionLogUploader:
    from repositories.rejection_log_repository import upload_rejection_log

    return upload_rejection_log


def store_rejection_log(
    batch_id: UUID,
    rejections: Sequence[RejectionRecord],
    uploader: Optional[RejectionLogUploader] = None,
) -> Optional[str]:
    """
    Export and upload a batch's rejection log.

    Returns the stored file's URL, or None when there was nothing to export or
    the upload failed (the failure is logged; the batch result is unaffected).
    """

    if not rejections:
        return None

    content = build_rejection_csv(rejections)
    uploader = uploader or _default_uploader()
    try:
        url = uploader(batch_id, content)
    except Exception as e:
        logger.error(
            "Failed to store rejection log",
            extra={"batch_id": str(batch_id), "rejections": len(rejections), "error": str(e)},
        )
        return None

    logger.info("Stored rejection log", extra={"batch_id": str(batch_id), "rejections": len(rejections)})
    return url


__all__ = [
    "REJECTION_LOG_HEADER",
    "sanitize_csv_field",
    "build_rejection_csv",
    "store_rejection_log",
]
