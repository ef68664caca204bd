"""
Rejection log storage.

Uploads an exported rejection log to Supabase storage so the uploading partner
can download it.
"""

from __future__ import annotations

from uuid import UUID

from repositories.client import get_client

_BUCKET: str = "uploads"


def rejection_log_path(batch_id: UUID) -> str:
    return f"rejections/{batch_id}.csv"


def upload_rejection_log(batch_id: UUID, csv_content: str) -> str:
    """
    Store the CSV (overwriting any previous export for the batch).

    Returns the public URL of the stored file.
    """

    path = rejection_log_path(batch_id)
    bucket = get_client().storage.from_(_BUCKET)
    bucket.upload(
        path,
        csv_content.encode("utf-8"),
        {"content-type": "text/csv", "upsert": "true"},
    )
    return bucket.get_public_url(path)


__all__ = ["rejection_log_path", "upload_rejection_log"]
