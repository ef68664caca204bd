#!/usr/bin/env python3
"""
Partner Upload Processing Script

Runs a partner's contact CSV through the lead engine:
- Validation, identity resolution and scoring of every row
- Insert of new canonical leads
- Routing to matching targeting profiles and notification queueing
- Rejection summary (and optional rejection log upload)

Row numbers in rejections are spreadsheet rows (the header is row 1).

Usage:
    python process_partner_upload.py contacts.csv --partner <uuid> --tenant <uuid>
    python process_partner_upload.py contacts.csv --partner <uuid> --tenant <uuid> --export-rejections
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import re
import sys
from dataclasses import fields
from pathlib import Path
from typing import Iterable, List, Mapping, Optional
from uuid import UUID

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.contact import RawContactRecord
from services.lead_pipeline_service import BatchResult, process_contact_batch

# Header aliases seen in partner files, after lowercasing and replacing spaces/dashes with "_".
COLUMN_ALIASES = {
    "email_address": "email",
    "phone_number": "phone",
    "mobile": "phone",
    "firstname": "first_name",
    "lastname": "last_name",
    "title": "job_title",
    "seniority": "seniority_level",
    "company": "company_name",
    "domain": "company_domain",
    "website": "company_domain",
    "employees": "company_employee_count",
    "employee_count": "company_employee_count",
    "zip": "postal_code",
    "zip_code": "postal_code",
    "linkedin": "linkedin_url",
}

RECORD_FIELDS = frozenset(f.name for f in fields(RawContactRecord)) - {"row_number", "partner_id", "tenant_id"}

_URL_PREFIX = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)


def domain_from_website(value: str) -> str:
    """Reduce a website URL to its host: 'https://www.acme.com/about' -> 'acme.com'."""
    host = _URL_PREFIX.sub("", value.strip())
    return host.split("/", 1)[0].split("?", 1)[0]


def normalize_header(header: str) -> str:
    key = header.strip().lower().replace(" ", "_").replace("-", "_")
    return COLUMN_ALIASES.get(key, key)


def record_from_row(
    row: Mapping[str, Optional[str]],
    row_number: int,
    partner_id: Optional[UUID],
    tenant_id: Optional[UUID],
) -> RawContactRecord:
    """
    Build a RawContactRecord from one CSV row.

    Unknown columns are ignored; blank cells become None. Company domains given
    as website URLs are reduced to the host so they fingerprint like a bare
    domain. Other values are passed through untouched so validation sees
    exactly what the partner sent.
    """
    values = {}
    for header, value in row.items():
        if header is None:
            continue
        key = normalize_header(header)
        if key not in RECORD_FIELDS:
            continue
        if value is None or not value.strip():
            continue
        if key == "company_domain":
            value = domain_from_website(value)
            if not value:
                continue
        values[key] = value

    return RawContactRecord(row_number=row_number, partner_id=partner_id, tenant_id=tenant_id, **values)


def read_records(
    lines: Iterable[str],
    partner_id: Optional[UUID],
    tenant_id: Optional[UUID],
) -> List[RawContactRecord]:
    reader = csv.DictReader(lines)
    return [
        record_from_row(row, row_number, partner_id, tenant_id)
        for row_number, row in enumerate(reader, start=2)
    ]


def print_summary(result: BatchResult) -> None:
    """Print batch summary statistics."""
    print()
    print("=" * 60)
    print("UPLOAD SUMMARY")
    print("=" * 60)
    print(f"Batch:            {result.batch_id}")
    print(f"Rows received:    {result.received}")
    print(f"Leads created:    {len(result.created)}")
    print(f"Merged:           {result.merged_count}")
    print(f"Rejected:         {result.rejected_count}")
    print()

    if result.routing is not None:
        print(f"Assignments:      {result.routing.routed}")
        print(f"Failed pairs:     {len(result.routing.failed_pairs)}")
        print(f"Notifications:    {result.notifications.accepted} queued, {result.notifications.failed} failed")
        print()

    if result.rejections:
        print("First 5 rejections:")
        for rejection in result.rejections[:5]:
            print(f"  - Row {rejection.row_number}: {rejection.reason.value} {rejection.message}")
        if len(result.rejections) > 5:
            print(f"  ... and {len(result.rejections) - 5} more")
    else:
        print("No rejections!")

    if result.rejection_log_url:
        print()
        print(f"Rejection log:    {result.rejection_log_url}")

    print("=" * 60)


def save_rejections(result: BatchResult, output_path: str) -> None:
    """Save rejection details to a JSON file."""
    if not result.rejections:
        return

    payload = [
        {
            "row": r.row_number,
            "reason": r.reason.value,
            "field": r.field,
            "value": r.value,
            "message": r.message,
        }
        for r in result.rejections
    ]
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)

    print(f"\nRejection details saved to: {output_path}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Process a partner contact upload through the lead engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process an upload
  python process_partner_upload.py contacts.csv --partner 3f2c... --tenant 9a1b...

  # Also upload the rejection log to storage
  python process_partner_upload.py contacts.csv --partner 3f2c... --tenant 9a1b... --export-rejections
        """
    )

    parser.add_argument(
        "csv_path",
        help="Path to the partner CSV file"
    )

    parser.add_argument(
        "--partner",
        type=UUID,
        help="Uploading partner id (omit for platform-owned leads)"
    )

    parser.add_argument(
        "--tenant",
        type=UUID,
        help="Workspace (tenant) the upload belongs to"
    )

    parser.add_argument(
        "--batch-id",
        type=UUID,
        help="Batch id to record on created leads (default: generated)"
    )

    parser.add_argument(
        "--export-rejections",
        action="store_true",
        help="Upload the rejection log CSV to storage"
    )

    parser.add_argument(
        "--error-log",
        default="upload_rejections.json",
        help="Path to save rejection details (default: upload_rejections.json)"
    )

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        with open(args.csv_path, "r", encoding="utf-8-sig", newline="") as f:
            records = read_records(f, args.partner, args.tenant)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if not records:
        print("No rows found")
        return 0

    try:
        print(f"Processing {len(records)} rows...")
        result = process_contact_batch(
            records,
            batch_id=args.batch_id,
            export_rejections=args.export_rejections,
        )
    except KeyboardInterrupt:
        print("\n\nProcessing interrupted by user")
        return 130
    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        return 1

    print_summary(result)
    save_rejections(result, args.error_log)

    failed_pairs = len(result.routing.failed_pairs) if result.routing else 0
    return 1 if failed_pairs else 0


if __name__ == "__main__":
    sys.exit(main())
