"""
Unit tests for partner CSV parsing in `scripts/process_partner_upload.py`.

Tests header normalization and RawContactRecord construction from CSV rows.
"""

from __future__ import annotations

from uuid import UUID

import pytest

from domain.identity import compute_fingerprint
from scripts.process_partner_upload import domain_from_website, normalize_header, read_records, record_from_row

PARTNER = UUID("00000000-0000-0000-0000-00000000000a")
TENANT = UUID("00000000-0000-0000-0000-000000000101")


class TestHeaders:
    """Tests for column header normalization."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Email", "email"),
            ("First Name", "first_name"),
            ("Email Address", "email"),
            ("Zip", "postal_code"),
            ("Employee Count", "company_employee_count"),
            (" company-domain ", "company_domain"),
            ("Favourite Colour", "favourite_colour"),
        ],
    )
    def test_normalize_header(self, header, expected):
        assert normalize_header(header) == expected


class TestRecordFromRow:
    """Tests for building raw records from CSV rows."""

    def test_known_columns_are_mapped(self):
        row = {"Email": "jane@roofco.com", "First Name": "Jane", "State": "tx", "Zip": "78701"}
        record = record_from_row(row, 2, PARTNER, TENANT)

        assert record.row_number == 2
        assert record.partner_id == PARTNER
        assert record.tenant_id == TENANT
        assert record.email == "jane@roofco.com"
        assert record.first_name == "Jane"
        assert record.state == "tx"
        assert record.postal_code == "78701"

    def test_blank_cells_become_none(self):
        record = record_from_row({"Email": "jane@roofco.com", "Phone": "   "}, 3, PARTNER, TENANT)
        assert record.phone is None

    def test_unknown_and_overflow_columns_are_ignored(self):
        row = {"Email": "jane@roofco.com", "Notes": "call after 5", None: ["extra"]}
        record = record_from_row(row, 4, PARTNER, TENANT)
        assert record.email == "jane@roofco.com"

    def test_values_are_not_trimmed(self):
        record = record_from_row({"Company": "  Roof Co  "}, 5, PARTNER, TENANT)
        assert record.company_name == "  Roof Co  "

    @pytest.mark.parametrize(
        "website",
        ["https://www.acme.com", "http://acme.com/", "www.acme.com/about?ref=1", "acme.com"],
    )
    def test_website_column_reduced_to_domain(self, website):
        row = {"Email": "jane@acme.com", "Website": website, "Phone": "5551234567"}
        record = record_from_row(row, 6, PARTNER, TENANT)

        assert record.company_domain == "acme.com"
        assert compute_fingerprint(record.email, record.company_domain, record.phone) == compute_fingerprint(
            "jane@acme.com", "acme.com", "5551234567"
        )

    def test_url_only_prefix_becomes_none(self):
        record = record_from_row({"Website": "https://"}, 7, PARTNER, TENANT)
        assert record.company_domain is None


class TestReadRecords:
    """Tests for reading a whole file."""

    def test_row_numbers_start_after_header(self):
        lines = [
            "Email,First Name,Last Name,State,Industry\n",
            "jane@roofco.com,Jane,Doe,TX,roofing\n",
            "john@roofco.com,John,Doe,CA,hvac\n",
        ]
        records = read_records(lines, PARTNER, TENANT)

        assert [r.row_number for r in records] == [2, 3]
        assert records[1].industry == "hvac"

    def test_empty_file_yields_no_records(self):
        assert read_records([], PARTNER, None) == []


class TestDomainFromWebsite:
    """Tests for reducing website URLs to a bare domain."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://www.acme.com", "acme.com"),
            ("HTTP://WWW.Acme.com/contact", "Acme.com"),
            ("  acme.com  ", "acme.com"),
            ("shop.acme.com/path", "shop.acme.com"),
        ],
    )
    def test_domain_from_website(self, value, expected):
        assert domain_from_website(value) == expected
