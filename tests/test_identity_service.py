"""
Tests for `services/identity_service.py`.

Covers contract rules:
- Classification matrix: same owner merges (no new lead), cross owner is
  rejected, platform-owned collisions are rejected and stay platform-owned.
- Merges fill only empty stored fields.
- Fingerprints are looked up in chunks, one store call per chunk.
- Intra-batch repeats: the first occurrence wins.
- A failed chunk lookup rejects that chunk only.
- Same-tenant anti-gaming at acquisition time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from domain.contact import ValidatedContact
from domain.identity import compute_fingerprint
from domain.lead import CanonicalLead
from domain.rejection import RejectionReason
from services.identity_service import check_acquisition, filter_acquirable, resolve_batch

PARTNER_A = UUID("00000000-0000-0000-0000-00000000000a")
PARTNER_B = UUID("00000000-0000-0000-0000-00000000000b")
TENANT_T = UUID("00000000-0000-0000-0000-000000000101")
TENANT_U = UUID("00000000-0000-0000-0000-000000000102")
EXISTING_ID = UUID("00000000-0000-0000-0000-000000000999")
CREATED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _contact(row: int = 2, email: str = "jane@acme.com", partner: UUID | None = PARTNER_A, **overrides) -> ValidatedContact:
    values = {
        "row_number": row,
        "partner_id": partner,
        "tenant_id": TENANT_T,
        "email": email,
        "first_name": "Jane",
        "last_name": "Doe",
        "state": "TX",
        "industry": "Roofing",
    }
    values.update(overrides)
    return ValidatedContact(**values)


def _stored(owner: UUID | None, email: str = "jane@acme.com", **overrides) -> CanonicalLead:
    values = {
        "lead_id": EXISTING_ID,
        "fingerprint": compute_fingerprint(email, None, None),
        "owning_partner_id": owner,
        "email": email,
        "created_at": CREATED_AT,
        "first_name": "Jane",
    }
    values.update(overrides)
    return CanonicalLead(**values)


def test_new_contact_is_pending(lead_store) -> None:
    result = resolve_batch([_contact()], store=lead_store)

    assert [p.contact.row_number for p in result.pending] == [2]
    assert result.pending[0].fingerprint == compute_fingerprint("jane@acme.com", None, None)
    assert result.rejections == []


def test_same_owner_duplicate_merges_empty_fields_only(lead_store) -> None:
    lead_store.seed(_stored(PARTNER_A, city=None))

    result = resolve_batch([_contact(first_name="Janet", city="Austin")], store=lead_store)

    assert result.pending == []
    assert result.merged_count == 1
    assert lead_store.merges == [(EXISTING_ID, {"last_name": "Doe", "state": "TX", "industry": "Roofing", "city": "Austin"})]
    stored = lead_store.leads[compute_fingerprint("jane@acme.com", None, None)]
    assert stored.first_name == "Jane"
    assert stored.city == "Austin"

    [rejection] = result.rejections
    assert rejection.reason is RejectionReason.DUPLICATE_SAME_PARTNER
    assert rejection.existing_lead_id == EXISTING_ID
    assert "merged 4" in rejection.message


def test_cross_owner_duplicate_rejected_without_merge(lead_store) -> None:
    lead_store.seed(_stored(PARTNER_A))

    result = resolve_batch([_contact(partner=PARTNER_B, city="Austin")], store=lead_store)

    [rejection] = result.rejections
    assert rejection.reason is RejectionReason.DUPLICATE_CROSS_PARTNER
    assert rejection.existing_partner_id == PARTNER_A
    assert result.pending == []
    assert lead_store.merges == []


def test_platform_owned_collision_rejected_and_stays_platform_owned(lead_store) -> None:
    lead_store.seed(_stored(None))

    result = resolve_batch([_contact(partner=PARTNER_B)], store=lead_store)

    [rejection] = result.rejections
    assert rejection.reason is RejectionReason.PLATFORM_OWNED_LEAD
    assert lead_store.leads[compute_fingerprint("jane@acme.com", None, None)].owning_partner_id is None
    assert lead_store.merges == []


def test_lookups_are_chunked(lead_store) -> None:
    contacts = [_contact(row=i, email=f"user{i}@acme.com") for i in range(250)]

    result = resolve_batch(contacts, store=lead_store, chunk_size=100)

    assert [len(chunk) for chunk in lead_store.lookups] == [100, 100, 50]
    assert len(result.pending) == 250


def test_failed_chunk_rejects_only_that_chunk(lead_store) -> None:
    contacts = [_contact(row=i, email=f"user{i}@acme.com") for i in range(4)]
    lead_store.fail_lookup_for = {contacts[3].fingerprint}

    result = resolve_batch(contacts, store=lead_store, chunk_size=2)

    assert [p.contact.row_number for p in result.pending] == [0, 1]
    assert [(r.row_number, r.reason) for r in result.rejections] == [
        (2, RejectionReason.UNKNOWN_ERROR),
        (3, RejectionReason.UNKNOWN_ERROR),
    ]


def test_intra_batch_repeat_first_occurrence_wins(lead_store) -> None:
    first = _contact(row=2, email="J.Doe@gmail.com")
    repeat = _contact(row=3, email="jdoe@gmail.com", city="Austin")

    result = resolve_batch([first, repeat], store=lead_store)

    [pending] = result.pending
    assert pending.contact.row_number == 2
    assert pending.contact.city == "Austin"
    [rejection] = result.rejections
    assert rejection.row_number == 3
    assert rejection.reason is RejectionReason.DUPLICATE_SAME_PARTNER
    assert len(lead_store.lookups) == 1
    assert len(lead_store.lookups[0]) == 1


def test_every_contact_accounted_for_once(lead_store) -> None:
    lead_store.seed(_stored(PARTNER_B, email="taken@acme.com"))
    contacts = [
        _contact(row=1, email="new@acme.com"),
        _contact(row=2, email="taken@acme.com"),
        _contact(row=3, email="new@acme.com"),
    ]

    result = resolve_batch(contacts, store=lead_store)

    rows = [p.contact.row_number for p in result.pending] + [r.row_number for r in result.rejections]
    assert sorted(rows) == [1, 2, 3]


def test_anti_gaming_blocks_same_tenant(partner_directory) -> None:
    partner_directory.tenants = {PARTNER_A: TENANT_T, PARTNER_B: TENANT_U}
    own = _stored(PARTNER_A)
    other = _stored(PARTNER_B, email="other@acme.com", lead_id=UUID("00000000-0000-0000-0000-000000000998"))
    house = _stored(None, email="house@acme.com", lead_id=UUID("00000000-0000-0000-0000-000000000997"))

    assert not check_acquisition(own, TENANT_T, partners=partner_directory)
    assert check_acquisition(other, TENANT_T, partners=partner_directory)
    assert check_acquisition(house, TENANT_T, partners=partner_directory)

    allowed, blocked = filter_acquirable([own, other, house], TENANT_T, partners=partner_directory)
    assert allowed == [other, house]
    assert blocked == [own]


def test_platform_owned_acquisition_needs_no_lookup(partner_directory) -> None:
    assert check_acquisition(_stored(None), TENANT_T, partners=partner_directory)
    assert filter_acquirable([_stored(None)], TENANT_T, partners=partner_directory) == ([_stored(None)], [])
    assert partner_directory.calls == []
