"""
Pytest configuration and in-memory store fakes.

Adds the project root to the Python path so tests can import domain,
repositories and services, and provides fakes for the store and transport
collaborators so nothing touches Supabase or the network.
"""

import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, services, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.identity import DuplicateFingerprintError  # noqa: E402


class FakeLeadStore:
    """Leads keyed by fingerprint, with switchable failures."""

    def __init__(self, leads=()):
        self.leads = {lead.fingerprint: lead for lead in leads}
        self.lookups = []
        self.merges = []
        self.bulk_inserts = 0
        self.single_inserts = 0
        self.fail_lookup_for = set()
        self.fail_bulk = False
        # Leads another run stores between our lookup and our insert.
        self.racing = {}

    def seed(self, *leads):
        for lead in leads:
            self.leads[lead.fingerprint] = lead

    def find_leads_by_fingerprints(self, fingerprints):
        self.lookups.append(list(fingerprints))
        if self.fail_lookup_for.intersection(fingerprints):
            raise RuntimeError("lookup failed")
        return {fp: self.leads[fp] for fp in fingerprints if fp in self.leads}

    def fill_empty_fields(self, lead, changes):
        self.merges.append((lead.lead_id, dict(changes)))
        self.leads[lead.fingerprint] = replace(self.leads[lead.fingerprint], **changes)

    def insert_leads_bulk(self, leads):
        self.bulk_inserts += 1
        if self.fail_bulk or any(lead.fingerprint in self.racing for lead in leads):
            raise RuntimeError("bulk insert failed")
        for lead in leads:
            self.leads[lead.fingerprint] = lead

    def insert_lead(self, lead):
        self.single_inserts += 1
        if lead.fingerprint in self.racing:
            self.leads[lead.fingerprint] = self.racing.pop(lead.fingerprint)
        if lead.fingerprint in self.leads:
            raise DuplicateFingerprintError(lead.fingerprint)
        self.leads[lead.fingerprint] = lead


class FakeRoutingStore:
    """Assignments keyed by (lead_id, subscriber_id), like the unique constraint."""

    def __init__(self):
        self.assignments = {}
        self.counter_updates = []
        self.insert_attempts = 0
        self.fail_pairs = set()

    def insert_assignment(self, assignment):
        self.insert_attempts += 1
        if assignment.key in self.fail_pairs:
            raise RuntimeError("insert failed")
        if assignment.key in self.assignments:
            return False
        self.assignments[assignment.key] = assignment
        return True

    def update_profile_counters(self, profile, counters):
        self.counter_updates.append((profile, counters))


class FakePartnerDirectory:
    def __init__(self, tenants=()):
        self.tenants = dict(tenants)
        self.calls = []

    def get_partner_tenant_ids(self, partner_ids):
        self.calls.append(list(partner_ids))
        return {p: self.tenants[p] for p in partner_ids if p in self.tenants}


class FakeTransport:
    """Async transport; raises for `failing` lead ids and declines `declined` ones."""

    def __init__(self, failing=(), declined=()):
        self.failing = set(failing)
        self.declined = set(declined)
        self.sent = []

    async def send(self, request):
        if request.lead_id in self.failing:
            raise ConnectionError("transport down")
        if request.lead_id in self.declined:
            return False
        self.sent.append(request)
        return True


@pytest.fixture
def lead_store():
    return FakeLeadStore()


@pytest.fixture
def routing_store():
    return FakeRoutingStore()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def partner_directory():
    return FakePartnerDirectory()
