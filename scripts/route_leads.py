#!/usr/bin/env python3
"""
Lead Routing Re-run

Re-runs routing for specific leads against every active targeting profile.
This is the recovery path for a routing run that failed partway: assignments
that already exist are skipped (unique constraint), so re-running is safe.

Usage:
    python route_leads.py <lead_id> [<lead_id> ...]
    python route_leads.py --file lead_ids.txt --no-notify
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List
from uuid import UUID

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.lead_repository import get_leads_by_ids
from repositories.targeting_repository import list_active_profiles
from services.notification_service import dispatch_notifications_sync
from services.routing_service import DEFAULT_SOURCE, route_leads


def _read_lead_ids(values: List[str], path: str | None) -> List[UUID]:
    raw = list(values)
    if path:
        with open(path, "r", encoding="utf-8") as f:
            raw.extend(line.strip() for line in f if line.strip())
    return [UUID(value) for value in dict.fromkeys(raw)]


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Re-run routing for the given leads",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Route two leads
  python route_leads.py 3f2c...-... 9a1b...-...

  # Route leads listed one per line, without notifications
  python route_leads.py --file lead_ids.txt --no-notify
        """
    )

    parser.add_argument(
        "lead_ids",
        nargs="*",
        help="Lead ids (UUID) to route"
    )

    parser.add_argument(
        "--file",
        help="File with one lead id per line"
    )

    parser.add_argument(
        "--source",
        default=DEFAULT_SOURCE,
        help=f"Assignment source label (default: {DEFAULT_SOURCE})"
    )

    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Create assignments without queueing notifications"
    )

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        lead_ids = _read_lead_ids(args.lead_ids, args.file)
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if not lead_ids:
        parser.error("no lead ids given")

    try:
        leads = get_leads_by_ids(lead_ids)
        missing = len(lead_ids) - len(leads)
        if missing:
            print(f"Warning: {missing} lead id(s) not found")

        profiles = list_active_profiles()
        result = route_leads(leads, profiles, source=args.source)

        accepted = 0
        if not args.no_notify:
            accepted = dispatch_notifications_sync(result.notification_candidates).accepted
    except KeyboardInterrupt:
        print("\n\nRouting interrupted by user")
        return 130
    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        return 1

    print("=" * 50)
    print("ROUTING SUMMARY")
    print("=" * 50)
    print(f"Leads:                     {len(leads)}")
    print(f"Active profiles:           {len(profiles)}")
    print(f"Assignments created:       {result.routed}")
    print(f"Already assigned:          {result.already_assigned}")
    print(f"Failed pairs:              {len(result.failed_pairs)}")
    print(f"Counters flushed:          {len(result.flushed)}")
    print(f"Notifications accepted:    {accepted}")
    print("=" * 50)

    return 1 if result.failed_pairs else 0


if __name__ == "__main__":
    sys.exit(main())
