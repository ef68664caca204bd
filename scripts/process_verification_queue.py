#!/usr/bin/env python3
"""
Email Verification Queue Runner

Runs one pass over due email verification queue items: verifies each address
with MillionVerifier, writes the verdict to the lead, and reschedules or fails
items whose verification call errored.

Usage:
    python process_verification_queue.py
    python process_verification_queue.py --limit 500
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import repositories.client  # noqa: F401  (loads .env)
from services.million_verifier import MillionVerifierClient
from services.verification_retry_service import process_verification_queue


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Process the email verification queue once",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process up to 100 due items
  python process_verification_queue.py

  # Larger pass with debug logging
  python process_verification_queue.py --limit 500 --verbose
        """
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of queue items to process (default: 100)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        verifier = MillionVerifierClient.from_env()
        stats = process_verification_queue(verifier, limit=args.limit)
    except KeyboardInterrupt:
        print("\n\nVerification interrupted by user")
        return 130
    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        return 1

    print("=" * 50)
    print("VERIFICATION QUEUE SUMMARY")
    print("=" * 50)
    print(f"Processed:                 {stats.processed}")
    print(f"Completed:                 {stats.completed}")
    print(f"Retry scheduled:           {stats.retried}")
    print(f"Failed permanently:        {stats.failed}")
    print(f"Errors:                    {stats.errors}")
    print("=" * 50)

    return 1 if stats.errors else 0


if __name__ == "__main__":
    sys.exit(main())
