#!/usr/bin/env python3
"""
List compound-word candidates awaiting curation.

Usage:
    python scripts/list_candidates.py
    python scripts/list_candidates.py --status all --limit 50
"""

import os
import sys
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from clinic_intel.db import init_db, list_candidates


def main():
    parser = argparse.ArgumentParser(description="List compound-word candidates")
    parser.add_argument("--status", type=str, default="pending", help="pending | approved | rejected | all")
    parser.add_argument("--limit", type=int, default=20, help="Max rows")
    args = parser.parse_args()

    init_db()
    rows = list_candidates(None if args.status == "all" else args.status)[: args.limit]
    if not rows:
        print("No candidates.")
        return

    print(f"{'Seen':>5}  {'Status':<9} {'First entity':<20} Raw text")
    print("-" * 60)
    for r in rows:
        print(f"{r['discovery_count']:>5}  {r['status']:<9} {str(r.get('first_entity_id') or '-'):<20} {r['raw_text']}")


if __name__ == "__main__":
    main()
