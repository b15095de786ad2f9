#!/usr/bin/env python3
"""
Ingest a fresh crawl, compare it against the last snapshot and classify
sales signals.

Names the dictionary cannot resolve are decomposed; unknown compound terms
become candidates attributed to the crawled clinic.

Usage:
    python scripts/detect_changes.py --crawl crawl.json --rules rules.json --product-id torr-rf

crawl.json:  {"entity_id": "...", "equipments": [...], "treatments": [...]}
rules.json:  [{"trigger", "match_keywords", "priority", "title_template",
               "description_template", "related_angle"}]
"""

import os
import sys
import json
import logging
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from clinic_intel import db
from clinic_intel.changes import detect_equipment_changes
from clinic_intel.ingest import ingest_crawl
from clinic_intel.signals import classify_signals

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _load_json(path: str):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main():
    parser = argparse.ArgumentParser(description="Detect equipment changes and classify sales signals")
    parser.add_argument("--crawl", type=str, required=True, help="Current crawl JSON")
    parser.add_argument("--rules", type=str, default=None, help="Sales-signal rules JSON")
    parser.add_argument("--product-id", type=str, default=None, help="Product the rules belong to")
    args = parser.parse_args()

    if args.rules and not args.product_id:
        parser.error("--rules requires --product-id")

    db.init_db()
    crawl = _load_json(args.crawl)
    entity_id = crawl["entity_id"]
    equipments = crawl.get("equipments") or []
    treatments = crawl.get("treatments") or []

    ingested = ingest_crawl(entity_id, equipments, treatments)
    for name in ingested.new_candidates:
        logger.info("  new compound candidate: %s", name)

    previous = db.get_latest_snapshot(entity_id)
    snapshot_id = db.save_snapshot(entity_id, equipments, treatments)
    if previous is None:
        logger.info("First snapshot for %s; nothing to compare", entity_id)
        return

    changes = detect_equipment_changes(
        entity_id, previous, equipments, treatments,
        curr_snapshot_id=snapshot_id, entries=ingested.entries,
    )
    for c in changes:
        logger.info("  %s %s: %s (%s)", c.change_type, c.item_type, c.item_name, c.standard_name)

    if not args.rules or not changes:
        return

    result = classify_signals(changes, args.product_id, _load_json(args.rules))
    for s in result.signals:
        logger.info("  [%s] %s", s.priority, s.title)
    if result.degraded:
        logger.warning("Signals were not stored: %s", result.persistence.error)


if __name__ == "__main__":
    main()
