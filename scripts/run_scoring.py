#!/usr/bin/env python3
"""
Clinic Scoring Pipeline

Scores clinics stored in the database, saves match scores and creates leads for
S/A grades.

Usage:
    python scripts/run_scoring.py --all --product-id torr-rf
    python scripts/run_scoring.py --entity-id clinic-001 --entity-id clinic-002
    python scripts/run_scoring.py --all --output output/scores.json
"""

import os
import sys
import json
import logging
import argparse
from collections import Counter
from datetime import datetime, timezone

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from clinic_intel.db import init_db, list_entity_ids
from clinic_intel.runner import run_batch_scoring
from clinic_intel.weights import get_active_weights

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def save_results(results: list, output_path: str) -> str:
    """Write scoring results to a JSON file."""
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    output_data = {
        "metadata": {
            "scored_at": datetime.now(timezone.utc).isoformat(),
            "total": len(results),
        },
        "results": results,
    }
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(output_data, f, indent=2, ensure_ascii=False)
    logger.info("Saved scoring results to: %s", output_path)
    return output_path


def main():
    """Run the scoring pipeline."""
    parser = argparse.ArgumentParser(description="Score clinics and create leads")
    parser.add_argument("--entity-id", action="append", default=[], help="Entity to score (repeatable)")
    parser.add_argument("--all", action="store_true", help="Score every active entity")
    parser.add_argument("--product-id", type=str, default=None, help="Product being sold (enables lead creation)")
    parser.add_argument("--concurrency", type=int, default=None, help="Worker threads (1-5)")
    parser.add_argument("--output", type=str, default=None, help="Optional JSON output path")
    args = parser.parse_args()

    init_db()
    entity_ids = list_entity_ids() if args.all else args.entity_id
    if not entity_ids:
        logger.error("Nothing to score: pass --entity-id or --all")
        sys.exit(1)

    weights, version = get_active_weights()
    logger.info("=" * 60)
    logger.info("CLINIC SCORING PIPELINE")
    logger.info("=" * 60)
    logger.info("Entities: %s | weights %s: %s", len(entity_ids), version, weights.to_dict())

    results = run_batch_scoring(entity_ids, product_id=args.product_id, concurrency=args.concurrency)

    grades = Counter(r.data.get("grade") for r in results if r.success)
    leads = sum(1 for r in results if r.success and (r.data.get("lead") or {}).get("created"))
    failed = [(eid, r.error) for eid, r in zip(entity_ids, results) if not r.success]

    logger.info("\nGrade Breakdown:")
    for grade in ("S", "A", "B", "C", "EXCLUDE"):
        logger.info("   %-8s %s", grade, grades.get(grade, 0))
    logger.info("Leads created: %s", leads)
    for entity_id, error in failed:
        logger.warning("Failed %s: %s", entity_id, error)

    if args.output:
        save_results([r.to_dict() for r in results], args.output)


if __name__ == "__main__":
    main()
