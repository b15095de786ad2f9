#!/usr/bin/env python3
"""
Seed the database with the keyword dictionary and, optionally, clinics.

Usage:
    python scripts/seed_data.py --dictionary
    python scripts/seed_data.py --dictionary-file data/dictionary_v1.4.json
    python scripts/seed_data.py --entities data/clinics.json

Entities file shape:
    [{"id", "name", "district", "latitude", "longitude", "email", "opened_at",
      "data_quality_score",
      "equipments": [{"name", "category", "estimated_year", "brand"}],
      "treatments": [{"name", "category", "price_min", "price_max"}]}]
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
from clinic_intel.dictionary import StaticDictionaryProvider, keyword_provider
from clinic_intel.normalize import normalize_keyword

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def seed_dictionary(provider: StaticDictionaryProvider) -> None:
    for entry in provider.entries:
        db.upsert_dictionary_entry(entry, version=provider.version)
    for compound in provider.compounds:
        db.upsert_compound_word(compound)
    logger.info(
        "Seeded dictionary %s: %s keywords, %s compounds",
        provider.version, len(provider.entries), len(provider.compounds),
    )


def seed_entities(path: str) -> int:
    with open(path, 'r', encoding='utf-8') as f:
        entities = json.load(f)

    entries = keyword_provider().keyword_entries()
    for e in entities:
        entity_id = db.upsert_entity(e)
        for eq in e.get("equipments") or []:
            # store the standard name when the crawler's spelling is known
            name = normalize_keyword(eq["name"], entries=entries).standard_name or eq["name"]
            db.insert_equipment(
                entity_id,
                name,
                eq.get("category") or "other",
                estimated_year=eq.get("estimated_year"),
                equipment_brand=eq.get("brand"),
            )
        for t in e.get("treatments") or []:
            db.insert_treatment(
                entity_id,
                t["name"],
                treatment_category=t.get("category"),
                price_min=t.get("price_min"),
                price_max=t.get("price_max"),
                is_promoted=bool(t.get("is_promoted")),
            )
    logger.info("Seeded %s entities from %s", len(entities), path)
    return len(entities)


def main():
    parser = argparse.ArgumentParser(description="Seed dictionary and clinic data")
    parser.add_argument("--dictionary", action="store_true", help="Store the built-in keyword dictionary")
    parser.add_argument("--dictionary-file", type=str, default=None, help="Versioned dictionary JSON to store")
    parser.add_argument("--entities", type=str, default=None, help="JSON file of clinics to load")
    args = parser.parse_args()

    if not (args.dictionary or args.dictionary_file or args.entities):
        parser.error("nothing to seed: pass --dictionary, --dictionary-file or --entities")

    db.init_db()
    if args.dictionary:
        seed_dictionary(StaticDictionaryProvider())
    if args.dictionary_file:
        seed_dictionary(StaticDictionaryProvider.from_json(args.dictionary_file))
    if args.entities:
        seed_entities(args.entities)


if __name__ == "__main__":
    main()
