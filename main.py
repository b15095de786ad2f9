#!/usr/bin/env python3
"""
Clinic Sales Intelligence - Main Entry Point

This is a convenience wrapper that runs the scoring pipeline.
For more control, use scripts/run_scoring.py directly.

Usage:
    python main.py --all --product-id torr-rf

Environment Variables:
    CLINIC_INTEL_DB_PATH: SQLite file (default data/clinic_intel.db)
    COMPETITOR_RADIUS_KM: Competitor search radius (default 1.0)
    SCORING_CONCURRENCY: Batch worker threads, 1-5 (default 3)
"""

from scripts.run_scoring import main

if __name__ == "__main__":
    main()
