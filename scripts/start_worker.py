#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Starts a Celery worker for the scheduled promotion jobs, with the beat
# scheduler embedded so a single process covers development setups.
#
# Usage:
#   python scripts/start_worker.py
#
#   # Or use Celery CLI directly (worker and beat as separate processes)
#   celery -A workers.celery_app worker --loglevel=info -Q default,scheduled
#   celery -A workers.celery_app beat --loglevel=info
#
# Prerequisites:
#   - Redis must be running
#   - Environment variables must be set (.env file)
# =============================================================================

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app


def main():
    """Start the Celery worker with embedded beat."""
    print("=" * 60)
    print("BraidMarket Celery Worker")
    print("=" * 60)
    print()
    print("Queues: default, scheduled (beat embedded)")
    print("Press Ctrl+C to stop")
    print()

    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--queues=default,scheduled",
        "--beat",
    ])


if __name__ == "__main__":
    main()
