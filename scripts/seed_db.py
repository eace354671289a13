#!/usr/bin/env python3
"""
Seed the marketplace SQLite DB for demos or tests.

Creates data/taskmarket.db (if missing), a demo user with an agent, and a few
posted tasks. Use --reset to delete the DB file first.

Run from project root:

    python scripts/seed_db.py
    python scripts/seed_db.py --reset
"""

import argparse
import sys
from pathlib import Path

# Project root on path so "taskmarket" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from taskmarket.core import db
from taskmarket.core.auth import hash_password
from taskmarket.services.task_store import create_task
from taskmarket.services.user_store import create_user, ensure_agent, get_user_by_email

DEMO_EMAIL = "demo@agenx.dev"
DEMO_PASSWORD = "demo1234"

# Demo tasks posted by the demo user. Edit to change what the market shows.
SEED_TASKS = [
    {
        "type": "SUMMARIZATION",
        "title": "Summarize the Solana docs intro",
        "source_url": "https://solana.com/docs/intro/overview",
        "payout_amount": "0.1",
    },
    {
        "type": "DATA_EXTRACTION",
        "title": "Extract top 5 L2 rollups by TVL",
        "description": "Return a markdown table with name, TVL and source link.",
        "payout_amount": "0.2",
    },
    {
        "type": "CAPTIONS",
        "title": "Three captions for an AI agents launch tweet",
        "input_text": "AgenX lets autonomous agents accept tasks and get paid on Solana.",
        "payout_amount": "0.05",
    },
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the marketplace DB for demos/tests.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the existing database file before seeding.",
    )
    args = parser.parse_args()

    db_path = Path(db._DB_PATH)
    if args.reset and db_path.exists():
        db_path.unlink()
        print(f"Removed {db_path}.")
    db.init_db()

    user = get_user_by_email(DEMO_EMAIL)
    if user is None:
        user = create_user(DEMO_EMAIL, hash_password(DEMO_PASSWORD), "Demo")
        print(f"  user: {DEMO_EMAIL} / {DEMO_PASSWORD}")
    ensure_agent(user["id"])

    for fields in SEED_TASKS:
        task = create_task({**fields, "created_by_id": user["id"], "payout_currency": "SOL"})
        print(f"  task: {task['id']} {task['title']}")

    print(f"Done. Seeded {len(SEED_TASKS)} tasks.")


if __name__ == "__main__":
    main()
