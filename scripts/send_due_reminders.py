import argparse
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from app.db import SessionLocal
from app.logging import configure_logging
from app.services.notifications import generate_due_reminders


def parse_args():
    parser = argparse.ArgumentParser(description="Create due-date reminders for assigned open tasks.")
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="YYYY-MM-DD, defaults to today")
    parser.add_argument("--window-days", type=int, default=None)
    return parser.parse_args()


def main():
    load_dotenv()
    configure_logging()
    args = parse_args()
    db = SessionLocal()
    try:
        created = generate_due_reminders(db, today=args.today, window_days=args.window_days)
        print(f"Created {created} reminders")
    finally:
        db.close()


if __name__ == "__main__":
    main()
