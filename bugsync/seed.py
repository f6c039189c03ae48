"""
Seed the bugs collection with sample bug reports for local development.

Uses synchronous pymongo so it can be run as a standalone command without
an async event loop.

Usage (from the project root):

  # 10 sample bugs against local Mongo
  python -m bugsync.seed

  # 50 bugs, wiping the collection first
  python -m bugsync.seed --count 50 --drop

  # Only open bugs
  python -m bugsync.seed --count 5 --status open

Environment variables:
  MONGO_URL  - MongoDB connection string (default: mongodb://localhost:27017)
  MONGO_DB   - Database name            (default: bug_tracker)
"""

import argparse
import os
import sys
from datetime import datetime, timedelta, timezone
from itertools import cycle
from typing import Dict, List, Optional

from pymongo import MongoClient

from .core.status import STATUSES
from .core.validation import validate
from .models import Bug

SAMPLE_BUGS = [
    ("Login fails", "Cannot log in with valid credentials on the login page"),
    ("Dashboard is slow", "The dashboard takes more than ten seconds to render"),
    ("Typo in footer", "The footer says 'Copyrihgt' instead of 'Copyright'"),
    ("Export crashes", "Exporting the bug list to CSV raises a server error"),
    ("Dark mode contrast", "Status badges are unreadable when dark mode is enabled"),
]


def build_bugs(count: int, status: Optional[str] = None, now: Optional[datetime] = None) -> List[Dict]:
    """Build bug documents ready for insertion, cycling through the samples.

    Without an explicit status the documents rotate through every status.
    Timestamps are spaced a minute apart so list order matches creation order.
    """
    now = now or datetime.now(timezone.utc)
    statuses = cycle([status] if status else STATUSES)
    samples = cycle(SAMPLE_BUGS)
    docs = []
    for index in range(count):
        title, description = next(samples)
        if count > len(SAMPLE_BUGS):
            title = f"{title} #{index + 1}"
        created_at = now - timedelta(minutes=count - index)
        bug = Bug(
            title=title,
            description=description,
            status=next(statuses),
            created_at=created_at,
            updated_at=created_at,
        )
        result = validate(bug.model_dump())
        if not result.valid:
            raise ValueError(f"Sample bug {title!r} is invalid: {result.field_errors}")
        docs.append(bug.to_doc())
    return docs


def positive_count(value: str) -> int:
    """argparse type for --count: an integer of at least 1."""
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if count < 1:
        raise argparse.ArgumentTypeError(f"count must be at least 1, got {count}")
    return count


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed sample bugs into MongoDB.")
    parser.add_argument("--count", type=positive_count, default=10, help="Number of bugs to insert (default: 10)")
    parser.add_argument("--status", choices=STATUSES, default=None, help="Status for every bug (default: rotate)")
    parser.add_argument("--drop", action="store_true", help="Delete existing bugs first")
    args = parser.parse_args(argv)

    mongo_url = os.getenv("MONGO_URL", "mongodb://localhost:27017")
    db_name = os.getenv("MONGO_DB", "bug_tracker")

    # Redact password in displayed URI
    display_url = mongo_url
    if "@" in mongo_url:
        prefix, rest = mongo_url.split("@", 1)
        scheme_end = prefix.find("://")
        if scheme_end != -1:
            display_url = f"{prefix[:scheme_end + 3]}***:***@{rest}"

    print(f"Connecting to MongoDB: {display_url}")
    print(f"Database: {db_name}\n")

    try:
        client = MongoClient(mongo_url, serverSelectionTimeoutMS=5000)
        client.admin.command("ping")
    except Exception as exc:
        print(f"ERROR: Could not connect to MongoDB: {exc}", file=sys.stderr)
        return 1

    db = client[db_name]

    if args.drop:
        removed = db.bugs.delete_many({}).deleted_count
        print(f"Removed {removed} existing bugs")

    docs = build_bugs(args.count, status=args.status)
    result = db.bugs.insert_many(docs)
    print(f"Inserted {len(result.inserted_ids)} bugs\n")

    print("Database Statistics:")
    for status in STATUSES:
        print(f"  {status:<12} {db.bugs.count_documents({'status': status})}")

    client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
