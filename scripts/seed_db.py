"""
Seed script for the Civic Dispatch store (in-memory or Firestore).

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured store: python scripts/seed_db.py --apply
  - Use another seed file: python scripts/seed_db.py --seed path/to/seed.json --apply

Behavior:
  - Loads `db_seed.json` from repo root by default.
  - Validates every authority (jurisdiction hierarchy), admin point and issue
    (timeline path and assignment consistent with its status)
    before anything is written; a single invalid document aborts the run.
  - Writes through `civic_dispatch.store.get_store()`, which returns the
    in-memory store or Firestore depending on USE_MOCK_DB.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` and
`USE_MOCK_DB=false` are set in `.env`.
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from civic_dispatch.core.errors import CivicDispatchError  # noqa: E402
from civic_dispatch.store import get_store  # noqa: E402
from civic_dispatch.store.seed import apply_seed, load_seed_file, parse_seed  # noqa: E402


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the store instead of dry-run")
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "db_seed.json"), help="Seed file path")
    args = parser.parse_args()

    if not os.path.exists(args.seed):
        print(f"Seed file not found: {args.seed}")
        return 1

    seed = load_seed_file(args.seed)

    try:
        authorities, points, issues = parse_seed(seed)
    except (CivicDispatchError, ValueError) as e:
        print(f"Seed validation failed: {e}")
        return 1

    for authority in authorities:
        print(f"Preparing: authorities/{authority.id} ({authority.name}, {authority.jurisdiction_display()})")
    for point in points:
        print(f"Preparing: admin_points/{point.pincode} ({point.district}, {point.state})")
    for issue in issues:
        print(f"Preparing: issues/{issue.id} ({issue.status.value})")

    if not args.apply:
        print("Dry run complete. Re-run with --apply to write to the store.")
        return 0

    counts = apply_seed(get_store(), seed)
    print(f"Seeding completed: {counts}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
