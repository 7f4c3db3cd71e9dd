#!/usr/bin/env python3
"""Insert sample ``users`` documents covering every kind of inconsistency.

Usage:
    python scripts/seed_users.py
    python scripts/seed_users.py --keep-existing
"""
from __future__ import annotations

import argparse
import sys
from collections import Counter
from typing import Any

# Ensure the project root is importable
sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parents[1]))

from app.consistency.rules import USERS_RULES  # noqa: E402
from app.consistency.validator import validate_document  # noqa: E402
from app.store import STORE  # noqa: E402


SAMPLE_USERS: list[dict[str, Any]] = [
    # valid
    {"name": "John Doe", "email": "john.doe@example.com", "age": 30, "role": "user", "isActive": True},
    {"name": "Jane Smith", "email": "jane.smith@example.com", "age": 25, "role": "admin", "isActive": True},
    # missing required fields
    {"name": "Bob Johnson", "age": 35, "role": "user", "isActive": True},
    {"email": "alice@example.com", "age": 28, "role": "user", "isActive": True},
    # wrong types
    {"name": "Charlie Brown", "email": "charlie@example.com", "age": "42", "role": "user", "isActive": True},
    {"name": "Diana Prince", "email": "diana@example.com", "age": "not-a-number", "role": "user", "isActive": True},
    # invalid values
    {"name": "Eve Wilson", "email": "eve@example.com", "age": 25, "role": "superuser", "isActive": True},
    {"name": "Frank Miller", "email": "frank@example.com", "age": -5, "role": "user", "isActive": True},
    {"name": "Grace Lee", "email": "grace@example.com", "age": 200, "role": "user", "isActive": True},
    # malformed email
    {"name": "Henry Ford", "email": "invalid-email", "age": 45, "role": "user", "isActive": True},
    {"name": "Iris West", "email": "iris@", "age": 32, "role": "user", "isActive": True},
    # null / empty
    {"name": "Jack Ryan", "email": None, "age": 40, "role": "user", "isActive": True},
    {"name": "Kate Kane", "email": "", "age": 29, "role": "user", "isActive": True},
    # optional fields absent
    {"name": "Luke Cage", "email": "luke@example.com", "role": "user", "isActive": True},
    {"name": "Maria Hill", "email": "maria@example.com", "age": 33, "isActive": True},
    # edge cases
    {"name": "Nick Fury", "email": "nick@example.com", "age": "50", "role": "admin", "isActive": False},
    {"name": "Oliver Queen", "email": "oliver@example.com", "age": 35, "role": "moderator", "isActive": True},
    {"name": "Pepper Potts", "email": "pepper@example.com", "age": 30, "role": "user", "isActive": True},
    {"name": "Quentin Beck", "email": "quentin@example.com", "age": "abc", "role": "user", "isActive": True},
]


def summarize(users: list[dict[str, Any]]) -> dict[str, int]:
    """Count the issues the validator will find in *users*, by issue kind."""
    counts: Counter[str] = Counter()
    for user in users:
        for issue in validate_document(user, USERS_RULES):
            counts[issue.issue.value] += 1
    return dict(sorted(counts.items()))


def seed(keep_existing: bool = False) -> list[dict[str, Any]]:
    if not keep_existing:
        STORE.delete_documents(USERS_RULES.entity_type)
    return [STORE.create_document(USERS_RULES.entity_type, user) for user in SAMPLE_USERS]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed sample users with known inconsistencies")
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Append to the users collection instead of clearing it first",
    )
    args = parser.parse_args(argv)

    inserted = seed(keep_existing=args.keep_existing)
    print(f"Inserted {len(inserted)} users")
    print("Expected issues:")
    for kind, count in summarize(SAMPLE_USERS).items():
        print(f"  {kind}: {count}")


if __name__ == "__main__":
    main()
