#!/usr/bin/env python3
"""Trigger a consistency check over HTTP; meant to be run from cron.

A check that is already running (HTTP 409) is logged and skipped.

Usage:
    python scripts/schedule_check.py
    python scripts/schedule_check.py --base-url http://localhost:8000 --entity-type users
"""
from __future__ import annotations

import argparse
import logging
import os
import sys

import requests


logger = logging.getLogger("schedule_check")

DEFAULT_BASE_URL = os.getenv("CONSISTENCY_API_URL", "http://localhost:8000")


def server_is_up(base_url: str, timeout: float = 10.0) -> bool:
    try:
        response = requests.get(f"{base_url}/health", timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Health check failed: %s", exc)
        return False
    return response.status_code == 200


def trigger_check(base_url: str, entity_type: str, timeout: float = 300.0) -> int:
    """Return a process exit code: 0 on success or skip, 1 on failure."""
    logger.info("Starting scheduled consistency check for collection: %s", entity_type)
    try:
        response = requests.post(
            f"{base_url}/v1/checks",
            json={"entity_type": entity_type},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.error("Failed to trigger consistency check: %s", exc)
        return 1

    if response.status_code == 200:
        report = response.json()["report"]
        logger.info(
            "Consistency check completed: status=%s inconsistencies=%d repairs=%d deleted=%d",
            report["status"],
            report["inconsistencies_found"],
            report["repairs_applied"],
            report["documents_deleted"],
        )
        return 0
    if response.status_code == 409:
        logger.info("Consistency check already in progress, skipping")
        return 0
    logger.error("Failed to trigger consistency check (HTTP %d): %s", response.status_code, response.text)
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Trigger a scheduled consistency check")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="API base URL")
    parser.add_argument("--entity-type", default="users", help="Collection to check")
    parser.add_argument("--log-file", default=None, help="Append log lines to this file")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        filename=args.log_file,
        format="%(asctime)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    base_url = args.base_url.rstrip("/")
    if not server_is_up(base_url):
        logger.error("Server is not running at %s", base_url)
        return 1
    return trigger_check(base_url, args.entity_type)


if __name__ == "__main__":
    sys.exit(main())
