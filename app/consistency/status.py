from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from app.consistency.reports import Report


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _never_checked(entity_type: str) -> dict[str, Any]:
    return {
        "entity_type": entity_type,
        "is_consistent": False,
        "last_check_time": None,
        "last_consistent_time": None,
        "all_replicas_consistent": False,
        "last_report_id": None,
        "status": "never_checked",
    }


class StatusProjector:
    """Derives the per-entity-type consistency verdict from a finished scan."""

    def __init__(self, store) -> None:
        self._store = store

    def project(self, entity_type: str, report: Report) -> dict[str, Any]:
        consistent = report.is_consistent
        now = _now()
        previous = self._store.get_status(entity_type)
        if consistent:
            last_consistent_time: datetime | str | None = now
        else:
            last_consistent_time = previous["last_consistent_time"] if previous else None

        status = self._store.upsert_status(
            entity_type,
            {
                "is_consistent": consistent,
                "last_check_time": now,
                "last_consistent_time": last_consistent_time,
                # Replica state is not tracked; mirrors the local verdict.
                "all_replicas_consistent": consistent,
                "last_report_id": report.id,
            },
        )
        logger.info(
            "Updated consistency status for %s: %s",
            entity_type,
            "Consistent" if consistent else "Inconsistent",
        )
        return status

    def describe(self, entity_type: str) -> dict[str, Any]:
        status = self._store.get_status(entity_type)
        if status is None:
            return _never_checked(entity_type)
        described = dict(status)
        described["status"] = "consistent" if status["is_consistent"] else "inconsistent"
        return described

    def forget_report(self, entity_type: str, report_id: str) -> None:
        """Drop the status reference to a report that was never saved."""
        if self._store.clear_status_report(entity_type, report_id):
            logger.warning("Cleared status reference to unsaved report %s for %s", report_id, entity_type)
