from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4


logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Report:
    """Outcome of one scan.

    Mutated while the scan runs, then handed to storage once ``duration_ms``
    is stamped. The id is assigned up front so the status record written at
    the end of the scan can point at it.
    """

    entity_type: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)
    total_documents: int = 0
    inconsistencies_found: int = 0
    repairs_applied: int = 0
    documents_deleted: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def is_consistent(self) -> bool:
        return is_consistent(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "entity_type": self.entity_type,
            "total_documents": self.total_documents,
            "inconsistencies_found": self.inconsistencies_found,
            "repairs_applied": self.repairs_applied,
            "documents_deleted": self.documents_deleted,
            "errors": list(self.errors),
            "details": [dict(detail) for detail in self.details],
            "duration_ms": self.duration_ms,
        }


def is_consistent(report: dict[str, Any]) -> bool:
    found = report["inconsistencies_found"]
    return found == 0 or found == report["repairs_applied"] + report["documents_deleted"]


def format_duration(duration_ms: int | float) -> str:
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    if duration_ms < 60000:
        return f"{duration_ms / 1000:.2f}s"
    return f"{duration_ms / 60000:.2f}m"


def report_status(report: dict[str, Any]) -> str:
    if report.get("errors"):
        return "error"
    if report["inconsistencies_found"] == 0:
        return "clean"
    if is_consistent(report):
        return "repaired"
    return "partial"


def format_report_for_display(report: dict[str, Any] | None) -> dict[str, Any] | None:
    if report is None:
        return None
    formatted = dict(report)
    formatted["duration_formatted"] = format_duration(report["duration_ms"])
    formatted["status"] = report_status(report)
    return formatted


def cleanup_old_reports(store, days_to_keep: int = 30, entity_type: str | None = None) -> int:
    """Delete reports older than *days_to_keep* days; returns the count removed."""
    if days_to_keep < 0:
        raise ValueError("INVALID_RETENTION")
    cutoff = _now() - timedelta(days=days_to_keep)
    deleted = store.delete_reports_older_than(cutoff, entity_type)
    logger.info("Cleaned up %d old reports", deleted)
    return deleted
