from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select

from app.db import SessionLocal, init_db, reset_db
from app.models import DocumentModel, ReportModel, StatusModel


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat()


def _naive_utc(ts: datetime) -> datetime:
    # Columns hold naive UTC; aware values are shifted before storing or comparing.
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def _as_datetime(value: datetime | str | None) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(value)
    return _naive_utc(value)


def _document_to_dict(model: DocumentModel) -> dict[str, Any]:
    return {
        "id": model.id,
        "entity_type": model.entity_type,
        "fields": dict(model.fields or {}),
        "created_at": _iso(model.created_at),
        "updated_at": _iso(model.updated_at),
    }


def _report_to_dict(model: ReportModel) -> dict[str, Any]:
    return {
        "id": model.id,
        "timestamp": _iso(model.timestamp),
        "entity_type": model.entity_type,
        "total_documents": model.total_documents,
        "inconsistencies_found": model.inconsistencies_found,
        "repairs_applied": model.repairs_applied,
        "documents_deleted": model.documents_deleted,
        "errors": list(model.errors or []),
        "details": list(model.details or []),
        "duration_ms": model.duration_ms,
    }


def _status_to_dict(model: StatusModel) -> dict[str, Any]:
    return {
        "entity_type": model.entity_type,
        "is_consistent": model.is_consistent,
        "last_check_time": _iso(model.last_check_time),
        "last_consistent_time": _iso(model.last_consistent_time),
        "all_replicas_consistent": model.all_replicas_consistent,
        "last_report_id": model.last_report_id,
    }


class SqlStore:
    def __init__(self) -> None:
        init_db()

    def reset(self) -> None:
        reset_db()

    # -- documents ---------------------------------------------------------

    def create_document(self, entity_type: str, fields: dict[str, Any]) -> dict[str, Any]:
        with SessionLocal.begin() as session:
            document = DocumentModel(entity_type=entity_type, fields=dict(fields))
            session.add(document)
            session.flush()
            return _document_to_dict(document)

    def get_document(self, document_id: str) -> dict[str, Any] | None:
        with SessionLocal() as session:
            document = session.get(DocumentModel, document_id)
            if document is None:
                return None
            return _document_to_dict(document)

    def list_documents(self, entity_type: str) -> list[dict[str, Any]]:
        with SessionLocal() as session:
            rows = session.execute(
                select(DocumentModel).where(DocumentModel.entity_type == entity_type)
            ).scalars()
            return [_document_to_dict(row) for row in rows]

    def update_document(self, document_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        with SessionLocal.begin() as session:
            document = session.get(DocumentModel, document_id)
            if document is None:
                raise KeyError("DOCUMENT_NOT_FOUND")
            document.fields = dict(fields)
            document.updated_at = _now()
            session.flush()
            return _document_to_dict(document)

    def delete_document(self, document_id: str) -> bool:
        with SessionLocal.begin() as session:
            document = session.get(DocumentModel, document_id)
            if document is None:
                return False
            session.delete(document)
            return True

    def delete_documents(self, entity_type: str) -> int:
        with SessionLocal.begin() as session:
            result = session.execute(delete(DocumentModel).where(DocumentModel.entity_type == entity_type))
            return result.rowcount or 0

    # -- status ------------------------------------------------------------

    def get_status(self, entity_type: str) -> dict[str, Any] | None:
        with SessionLocal() as session:
            status = session.execute(
                select(StatusModel).where(StatusModel.entity_type == entity_type)
            ).scalar_one_or_none()
            if status is None:
                return None
            return _status_to_dict(status)

    def upsert_status(self, entity_type: str, record: dict[str, Any]) -> dict[str, Any]:
        with SessionLocal.begin() as session:
            status = session.execute(
                select(StatusModel).where(StatusModel.entity_type == entity_type)
            ).scalar_one_or_none()
            if status is None:
                status = StatusModel(entity_type=entity_type)
                session.add(status)
            status.is_consistent = bool(record["is_consistent"])
            status.last_check_time = _as_datetime(record["last_check_time"])
            status.last_consistent_time = _as_datetime(record.get("last_consistent_time"))
            status.all_replicas_consistent = bool(record.get("all_replicas_consistent", False))
            status.last_report_id = record.get("last_report_id")
            status.updated_at = _now()
            session.flush()
            return _status_to_dict(status)

    def clear_status_report(self, entity_type: str, report_id: str) -> bool:
        with SessionLocal.begin() as session:
            status = session.execute(
                select(StatusModel).where(StatusModel.entity_type == entity_type)
            ).scalar_one_or_none()
            if status is None or status.last_report_id != report_id:
                return False
            status.last_report_id = None
            status.updated_at = _now()
            return True

    # -- reports -----------------------------------------------------------

    def append_report(self, report: dict[str, Any]) -> dict[str, Any]:
        with SessionLocal.begin() as session:
            row = ReportModel(
                timestamp=_as_datetime(report.get("timestamp")) or _now(),
                entity_type=report["entity_type"],
                total_documents=report["total_documents"],
                inconsistencies_found=report["inconsistencies_found"],
                repairs_applied=report["repairs_applied"],
                documents_deleted=report["documents_deleted"],
                errors=list(report.get("errors", [])),
                details=list(report.get("details", [])),
                duration_ms=report["duration_ms"],
            )
            if report.get("id"):
                row.id = report["id"]
            session.add(row)
            session.flush()
            logger.info("Report saved with ID: %s", row.id)
            return _report_to_dict(row)

    def get_report(self, report_id: str) -> dict[str, Any] | None:
        with SessionLocal() as session:
            row = session.get(ReportModel, report_id)
            if row is None:
                return None
            return _report_to_dict(row)

    def query_reports(
        self,
        entity_type: str | None = None,
        limit: int | None = 50,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        stmt = select(ReportModel)
        if entity_type:
            stmt = stmt.where(ReportModel.entity_type == entity_type)
        if start is not None:
            stmt = stmt.where(ReportModel.timestamp >= _naive_utc(start))
        if end is not None:
            stmt = stmt.where(ReportModel.timestamp <= _naive_utc(end))
        stmt = stmt.order_by(ReportModel.timestamp.desc(), ReportModel.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with SessionLocal() as session:
            return [_report_to_dict(row) for row in session.execute(stmt).scalars()]

    def get_latest_report(self, entity_type: str | None = None) -> dict[str, Any] | None:
        reports = self.query_reports(entity_type=entity_type, limit=1)
        return reports[0] if reports else None

    def delete_reports_older_than(self, cutoff: datetime, entity_type: str | None = None) -> int:
        stmt = delete(ReportModel).where(ReportModel.timestamp < _naive_utc(cutoff))
        if entity_type:
            stmt = stmt.where(ReportModel.entity_type == entity_type)
        with SessionLocal.begin() as session:
            result = session.execute(stmt)
            return result.rowcount or 0

    def report_summary_stats(self, entity_type: str | None = None) -> dict[str, Any]:
        stmt = select(
            func.count(ReportModel.id),
            func.sum(ReportModel.total_documents),
            func.sum(ReportModel.inconsistencies_found),
            func.sum(ReportModel.repairs_applied),
            func.sum(ReportModel.documents_deleted),
            func.avg(ReportModel.duration_ms),
            func.max(ReportModel.timestamp),
            func.min(ReportModel.timestamp),
        )
        if entity_type:
            stmt = stmt.where(ReportModel.entity_type == entity_type)
        with SessionLocal() as session:
            row = session.execute(stmt).one()
        (
            total_checks,
            total_documents,
            total_inconsistencies,
            total_repairs,
            total_deleted,
            avg_duration,
            last_check,
            first_check,
        ) = row
        return {
            "total_checks": int(total_checks or 0),
            "total_documents": int(total_documents or 0),
            "total_inconsistencies": int(total_inconsistencies or 0),
            "total_repairs": int(total_repairs or 0),
            "total_deleted": int(total_deleted or 0),
            "avg_duration": float(avg_duration or 0.0),
            "last_check": _iso(_as_datetime(last_check)),
            "first_check": _iso(_as_datetime(first_check)),
        }


STORE = SqlStore()
