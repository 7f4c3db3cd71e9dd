import logging
import os
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.consistency.checker import CHECKER, ScanAlreadyRunningError
from app.consistency.reports import cleanup_old_reports, format_report_for_display
from app.consistency.rules import known_entity_types
from app.schemas import (
    CleanupReportsRequest,
    CleanupReportsResponse,
    ConsistencyStatus,
    ErrorResponse,
    ListReportsResponse,
    Report,
    RunCheckRequest,
    RunCheckResponse,
    SummaryStats,
)
from app.store import STORE


logging.basicConfig(
    level=os.getenv("CONSISTENCY_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

REPORT_RETENTION_DAYS = int(os.getenv("CONSISTENCY_REPORT_RETENTION_DAYS", "30"))


app = FastAPI(title="Data Consistency Checker")


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def _error(status_code: int, code: str, message: str, retryable: bool = False) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error={"code": code, "message": message, "retryable": retryable}
        ).model_dump(),
    )


def _to_report(report: dict) -> Report:
    return Report(**format_report_for_display(report))


@app.get("/health")
def health() -> dict[str, object]:
    return {"status": "ok", "active": CHECKER.is_active()}


@app.post("/v1/checks", response_model=RunCheckResponse)
def run_check(payload: RunCheckRequest | None = None) -> RunCheckResponse:
    entity_type = payload.entity_type if payload is not None else "users"
    valid = known_entity_types()
    if entity_type not in valid:
        raise _error(
            400,
            "INVALID_ENTITY_TYPE",
            f"Invalid collection: {entity_type}. Valid collections: {', '.join(valid)}",
        )
    try:
        report = CHECKER.check_collection(entity_type)
    except ScanAlreadyRunningError as exc:
        logger.info("Rejected check for %s: another check is running", entity_type)
        raise _error(409, "CHECK_IN_PROGRESS", str(exc), retryable=True)

    try:
        saved = STORE.append_report(report.to_dict())
    except Exception:
        CHECKER.projector.forget_report(entity_type, report.id)
        raise
    return RunCheckResponse(
        report=_to_report(saved),
        message=f"Consistency check completed for {entity_type}",
    )


@app.get("/v1/reports/latest", response_model=Report)
def get_latest_report(entity_type: str | None = None) -> Report:
    report = STORE.get_latest_report(entity_type)
    if report is None:
        raise _error(404, "REPORT_NOT_FOUND", "No reports found")
    return _to_report(report)


@app.get("/v1/reports", response_model=ListReportsResponse)
def list_reports(
    entity_type: str | None = None,
    limit: int = 20,
    start: datetime | None = None,
    end: datetime | None = None,
) -> ListReportsResponse:
    if limit < 1:
        raise _error(400, "INVALID_LIMIT", "limit must be positive")
    items = [
        _to_report(report)
        for report in STORE.query_reports(entity_type=entity_type, limit=limit, start=start, end=end)
    ]
    return ListReportsResponse(items=items, count=len(items))


@app.get("/v1/status", response_model=ConsistencyStatus)
def get_status(entity_type: str = "users") -> ConsistencyStatus:
    status = CHECKER.projector.describe(entity_type)
    latest = STORE.get_latest_report(entity_type)
    return ConsistencyStatus(
        **status,
        is_active=CHECKER.is_active(),
        latest_report=_to_report(latest) if latest is not None else None,
    )


@app.get("/v1/stats", response_model=SummaryStats)
def get_stats(entity_type: str | None = None) -> SummaryStats:
    return SummaryStats(**STORE.report_summary_stats(entity_type))


@app.post("/v1/reports/cleanup", response_model=CleanupReportsResponse)
def cleanup_reports(payload: CleanupReportsRequest | None = None) -> CleanupReportsResponse:
    payload = payload or CleanupReportsRequest()
    days_to_keep = payload.days_to_keep if payload.days_to_keep is not None else REPORT_RETENTION_DAYS
    deleted = cleanup_old_reports(STORE, days_to_keep=days_to_keep, entity_type=payload.entity_type)
    return CleanupReportsResponse(
        deleted_count=deleted,
        message=f"Cleaned up {deleted} old reports",
    )
