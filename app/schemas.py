from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ApiError(BaseModel):
    code: str
    message: str
    retryable: bool = False
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    error: ApiError


class ReportDetail(BaseModel):
    document_id: str
    issue: str
    action: str
    details: str | None = None
    old_value: Any = None
    new_value: Any = None


class Report(BaseModel):
    id: str
    timestamp: str
    entity_type: str
    total_documents: int
    inconsistencies_found: int
    repairs_applied: int
    documents_deleted: int
    errors: list[str]
    details: list[ReportDetail]
    duration_ms: int
    duration_formatted: str
    status: str


class RunCheckRequest(BaseModel):
    entity_type: str = Field(default="users", min_length=1)


class RunCheckResponse(BaseModel):
    report: Report
    message: str


class ListReportsResponse(BaseModel):
    items: list[Report]
    count: int


class ConsistencyStatus(BaseModel):
    entity_type: str
    is_consistent: bool
    last_check_time: str | None = None
    last_consistent_time: str | None = None
    all_replicas_consistent: bool
    last_report_id: str | None = None
    status: str
    is_active: bool
    latest_report: Report | None = None


class SummaryStats(BaseModel):
    total_checks: int
    total_documents: int
    total_inconsistencies: int
    total_repairs: int
    total_deleted: int
    avg_duration: float
    last_check: str | None = None
    first_check: str | None = None


class CleanupReportsRequest(BaseModel):
    days_to_keep: int | None = Field(default=None, ge=0)
    entity_type: str | None = None


class CleanupReportsResponse(BaseModel):
    deleted_count: int
    message: str
