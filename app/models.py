from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Integer, JSON, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IssueKind(str, Enum):
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_TYPE = "invalid_type"
    INVALID_VALUE = "invalid_value"
    OUT_OF_RANGE = "out_of_range"
    CUSTOM_VALIDATION_FAILED = "custom_validation_failed"
    UNKNOWN_ENTITY_TYPE = "unknown_entity_type"


class RepairActionKind(str, Enum):
    SET_DEFAULT = "set_default"
    TYPE_CONVERSION = "type_conversion"
    CLAMP_TO_MIN = "clamp_to_min"
    CLAMP_TO_MAX = "clamp_to_max"


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


UUID_TEXT = Uuid(as_uuid=False)
JSON_DOC = JSON().with_variant(JSONB, "postgresql")


class DocumentModel(Base):
    __tablename__ = "document"

    id: Mapped[str] = mapped_column(UUID_TEXT, primary_key=True, default=_new_id)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    fields: Mapped[dict] = mapped_column(JSON_DOC, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)


class ReportModel(Base):
    __tablename__ = "consistency_report"

    id: Mapped[str] = mapped_column(UUID_TEXT, primary_key=True, default=_new_id)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, index=True)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    total_documents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    inconsistencies_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repairs_applied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents_deleted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[str]] = mapped_column(JSON_DOC, nullable=False, default=list)
    details: Mapped[list[dict]] = mapped_column(JSON_DOC, nullable=False, default=list)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class StatusModel(Base):
    __tablename__ = "consistency_status"

    id: Mapped[str] = mapped_column(UUID_TEXT, primary_key=True, default=_new_id)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    is_consistent: Mapped[bool] = mapped_column(Boolean, nullable=False)
    last_check_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_consistent_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    all_replicas_consistent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_report_id: Mapped[str | None] = mapped_column(UUID_TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
