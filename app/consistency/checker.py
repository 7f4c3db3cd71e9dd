from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping

from app.consistency.repairer import repair_document
from app.consistency.reports import Report
from app.consistency.rules import VALIDATION_RULES, RuleSet
from app.consistency.status import StatusProjector
from app.consistency.validator import validate_document
from app.store import STORE


logger = logging.getLogger(__name__)

# Shared by every checker instance: one scan of any entity type at a time per process.
_SCAN_LOCK = threading.Lock()


class ScanAlreadyRunningError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("Consistency check already in progress")


def _join_descriptions(issues) -> str:
    return "; ".join(issue.description for issue in issues)


class ConsistencyChecker:
    def __init__(self, store, rules: Mapping[str, RuleSet] | None = None) -> None:
        self._store = store
        self._rules = VALIDATION_RULES if rules is None else rules
        self._projector = StatusProjector(store)

    @property
    def projector(self) -> StatusProjector:
        return self._projector

    def is_active(self) -> bool:
        return _SCAN_LOCK.locked()

    def check_collection(self, entity_type: str) -> Report:
        if not _SCAN_LOCK.acquire(blocking=False):
            raise ScanAlreadyRunningError()

        started = time.monotonic()
        report = Report(entity_type=entity_type)
        rule_set = self._rules.get(entity_type)
        try:
            logger.info("Starting consistency check for collection: %s", entity_type)
            documents = self._store.list_documents(entity_type)
            report.total_documents = len(documents)
            logger.info("Found %d documents to check", len(documents))

            for document in documents:
                try:
                    self._check_document(document, rule_set, report)
                except Exception as exc:
                    message = f"Error processing document {document.get('id')}: {exc}"
                    report.errors.append(message)
                    logger.error(message)

            self._projector.project(entity_type, report)
        except Exception as exc:
            message = f"Consistency check failed: {exc}"
            report.errors.append(message)
            logger.exception(message)
        finally:
            report.duration_ms = int((time.monotonic() - started) * 1000)
            _SCAN_LOCK.release()
            logger.info(
                "Consistency check completed for %s: total=%d inconsistencies=%d repairs=%d "
                "deleted=%d errors=%d duration=%dms",
                entity_type,
                report.total_documents,
                report.inconsistencies_found,
                report.repairs_applied,
                report.documents_deleted,
                len(report.errors),
                report.duration_ms,
            )

        return report

    def _check_document(self, document: dict[str, Any], rule_set: RuleSet | None, report: Report) -> None:
        document_id = str(document["id"])
        fields = document.get("fields") or {}

        issues = validate_document(fields, rule_set, report.entity_type)
        if not issues:
            return
        report.inconsistencies_found += len(issues)

        result = repair_document(fields, issues, rule_set)
        if result.should_delete:
            self._store.delete_document(document_id)
            report.documents_deleted += 1
            report.details.append(
                {
                    "document_id": document_id,
                    "issue": "irreparable_document",
                    "action": "deleted",
                    "details": _join_descriptions(issues),
                }
            )
            logger.info("Deleted irreparable document: %s", document_id)
        elif result.repairs:
            self._store.update_document(document_id, result.document)
            report.repairs_applied += len(result.repairs)
            for repair in result.repairs:
                report.details.append(
                    {
                        "document_id": document_id,
                        "issue": f"{repair.field}: {repair.action.value}",
                        "action": "repaired",
                        "old_value": repair.old_value,
                        "new_value": repair.new_value,
                    }
                )
            logger.debug("Repaired document: %s with %d fixes", document_id, len(result.repairs))
        else:
            report.details.append(
                {
                    "document_id": document_id,
                    "issue": "unrepaired_issues",
                    "action": "none",
                    "details": _join_descriptions(issues),
                }
            )


CHECKER = ConsistencyChecker(STORE)
