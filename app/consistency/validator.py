from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from app.consistency.rules import RuleSet
from app.models import FieldKind, IssueKind, Severity


_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class Issue:
    field: str
    issue: IssueKind
    severity: Severity
    description: str

    def to_dict(self) -> dict[str, str]:
        return {
            "field": self.field,
            "issue": self.issue.value,
            "severity": self.severity.value,
            "description": self.description,
        }


def parse_int(value: str) -> int | None:
    """Parse the leading integer of *value*, or return ``None``.

    Surrounding whitespace and trailing text are tolerated (``" 42"`` and
    ``"42abc"`` both give 42); a string without leading digits is unparsable.
    """
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return None
    return int(match.group(1))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def kind_of(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return FieldKind.BOOLEAN.value
    if is_number(value):
        return FieldKind.NUMBER.value
    if isinstance(value, str):
        return FieldKind.STRING.value
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def coerce_number(value: Any) -> int | float | None:
    if isinstance(value, str):
        return parse_int(value)
    if is_number(value):
        return value
    return None


def _is_member(value: Any, allowed: tuple[Any, ...]) -> bool:
    # Numbers match by value; booleans only match booleans.
    return any(
        candidate == value and isinstance(candidate, bool) == isinstance(value, bool)
        for candidate in allowed
    )


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def validate_document(
    document: Mapping[str, Any],
    rule_set: RuleSet | None,
    entity_type: str | None = None,
) -> list[Issue]:
    if rule_set is None:
        name = entity_type or "unknown"
        return [
            Issue(
                field="",
                issue=IssueKind.UNKNOWN_ENTITY_TYPE,
                severity=Severity.LOW,
                description=f"No validation rules found for collection: {name}",
            )
        ]

    issues: list[Issue] = []

    for field_name in rule_set.required_fields:
        if _is_blank(document.get(field_name)):
            issues.append(
                Issue(
                    field=field_name,
                    issue=IssueKind.MISSING_REQUIRED_FIELD,
                    severity=Severity.HIGH,
                    description=f"Required field '{field_name}' is missing or empty",
                )
            )

    for field_name, expected in rule_set.field_types.items():
        if field_name not in document:
            continue
        value = document[field_name]
        actual = kind_of(value)
        if expected == FieldKind.NUMBER and actual == FieldKind.STRING.value:
            if parse_int(value) is None:
                issues.append(
                    Issue(
                        field=field_name,
                        issue=IssueKind.INVALID_TYPE,
                        severity=Severity.MEDIUM,
                        description=(
                            f"Field '{field_name}' should be {expected.value} but is {actual} "
                            "and cannot be parsed"
                        ),
                    )
                )
        elif actual != expected.value:
            issues.append(
                Issue(
                    field=field_name,
                    issue=IssueKind.INVALID_TYPE,
                    severity=Severity.MEDIUM,
                    description=f"Field '{field_name}' should be {expected.value} but is {actual}",
                )
            )

    for field_name, allowed in rule_set.allowed_values.items():
        if field_name not in document:
            continue
        value = document[field_name]
        if not _is_member(value, allowed):
            choices = ", ".join(str(choice) for choice in allowed)
            issues.append(
                Issue(
                    field=field_name,
                    issue=IssueKind.INVALID_VALUE,
                    severity=Severity.HIGH,
                    description=f"Field '{field_name}' has invalid value '{value}'. Allowed: {choices}",
                )
            )

    for field_name, bounds in rule_set.value_ranges.items():
        if field_name not in document:
            continue
        value = coerce_number(document[field_name])
        if value is None:
            continue
        if value < bounds.min or value > bounds.max:
            issues.append(
                Issue(
                    field=field_name,
                    issue=IssueKind.OUT_OF_RANGE,
                    severity=Severity.MEDIUM,
                    description=(
                        f"Field '{field_name}' value {value} is out of range "
                        f"[{bounds.min}, {bounds.max}]"
                    ),
                )
            )

    for field_name, predicate in rule_set.custom_validations.items():
        if field_name not in document:
            continue
        try:
            passed = bool(predicate(document[field_name]))
            reason = ""
        except Exception as exc:
            passed = False
            reason = f": {exc}"
        if not passed:
            issues.append(
                Issue(
                    field=field_name,
                    issue=IssueKind.CUSTOM_VALIDATION_FAILED,
                    severity=Severity.MEDIUM,
                    description=f"Field '{field_name}' failed custom validation{reason}",
                )
            )

    return issues
