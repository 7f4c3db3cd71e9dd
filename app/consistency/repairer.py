from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from app.consistency.rules import RuleSet
from app.consistency.validator import Issue, coerce_number, parse_int
from app.models import FieldKind, IssueKind, RepairActionKind, Severity


@dataclass(frozen=True)
class RepairAction:
    field: str
    action: RepairActionKind
    old_value: Any
    new_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "action": self.action.value,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass(frozen=True)
class RepairResult:
    document: dict[str, Any]
    repairs: list[RepairAction] = field(default_factory=list)
    should_delete: bool = False


def _should_delete(issues: Sequence[Issue], rule_set: RuleSet) -> bool:
    # Missing required fields without a default never trigger deletion.
    return any(
        issue.severity == Severity.HIGH
        and issue.issue == IssueKind.INVALID_VALUE
        and not rule_set.has_default(issue.field)
        for issue in issues
    )


def repair_document(
    document: Mapping[str, Any],
    issues: Sequence[Issue],
    rule_set: RuleSet | None,
) -> RepairResult:
    repaired = dict(document)
    if rule_set is None:
        return RepairResult(document=repaired)

    repairs: list[RepairAction] = []
    for issue in issues:
        name = issue.field

        if issue.issue == IssueKind.MISSING_REQUIRED_FIELD:
            if rule_set.has_default(name):
                default = rule_set.default_values[name]
                repairs.append(RepairAction(name, RepairActionKind.SET_DEFAULT, repaired.get(name), default))
                repaired[name] = default

        elif issue.issue == IssueKind.INVALID_TYPE:
            current = repaired.get(name)
            if rule_set.field_types.get(name) == FieldKind.NUMBER and isinstance(current, str):
                parsed = parse_int(current)
                if parsed is not None:
                    repairs.append(RepairAction(name, RepairActionKind.TYPE_CONVERSION, current, parsed))
                    repaired[name] = parsed

        elif issue.issue == IssueKind.INVALID_VALUE:
            if name in rule_set.allowed_values and rule_set.has_default(name):
                default = rule_set.default_values[name]
                repairs.append(RepairAction(name, RepairActionKind.SET_DEFAULT, document.get(name), default))
                repaired[name] = default

        elif issue.issue == IssueKind.OUT_OF_RANGE:
            bounds = rule_set.value_ranges.get(name)
            value = coerce_number(repaired.get(name))
            if bounds is None or value is None:
                continue
            if value < bounds.min:
                repairs.append(RepairAction(name, RepairActionKind.CLAMP_TO_MIN, value, bounds.min))
                repaired[name] = bounds.min
            elif value > bounds.max:
                repairs.append(RepairAction(name, RepairActionKind.CLAMP_TO_MAX, value, bounds.max))
                repaired[name] = bounds.max

    return RepairResult(
        document=repaired,
        repairs=repairs,
        should_delete=_should_delete(issues, rule_set),
    )
