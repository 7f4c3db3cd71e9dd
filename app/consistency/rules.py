"""Declarative validation rules, one rule set per entity type.

Rules are version-controlled configuration: bump ``RULES_VERSION`` whenever a
rule set changes. A scan reads the registry once at entry and uses that
snapshot for every document it touches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from app.models import FieldKind


RULES_VERSION = "1.0.0"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and _EMAIL_RE.match(value) is not None


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float


@dataclass(frozen=True)
class RuleSet:
    entity_type: str
    required_fields: tuple[str, ...] = ()
    field_types: Mapping[str, FieldKind] = field(default_factory=dict)
    allowed_values: Mapping[str, tuple[Any, ...]] = field(default_factory=dict)
    value_ranges: Mapping[str, ValueRange] = field(default_factory=dict)
    default_values: Mapping[str, Any] = field(default_factory=dict)
    custom_validations: Mapping[str, Callable[[Any], bool]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "required_fields", tuple(self.required_fields))
        object.__setattr__(self, "field_types", _frozen(self.field_types))
        object.__setattr__(
            self,
            "allowed_values",
            _frozen({name: tuple(values) for name, values in self.allowed_values.items()}),
        )
        object.__setattr__(self, "value_ranges", _frozen(self.value_ranges))
        object.__setattr__(self, "default_values", _frozen(self.default_values))
        object.__setattr__(self, "custom_validations", _frozen(self.custom_validations))

    def has_default(self, field_name: str) -> bool:
        return field_name in self.default_values


USERS_RULES = RuleSet(
    entity_type="users",
    required_fields=("name", "email"),
    field_types={
        "name": FieldKind.STRING,
        "email": FieldKind.STRING,
        "age": FieldKind.NUMBER,
        "role": FieldKind.STRING,
        "isActive": FieldKind.BOOLEAN,
    },
    allowed_values={"role": ("user", "admin", "moderator")},
    value_ranges={"age": ValueRange(min=0, max=150)},
    default_values={
        "email": "missing@example.com",
        "age": 0,
        "role": "user",
        "isActive": True,
    },
    custom_validations={"email": is_valid_email},
)


VALIDATION_RULES: Mapping[str, RuleSet] = MappingProxyType({USERS_RULES.entity_type: USERS_RULES})


def get_rule_set(entity_type: str, rules: Mapping[str, RuleSet] | None = None) -> RuleSet | None:
    registry = VALIDATION_RULES if rules is None else rules
    return registry.get(entity_type)


def known_entity_types(rules: Mapping[str, RuleSet] | None = None) -> list[str]:
    registry = VALIDATION_RULES if rules is None else rules
    return sorted(registry)
