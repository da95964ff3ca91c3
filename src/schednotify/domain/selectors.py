"""
Label selector semantics for rule matching.

A selector is a conjunction of exact-match labels (``matchLabels``) and
set-based requirements (``matchExpressions``) with the standard
Kubernetes operators. An empty selector matches every label set.

Compiling a selector validates it the way the API server would: unknown
operators, ``In``/``NotIn`` without values, ``Exists``/``DoesNotExist``
with values, and malformed label keys or values raise
:class:`~schednotify.core.errors.RuleSelectorError`. The matcher treats
that as "skip this rule", never as a fatal error.

Example:
    >>> selector = compile_selector(LabelSelector(match_labels={"team": "payments"}))
    >>> selector.matches({"team": "payments", "tier": "batch"})
    True
    >>> selector.matches({"team": "search"})
    False
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from schednotify.core.errors import RuleSelectorError

# DNS-1123 subdomain prefix, optional, followed by a qualified name
_NAME_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?)$")
_PREFIX_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")
_VALUE_RE = re.compile(r"^(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?$")


class SelectorOperator(str, Enum):
    """Set-based requirement operators."""

    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


class LabelSelectorRequirement(BaseModel):
    """One ``matchExpressions`` entry.

    ``operator`` stays a plain string here so that a rule with a typo in
    one selector can still be loaded and reported, instead of failing
    the whole rule listing.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    key: str
    operator: str
    values: tuple[str, ...] = Field(default=())

    @field_validator("values", mode="before")
    @classmethod
    def _null_values(cls, v: Any) -> Any:
        return () if v is None else v


class LabelSelector(BaseModel):
    """Declared selector: ``matchLabels`` AND ``matchExpressions``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    match_labels: dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: tuple[LabelSelectorRequirement, ...] = Field(
        default=(), alias="matchExpressions"
    )

    @field_validator("match_labels", "match_expressions", mode="before")
    @classmethod
    def _null_sections(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return {} if info.field_name == "match_labels" else ()
        return v

    @property
    def is_empty(self) -> bool:
        return not self.match_labels and not self.match_expressions


@dataclass(frozen=True)
class Requirement:
    """A validated requirement, ready to evaluate."""

    key: str
    operator: SelectorOperator
    values: frozenset[str] = frozenset()

    def matches(self, labels: Mapping[str, str]) -> bool:
        match self.operator:
            case SelectorOperator.IN:
                return self.key in labels and labels[self.key] in self.values
            case SelectorOperator.NOT_IN:
                return self.key not in labels or labels[self.key] not in self.values
            case SelectorOperator.EXISTS:
                return self.key in labels
            case SelectorOperator.DOES_NOT_EXIST:
                return self.key not in labels
        return False


@dataclass(frozen=True)
class Selector:
    """A compiled selector: every requirement must hold."""

    requirements: tuple[Requirement, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str]) -> bool:
        return all(req.matches(labels) for req in self.requirements)

    def __str__(self) -> str:
        parts = []
        for req in self.requirements:
            if req.operator is SelectorOperator.EXISTS:
                parts.append(req.key)
            elif req.operator is SelectorOperator.DOES_NOT_EXIST:
                parts.append(f"!{req.key}")
            else:
                op = "in" if req.operator is SelectorOperator.IN else "notin"
                parts.append(f"{req.key} {op} ({','.join(sorted(req.values))})")
        return ",".join(parts)


def compile_selector(selector: LabelSelector) -> Selector:
    """Validate a declared selector and compile it.

    ``matchLabels`` entries become ``In`` requirements with one value.
    Requirements are sorted by key so equal selectors compile equally.

    Raises:
        RuleSelectorError: If any requirement is invalid
    """
    requirements: list[Requirement] = []

    for key, value in selector.match_labels.items():
        _validate_key(key)
        _validate_value(key, value)
        requirements.append(Requirement(key, SelectorOperator.IN, frozenset([value])))

    for expr in selector.match_expressions:
        _validate_key(expr.key)
        try:
            op = SelectorOperator(expr.operator)
        except ValueError:
            raise RuleSelectorError(
                f"{expr.operator!r} is not a valid label selector operator"
            ).with_context(selector_key=expr.key) from None

        if op in (SelectorOperator.IN, SelectorOperator.NOT_IN):
            if not expr.values:
                raise RuleSelectorError(
                    f"values: must be specified when operator is {op.value}"
                ).with_context(selector_key=expr.key)
            for value in expr.values:
                _validate_value(expr.key, value)
        elif expr.values:
            raise RuleSelectorError(
                f"values: may not be specified when operator is {op.value}"
            ).with_context(selector_key=expr.key)

        requirements.append(Requirement(expr.key, op, frozenset(expr.values)))

    requirements.sort(key=lambda r: (r.key, r.operator.value))
    return Selector(tuple(requirements))


def _validate_key(key: str) -> None:
    prefix, _, name = key.rpartition("/")
    if not name or len(name) > 63 or not _NAME_RE.match(name):
        raise RuleSelectorError(f"invalid label key {key!r}").with_context(selector_key=key)
    if "/" in key and (not prefix or len(prefix) > 253 or not _PREFIX_RE.match(prefix)):
        raise RuleSelectorError(f"invalid label key prefix {key!r}").with_context(selector_key=key)


def _validate_value(key: str, value: str) -> None:
    if len(value) > 63 or not _VALUE_RE.match(value):
        raise RuleSelectorError(
            f"invalid label value {value!r} for key {key!r}"
        ).with_context(selector_key=key)


__all__ = [
    "SelectorOperator",
    "LabelSelectorRequirement",
    "LabelSelector",
    "Requirement",
    "Selector",
    "compile_selector",
]
