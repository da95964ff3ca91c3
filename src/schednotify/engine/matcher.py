"""Rule matching.

Selects the rules that apply to an owner object and, inside each rule,
the notification tuples activated by the classified status.

A rule is eligible when, in this order:

1. its target kind equals the owner's kind, and the owner kind is the
   one the pipeline is dispatching for (hard gate, checked first);
2. it lives in the owner's namespace;
3. its label selector matches the owner's labels (empty matches all).

Every tuple whose status equals the classified status, compared
case-insensitively, is activated. Duplicates are not collapsed: two
tuples for ``failed`` and ``Failed`` produce two activations.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from schednotify.core.errors import RuleSelectorError
from schednotify.core.logging import get_logger
from schednotify.domain.rules import NotificationRule, NotificationSpec
from schednotify.domain.selectors import compile_selector
from schednotify.domain.workload import OWNER_KIND_FOR, OwnerObject, WorkloadKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class Activation:
    """One (rule, tuple) pair that should be dispatched."""

    rule: NotificationRule
    index: int
    notification: NotificationSpec

    @property
    def rule_key(self) -> str:
        return self.rule.key


@dataclass
class MatchResult:
    """Activations plus bookkeeping about what was skipped and why."""

    activations: list[Activation] = field(default_factory=list)
    eligible_rules: list[str] = field(default_factory=list)
    selector_errors: list[RuleSelectorError] = field(default_factory=list)
    rules_evaluated: int = 0


def match_rules(
    rules: Iterable[NotificationRule],
    owner: OwnerObject,
    status: str,
    *,
    workload_kind: WorkloadKind | None = None,
) -> MatchResult:
    """Select activated (rule, tuple) pairs for ``owner`` in ``status``.

    Args:
        rules: Declared rules (normally those of the owner's namespace)
        owner: Schedule object the workload instance belongs to
        status: Classified status
        workload_kind: Kind of instance being dispatched for; when given,
            a rule only passes the kind gate if the owner kind is the one
            that creates this workload kind

    Invalid selectors are logged and collected, never raised.
    """
    result = MatchResult()

    for rule in rules:
        result.rules_evaluated += 1

        target = rule.spec.target_kind
        if target is None:
            logger.warning(
                "matcher.unsupported_target",
                rule=rule.key,
                target_resource=rule.spec.target_resource,
            )
            continue
        if target is not owner.kind:
            continue
        if workload_kind is not None and OWNER_KIND_FOR[workload_kind] is not target:
            continue

        if rule.namespace != owner.namespace:
            continue

        try:
            selector = compile_selector(rule.spec.label_selector)
        except RuleSelectorError as e:
            e.with_context(rule=rule.key, namespace=rule.namespace, owner=owner.key)
            result.selector_errors.append(e)
            logger.error(
                "matcher.invalid_selector",
                rule=rule.key,
                owner=owner.key,
                error=e.message,
            )
            continue

        if not selector.matches(owner.labels):
            continue

        result.eligible_rules.append(rule.key)
        for index, notification in enumerate(rule.spec.notifications):
            if notification.applies_to(status):
                result.activations.append(Activation(rule, index, notification))

    logger.debug(
        "matcher.done",
        owner=owner.key,
        status=status,
        evaluated=result.rules_evaluated,
        eligible=len(result.eligible_rules),
        activated=len(result.activations),
    )
    return result


__all__ = ["Activation", "MatchResult", "match_rules"]
