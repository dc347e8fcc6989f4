from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class PermissionAction(StrEnum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    VIEW = "view"
    EDIT = "edit"
    PUBLISH = "publish"
    APPROVE = "approve"
    REJECT = "reject"
    EXPORT = "export"
    IMPORT = "import"
    SHARE = "share"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    ADMIN = "admin"
    MANAGE = "manage"
    ANY = "*"


class PermissionEffect(StrEnum):
    ALLOW = "allow"
    DENY = "deny"


class RuleStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Decision(StrEnum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    NO_MATCH = "NO_MATCH"


@dataclass(frozen=True, slots=True)
class PermissionRule:
    resource_id: str
    action: str
    effect: str
    conditions: Mapping[str, Any] | None = None
    status: str = RuleStatus.ACTIVE
    id: str | None = None


@dataclass(frozen=True, slots=True)
class Evaluation:
    decision: Decision
    rule: PermissionRule | None = None


def conditions_match(conditions: Mapping[str, Any] | None, context: Mapping[str, Any]) -> bool:
    """Every condition key must be present in ``context`` with an equal value."""

    if not conditions:
        return True
    return all(key in context and context[key] == expected for key, expected in conditions.items())


class PermissionEvaluator:
    """Deny-overrides-allow evaluation of a role's permission rules.

    Exact-action rules are consulted before ``*`` rules, and a matching deny in
    either partition beats any allow. ``NO_MATCH`` is returned when no active rule
    applies; the caller decides what that means.
    """

    def evaluate(
        self,
        rules: Iterable[PermissionRule],
        resource_id: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> Decision:
        return self.explain(rules, resource_id, action, context).decision

    def explain(
        self,
        rules: Iterable[PermissionRule],
        resource_id: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> Evaluation:
        ctx = context or {}
        candidates = [
            rule
            for rule in rules
            if rule.status == RuleStatus.ACTIVE and rule.resource_id == resource_id
        ]
        exact = [rule for rule in candidates if rule.action == action and conditions_match(rule.conditions, ctx)]
        wildcard = []
        if action != PermissionAction.ANY:
            wildcard = [
                rule
                for rule in candidates
                if rule.action == PermissionAction.ANY and conditions_match(rule.conditions, ctx)
            ]

        for effect, decision in ((PermissionEffect.DENY, Decision.DENY), (PermissionEffect.ALLOW, Decision.ALLOW)):
            for partition in (exact, wildcard):
                rule = next((item for item in partition if item.effect == effect), None)
                if rule is not None:
                    return Evaluation(decision=decision, rule=rule)
        return Evaluation(decision=Decision.NO_MATCH)


permission_evaluator = PermissionEvaluator()


def evaluate(
    rules: Iterable[PermissionRule],
    resource_id: str,
    action: str,
    context: Mapping[str, Any] | None = None,
) -> Decision:
    return permission_evaluator.evaluate(rules, resource_id, action, context)
