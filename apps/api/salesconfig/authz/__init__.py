from salesconfig.authz.evaluator import (
    Decision,
    Evaluation,
    PermissionAction,
    PermissionEffect,
    PermissionEvaluator,
    PermissionRule,
    RuleStatus,
    evaluate,
    permission_evaluator,
)
from salesconfig.authz.models import PermissionRuleRecord, Role, RolePermission

__all__ = [
    "Role",
    "PermissionRuleRecord",
    "RolePermission",
    "PermissionAction",
    "PermissionEffect",
    "RuleStatus",
    "Decision",
    "PermissionRule",
    "Evaluation",
    "PermissionEvaluator",
    "permission_evaluator",
    "evaluate",
]
