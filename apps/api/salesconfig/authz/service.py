from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesconfig import audit
from salesconfig.authz.errors import PermissionDeniedError
from salesconfig.authz.evaluator import Decision, Evaluation, PermissionEvaluator, PermissionRule, permission_evaluator
from salesconfig.authz.models import PermissionRuleRecord, Role, RolePermission
from salesconfig.authz.schemas import (
    PermissionRuleCreate,
    PermissionRuleRead,
    PermissionRuleUpdate,
    RoleCreate,
    RolePermissionRead,
    RoleRead,
    RoleUpdate,
)
from salesconfig.core.config import get_settings
from salesconfig.metrics import observe_permission_decision


logger = logging.getLogger("salesconfig.authz")


class AuthorizationAdminService:
    def create_role(self, session: Session, dto: RoleCreate) -> RoleRead:
        role = Role(name=dto.name.strip(), description=dto.description, is_system=dto.is_system)
        session.add(role)
        self._commit(session, conflict_detail="role already exists")
        session.refresh(role)
        return RoleRead.model_validate(role)

    def list_roles(self, session: Session) -> list[RoleRead]:
        rows = session.scalars(select(Role).order_by(Role.name.asc())).all()
        return [RoleRead.model_validate(row) for row in rows]

    def update_role(self, session: Session, role_id: uuid.UUID, dto: RoleUpdate) -> RoleRead:
        role = self._get_mutable_role(session, role_id, verb="modified")
        if dto.name is not None:
            role.name = dto.name.strip()
        if dto.description is not None:
            role.description = dto.description
        self._commit(session, conflict_detail="role already exists")
        session.refresh(role)
        return RoleRead.model_validate(role)

    def delete_role(self, session: Session, role_id: uuid.UUID) -> None:
        role = self._get_mutable_role(session, role_id, verb="deleted")
        session.delete(role)
        session.commit()

    def create_permission(self, session: Session, dto: PermissionRuleCreate, *, actor_user_id: str) -> PermissionRuleRead:
        rule = PermissionRuleRecord(
            resource_id=dto.resource_id.strip(),
            action=dto.action.value,
            effect=dto.effect.value,
            conditions=dto.conditions or None,
            status=dto.status.value,
            description=dto.description,
        )
        session.add(rule)
        self._commit(
            session,
            conflict_detail=f"permission for resource '{rule.resource_id}' with action '{rule.action}' and effect '{rule.effect}' already exists",
        )
        session.refresh(rule)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="authz.permission_rule",
            entity_id=str(rule.id),
            action="permission_rule.created",
            before=None,
            after=self._audit_snapshot(rule),
        )
        return PermissionRuleRead.model_validate(rule)

    def list_permissions(
        self,
        session: Session,
        *,
        resource_id: str | None = None,
        rule_status: str | None = None,
    ) -> list[PermissionRuleRead]:
        stmt = select(PermissionRuleRecord)
        if resource_id is not None:
            stmt = stmt.where(PermissionRuleRecord.resource_id == resource_id)
        if rule_status is not None:
            stmt = stmt.where(PermissionRuleRecord.status == rule_status)
        rows = session.scalars(
            stmt.order_by(
                PermissionRuleRecord.resource_id.asc(),
                PermissionRuleRecord.action.asc(),
                PermissionRuleRecord.effect.asc(),
            )
        ).all()
        return [PermissionRuleRead.model_validate(row) for row in rows]

    def update_permission(
        self,
        session: Session,
        permission_id: uuid.UUID,
        dto: PermissionRuleUpdate,
        *,
        actor_user_id: str,
    ) -> PermissionRuleRead:
        rule = self._get_permission(session, permission_id)
        before = self._audit_snapshot(rule)

        if dto.action is not None:
            rule.action = dto.action.value
        if dto.effect is not None:
            rule.effect = dto.effect.value
        if "conditions" in dto.model_fields_set:
            rule.conditions = dto.conditions or None
        if dto.status is not None:
            rule.status = dto.status.value
        if dto.description is not None:
            rule.description = dto.description

        self._commit(session, conflict_detail="permission already exists")
        session.refresh(rule)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="authz.permission_rule",
            entity_id=str(rule.id),
            action="permission_rule.updated",
            before=before,
            after=self._audit_snapshot(rule),
        )
        return PermissionRuleRead.model_validate(rule)

    def delete_permission(self, session: Session, permission_id: uuid.UUID, *, actor_user_id: str) -> None:
        rule = self._get_permission(session, permission_id)
        before = self._audit_snapshot(rule)
        session.delete(rule)
        session.commit()
        audit.record(
            actor_user_id=actor_user_id,
            entity_type="authz.permission_rule",
            entity_id=str(permission_id),
            action="permission_rule.deleted",
            before=before,
            after=None,
        )

    def attach_permission_to_role(self, session: Session, role_id: uuid.UUID, permission_id: uuid.UUID) -> RolePermissionRead:
        role = self._get_role(session, role_id)
        rule = self._get_permission(session, permission_id)

        mapping = session.scalar(
            select(RolePermission).where(
                and_(RolePermission.role_id == role_id, RolePermission.permission_id == permission_id)
            )
        )
        if mapping is None:
            mapping = RolePermission(role_id=role_id, permission_id=permission_id)
            session.add(mapping)
            session.commit()
            session.refresh(mapping)

        return self._to_role_permission_read(mapping, role, rule)

    def list_role_permissions(self, session: Session, role_id: uuid.UUID | None = None) -> list[RolePermissionRead]:
        stmt = (
            select(RolePermission, Role, PermissionRuleRecord)
            .join(Role, RolePermission.role_id == Role.id)
            .join(PermissionRuleRecord, RolePermission.permission_id == PermissionRuleRecord.id)
            .order_by(Role.name.asc(), PermissionRuleRecord.resource_id.asc(), PermissionRuleRecord.action.asc())
        )
        if role_id is not None:
            stmt = stmt.where(RolePermission.role_id == role_id)

        rows = session.execute(stmt).all()
        return [self._to_role_permission_read(mapping, role, rule) for mapping, role, rule in rows]

    def detach_permission_from_role(self, session: Session, role_id: uuid.UUID, permission_id: uuid.UUID) -> None:
        mapping = session.scalar(
            select(RolePermission).where(
                and_(RolePermission.role_id == role_id, RolePermission.permission_id == permission_id)
            )
        )
        if mapping is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="role-permission mapping not found")

        session.delete(mapping)
        session.commit()

    def _get_role(self, session: Session, role_id: uuid.UUID) -> Role:
        role = session.scalar(select(Role).where(Role.id == role_id))
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="role not found")
        return role

    def _get_mutable_role(self, session: Session, role_id: uuid.UUID, *, verb: str) -> Role:
        role = self._get_role(session, role_id)
        if role.is_system:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"system role cannot be {verb}")
        return role

    def _get_permission(self, session: Session, permission_id: uuid.UUID) -> PermissionRuleRecord:
        rule = session.scalar(select(PermissionRuleRecord).where(PermissionRuleRecord.id == permission_id))
        if rule is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="permission not found")
        return rule

    @staticmethod
    def _commit(session: Session, *, conflict_detail: str) -> None:
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail)

    @staticmethod
    def _audit_snapshot(rule: PermissionRuleRecord) -> dict[str, Any]:
        return {
            "resource_id": rule.resource_id,
            "action": rule.action,
            "effect": rule.effect,
            "conditions": rule.conditions,
            "status": rule.status,
        }

    @staticmethod
    def _to_role_permission_read(mapping: RolePermission, role: Role, rule: PermissionRuleRecord) -> RolePermissionRead:
        return RolePermissionRead(
            role_id=role.id,
            role_name=role.name,
            permission_id=rule.id,
            resource_id=rule.resource_id,
            action=rule.action,
            effect=rule.effect,
            status=rule.status,
            created_at=mapping.created_at,
        )


class RolePermissionService:
    """Load the active rules attached to a set of roles and run them through the evaluator."""

    def __init__(self, evaluator: PermissionEvaluator | None = None) -> None:
        self._evaluator = evaluator or permission_evaluator

    def load_rules(self, session: Session, role_names: Iterable[str], resource_id: str) -> list[PermissionRule]:
        names = sorted(set(role_names))
        if not names:
            return []
        rows = session.scalars(
            select(PermissionRuleRecord)
            .join(RolePermission, RolePermission.permission_id == PermissionRuleRecord.id)
            .join(Role, RolePermission.role_id == Role.id)
            .where(
                Role.name.in_(names),
                PermissionRuleRecord.resource_id == resource_id,
                PermissionRuleRecord.status == "active",
            )
            .distinct()
        ).all()
        return [
            PermissionRule(
                id=str(row.id),
                resource_id=row.resource_id,
                action=row.action,
                effect=row.effect.lower(),
                conditions=row.conditions,
                status=row.status,
            )
            for row in rows
        ]

    def evaluate(
        self,
        session: Session,
        role_names: Iterable[str],
        resource_id: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> Evaluation:
        rules = self.load_rules(session, role_names, resource_id)
        evaluation = self._evaluator.explain(rules, resource_id, action, context)
        observe_permission_decision(evaluation.decision.value)
        logger.info(
            "authz.permission_evaluated",
            extra={
                "resource_id": resource_id,
                "action": action,
                "decision": evaluation.decision.value,
            },
        )
        return evaluation

    def is_allowed(self, evaluation: Evaluation) -> bool:
        if evaluation.decision == Decision.NO_MATCH:
            return get_settings().authz_default_allow
        return evaluation.decision == Decision.ALLOW

    def ensure_allowed(
        self,
        session: Session,
        role_names: Iterable[str],
        resource_id: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> Evaluation:
        evaluation = self.evaluate(session, role_names, resource_id, action, context)
        if not self.is_allowed(evaluation):
            raise PermissionDeniedError(resource_id=resource_id, action=action, decision=evaluation.decision.value)
        return evaluation


authorization_admin_service = AuthorizationAdminService()
role_permission_service = RolePermissionService()
