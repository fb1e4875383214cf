"""Administrative actions on other users' roles, status and security codes."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from financeos.core.errors import NotFoundError, UpstreamError, ValidationError
from financeos.core.log import get_logger
from financeos.core.security import AuthenticatedUser
from financeos.models import Profile, ProfileStatus, Role, UserRole
from financeos.schemas.admin import (
    AdminActionRequest,
    AdminActionResult,
    AdminUserRow,
    IssuedSecurityCode,
)
from financeos.services.audit_service import AuditService
from financeos.services.security_code_service import SecurityCodeService

LOGGER = get_logger(__name__)

VALID_ROLES = {role.value for role in Role}
VALID_STATUSES = {status.value for status in ProfileStatus}


class AdminService:
    """Dispatch admin actions; callers must already be checked for the admin role."""

    def __init__(
        self,
        audit: AuditService | None = None,
        security_codes: SecurityCodeService | None = None,
    ) -> None:
        self._audit = audit or AuditService()
        self._security_codes = security_codes or SecurityCodeService(audit=self._audit)

    def perform(
        self, session: Session, actor: AuthenticatedUser, request: AdminActionRequest
    ) -> AdminActionResult:
        handlers = {
            "update_role": self._update_role,
            "update_status": self._update_status,
            "reset_security_lock": self._reset_security_lock,
            "issue_security_code": self._issue_security_code,
        }
        handler = handlers.get(request.action or "")
        if handler is None:
            raise ValidationError("Invalid action")
        return handler(session, actor, request)

    @staticmethod
    def _require_target(session: Session, target_user_id: int) -> Profile:
        profile = session.get(Profile, target_user_id)
        if profile is None:
            raise NotFoundError("Usuário não encontrado")
        return profile

    def _update_role(
        self, session: Session, actor: AuthenticatedUser, request: AdminActionRequest
    ) -> AdminActionResult:
        if not request.target_user_id or not request.new_role:
            raise ValidationError("ID do usuário e novo papel são obrigatórios")
        if request.new_role not in VALID_ROLES:
            raise ValidationError("Papel inválido")
        self._require_target(session, request.target_user_id)

        try:
            row = session.execute(
                select(UserRole).where(UserRole.user_id == request.target_user_id)
            ).scalar_one_or_none()
            if row is None:
                session.add(UserRole(user_id=request.target_user_id, role=request.new_role))
            else:
                row.role = request.new_role
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Error updating role")
            raise UpstreamError("Erro ao atualizar papel") from exc

        self._audit.log(
            session,
            "update_role",
            user_id=actor.user_id,
            entity="user_roles",
            entity_id=request.target_user_id,
            details={
                "target_user_id": request.target_user_id,
                "new_role": request.new_role,
                "performed_by": actor.user_id,
            },
        )
        LOGGER.info(
            "Role updated: %s -> %s by %s",
            request.target_user_id,
            request.new_role,
            actor.user_id,
        )
        return AdminActionResult(message="Papel atualizado com sucesso")

    def _update_status(
        self, session: Session, actor: AuthenticatedUser, request: AdminActionRequest
    ) -> AdminActionResult:
        if not request.target_user_id or not request.new_status:
            raise ValidationError("ID do usuário e novo status são obrigatórios")
        if request.new_status not in VALID_STATUSES:
            raise ValidationError("Status inválido")
        profile = self._require_target(session, request.target_user_id)

        try:
            profile.status = request.new_status
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Error updating status")
            raise UpstreamError("Erro ao atualizar status") from exc

        suspended = request.new_status == ProfileStatus.SUSPENDED.value
        self._audit.log(
            session,
            "suspend_user" if suspended else "activate_user",
            user_id=actor.user_id,
            entity="profiles",
            entity_id=request.target_user_id,
            details={
                "target_user_id": request.target_user_id,
                "new_status": request.new_status,
                "performed_by": actor.user_id,
            },
        )
        return AdminActionResult(message="Status atualizado com sucesso")

    def _reset_security_lock(
        self, session: Session, actor: AuthenticatedUser, request: AdminActionRequest
    ) -> AdminActionResult:
        if not request.target_user_id:
            raise ValidationError("ID do usuário é obrigatório")
        self._security_codes.reset_lock(session, request.target_user_id)
        self._audit.log(
            session,
            "SECURITY_LOCK_RESET",
            user_id=actor.user_id,
            entity="security_code_attempts",
            entity_id=request.target_user_id,
            details={"target_user_id": request.target_user_id, "performed_by": actor.user_id},
        )
        return AdminActionResult(message="Bloqueio removido com sucesso")

    def _issue_security_code(
        self, session: Session, actor: AuthenticatedUser, request: AdminActionRequest
    ) -> AdminActionResult:
        if not request.target_user_id:
            raise ValidationError("ID do usuário é obrigatório")
        code = self._security_codes.issue_code(session, request.target_user_id)
        self._audit.log(
            session,
            "SECURITY_CODE_ISSUED",
            user_id=actor.user_id,
            entity="security_codes",
            entity_id=code.id,
            details={"target_user_id": request.target_user_id, "performed_by": actor.user_id},
        )
        return AdminActionResult(
            message="Código de segurança emitido com sucesso",
            security_code=IssuedSecurityCode(code=code.code, expires_at=code.expires_at),
        )

    @staticmethod
    def list_users(session: Session) -> list[AdminUserRow]:
        profiles = session.execute(
            select(Profile).options(selectinload(Profile.role)).order_by(Profile.created_at.desc(), Profile.id.desc())
        ).scalars()
        return [
            AdminUserRow(
                id=p.id,
                email=p.email,
                name=p.name,
                full_name=p.full_name,
                status=p.status,
                role=p.role.role if p.role else None,
                created_at=p.created_at,
            )
            for p in profiles
        ]


__all__ = ["AdminService", "VALID_ROLES", "VALID_STATUSES"]
