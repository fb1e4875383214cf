"""LGPD consent tracking, data export and anonymisation."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import UpstreamError, ValidationError
from financeos.core.log import get_logger
from financeos.core.security import AuthenticatedUser
from financeos.core.timeutils import utcnow
from financeos.models import AIInsight, AuditLog, LgpdConsent, Profile, Transaction
from financeos.models.serialize import serialize_row
from financeos.schemas.lgpd import ConsentPayload, LgpdRequest
from financeos.services.audit_service import AuditService

LOGGER = get_logger(__name__)

ANONYMIZED_NAME = "Usuário Removido"
_PROFILE_EXPORT_EXCLUDE = ("password_hash",)


class LgpdService:
    """Handle the data-subject actions available to every user."""

    def __init__(self, audit: AuditService | None = None) -> None:
        self._audit = audit or AuditService()

    def handle(
        self,
        session: Session,
        user: AuthenticatedUser,
        request: LgpdRequest,
        *,
        ip_address: str,
        user_agent: str,
    ) -> dict[str, Any]:
        try:
            if request.action == "get_consents":
                return {"consents": [c.model_dump(mode="json") for c in self.get_consents(session, user.user_id)]}
            if request.action == "update_consent":
                self.update_consent(
                    session,
                    user.user_id,
                    request.consent_type,
                    request.granted,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                return {"success": True}
            if request.action == "export_data":
                return self.export_data(session, user, ip_address=ip_address)
            if request.action == "anonymize_data":
                self.anonymize(session, user.user_id, ip_address=ip_address)
                return {"success": True, "message": "User data has been anonymized"}
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("LGPD error", extra={"action": request.action})
            raise UpstreamError("LGPD operation failed") from exc
        raise ValidationError("Invalid action")

    @staticmethod
    def get_consents(session: Session, user_id: int) -> list[ConsentPayload]:
        rows = session.execute(
            select(LgpdConsent)
            .where(LgpdConsent.user_id == user_id)
            .order_by(LgpdConsent.consent_type)
        ).scalars()
        return [ConsentPayload.model_validate(row) for row in rows]

    def update_consent(
        self,
        session: Session,
        user_id: int,
        consent_type: str | None,
        granted: Any,
        *,
        ip_address: str,
        user_agent: str,
    ) -> LgpdConsent:
        """Upsert the consent keyed by (user, consent type)."""

        if not consent_type:
            raise ValidationError("consent_type required")

        now = utcnow()
        is_granted = granted is True
        consent = session.execute(
            select(LgpdConsent).where(
                LgpdConsent.user_id == user_id, LgpdConsent.consent_type == consent_type
            )
        ).scalar_one_or_none()
        if consent is None:
            consent = LgpdConsent(user_id=user_id, consent_type=consent_type)
            session.add(consent)
        consent.granted = is_granted
        consent.granted_at = now if is_granted else None
        consent.revoked_at = now if granted is False else None
        consent.ip_address = ip_address
        consent.user_agent = user_agent
        session.commit()

        self._audit.log(
            session,
            "LGPD_CONSENT_GRANTED" if is_granted else "LGPD_CONSENT_REVOKED",
            user_id=user_id,
            entity="lgpd_consents",
            details={"consent_type": consent_type, "granted": granted},
            ip_address=ip_address,
        )
        return consent

    def export_data(
        self, session: Session, user: AuthenticatedUser, *, ip_address: str
    ) -> dict[str, Any]:
        """Collect everything stored about the caller."""

        user_id = user.user_id
        profile = session.get(Profile, user_id)

        def _rows(model, column) -> list[dict[str, Any]]:
            return [
                serialize_row(row)
                for row in session.execute(select(model).where(column == user_id)).scalars()
            ]

        payload = {
            "exported_at": utcnow().isoformat(),
            "user_id": user_id,
            "email": user.email,
            "profile": serialize_row(profile, exclude=_PROFILE_EXPORT_EXCLUDE) if profile else None,
            "transactions": _rows(Transaction, Transaction.tenant_id),
            "consents": _rows(LgpdConsent, LgpdConsent.user_id),
            "audit_logs": _rows(AuditLog, AuditLog.user_id),
            "ai_insights": _rows(AIInsight, AIInsight.user_id),
        }

        self._audit.log(
            session,
            "LGPD_DATA_EXPORT",
            user_id=user_id,
            entity="user",
            entity_id=user_id,
            ip_address=ip_address,
        )
        return payload

    def anonymize(self, session: Session, user_id: int, *, ip_address: str) -> None:
        profile = session.get(Profile, user_id)
        if profile is not None:
            profile.name = ANONYMIZED_NAME
            profile.email = f"deleted_{user_id}@removed.local"
            profile.full_name = None
            profile.avatar_url = None
            session.commit()

        self._audit.log(
            session,
            "LGPD_DATA_ANONYMIZED",
            user_id=user_id,
            entity="user",
            entity_id=user_id,
            ip_address=ip_address,
        )


__all__ = ["LgpdService", "ANONYMIZED_NAME"]
