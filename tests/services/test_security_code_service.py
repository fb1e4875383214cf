"""Tests for the security-code gate and its persisted lockout."""
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from financeos.core.config import SecurityCodeSettings
from financeos.core.errors import ValidationError
from financeos.core.security import AuthenticatedUser, get_security_provider
from financeos.core.timeutils import ensure_utc, utcnow
from financeos.models import AuditLog, SecurityCode, SecurityCodeAttempt
from financeos.services.security_code_service import CODE_ALPHABET, SecurityCodeService


@pytest.fixture()
def service() -> SecurityCodeService:
    return SecurityCodeService(
        settings=SecurityCodeSettings(max_attempts=3, lockout_base_seconds=60, lockout_max_seconds=200)
    )


@pytest.fixture()
def user(make_user) -> AuthenticatedUser:
    profile = make_user("gate@example.com")
    return AuthenticatedUser(user_id=profile.id, email=profile.email)


def _actions(session) -> list[str]:
    return session.execute(select(AuditLog.action).order_by(AuditLog.id)).scalars().all()


def test_correct_code_verifies_and_marks_use(session, service, user) -> None:
    code = service.issue_code(session, user.user_id)

    result = service.validate(session, user, f"  {code.code.lower()} ")

    assert result.valid is True
    assert result.state == "authenticated_verified"
    assert result.verified_until > utcnow()
    decoded = get_security_provider().decode_token(result.access_token)
    assert decoded.user_id == user.user_id
    assert decoded.is_verified
    session.refresh(code)
    assert code.last_used_at is not None
    assert _actions(session)[-1] == "SECURITY_CODE_VALIDATED"


def test_wrong_code_is_audited_without_the_value(session, service, user) -> None:
    result = service.validate(session, user, "WRONG123")

    assert result.valid is False
    assert result.state == "authenticated_unverified"
    assert result.attempts_remaining == 2
    entry = session.execute(select(AuditLog)).scalar_one()
    assert entry.action == "SECURITY_CODE_FAILED"
    assert "WRONG123" not in str(entry.details)


def test_third_failure_locks_even_the_right_code(session, service, user) -> None:
    code = service.issue_code(session, user.user_id)

    results = [service.validate(session, user, "NOPE0000") for _ in range(3)]
    blocked = service.validate(session, user, code.code)

    assert [r.state for r in results] == [
        "authenticated_unverified",
        "authenticated_unverified",
        "blocked",
    ]
    assert blocked.valid is False
    assert blocked.state == "blocked"
    attempt = session.execute(select(SecurityCodeAttempt)).scalar_one()
    assert attempt.lockouts == 1
    assert attempt.failed_attempts == 0
    assert ensure_utc(attempt.locked_until) > utcnow()


def test_lockout_escalates_and_is_capped(service) -> None:
    assert service.lockout_duration(0) == timedelta(seconds=60)
    assert service.lockout_duration(1) == timedelta(seconds=120)
    assert service.lockout_duration(2) == timedelta(seconds=200)
    assert service.lockout_duration(10) == timedelta(seconds=200)


def test_expired_lock_allows_a_new_attempt(session, service, user) -> None:
    code = service.issue_code(session, user.user_id)
    session.add(
        SecurityCodeAttempt(
            user_id=user.user_id,
            failed_attempts=0,
            lockouts=1,
            locked_until=utcnow() - timedelta(seconds=1),
        )
    )
    session.commit()

    result = service.validate(session, user, code.code)

    assert result.valid is True
    attempt = session.execute(select(SecurityCodeAttempt)).scalar_one()
    assert (attempt.failed_attempts, attempt.lockouts, attempt.locked_until) == (0, 0, None)


def test_expired_code_is_rejected(session, service, user) -> None:
    session.add(
        SecurityCode(
            user_id=user.user_id,
            code="OLDCODE1",
            is_active=True,
            expires_at=utcnow() - timedelta(days=1),
        )
    )
    session.commit()

    result = service.validate(session, user, "oldcode1")

    assert result.valid is False
    assert result.error == "Security code has expired"
    assert _actions(session) == ["SECURITY_CODE_EXPIRED"]


@pytest.mark.parametrize("code", [None, "", "   ", 123456])
def test_missing_code_is_a_request_error(session, service, user, code) -> None:
    with pytest.raises(ValidationError):
        service.validate(session, user, code)


def test_issue_code_deactivates_previous_codes(session, service, user) -> None:
    first = service.issue_code(session, user.user_id)
    second = service.issue_code(session, user.user_id)

    session.refresh(first)
    assert first.is_active is False
    assert second.is_active is True
    assert len(second.code) == 8
    assert set(second.code) <= set(CODE_ALPHABET)
    assert service.validate(session, user, first.code).valid is False


def test_reset_lock_clears_attempts(session, service, user) -> None:
    for _ in range(3):
        service.validate(session, user, "BAD00000")

    service.reset_lock(session, user.user_id)

    attempt = session.execute(select(SecurityCodeAttempt)).scalar_one()
    assert attempt.locked_until is None
    assert attempt.lockouts == 0
