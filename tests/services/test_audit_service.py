"""Tests for audit writes and best-effort failure handling."""
from __future__ import annotations

import pytest
from sqlalchemy import text

from financeos.core.errors import UpstreamError, ValidationError
from financeos.services.audit_service import AuditService
from financeos.services.best_effort import failure_counts


def test_record_event_requires_action_and_entity(session) -> None:
    with pytest.raises(ValidationError):
        AuditService().record_event(session, user_id=1, action="view", entity=None)


def test_record_event_failure_is_surfaced(session) -> None:
    session.execute(text("DROP TABLE audit_logs"))
    session.commit()

    with pytest.raises(UpstreamError) as excinfo:
        AuditService().record_event(session, user_id=1, action="view", entity="dashboard")

    assert excinfo.value.message == "Failed to log event"


def test_side_effect_audit_failure_is_counted_not_raised(session) -> None:
    session.execute(text("DROP TABLE audit_logs"))
    session.commit()

    written = AuditService(strict=False).log(session, "login", user_id=1)

    assert written is False
    assert failure_counts() == {"audit_log": 1}


def test_strict_audit_fails_the_caller(session) -> None:
    session.execute(text("DROP TABLE audit_logs"))
    session.commit()

    with pytest.raises(UpstreamError):
        AuditService(strict=True).log(session, "login", user_id=1)

    assert failure_counts() == {"audit_log": 1}


def test_recent_for_user(session) -> None:
    service = AuditService(strict=False)
    for action in ("a", "b", "c"):
        service.log(session, action, user_id=7)
    service.log(session, "other", user_id=8)

    rows = AuditService.recent_for_user(session, 7, limit=2)

    assert [row.action for row in rows] == ["c", "b"]
