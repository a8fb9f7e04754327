# Overview: Retention cleanup for audit and session tables.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, ErrorLog, SessionToken
from storeledger.time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted


def cleanup_error_logs(*, retention_days: int = 180) -> int:
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(ErrorLog).filter(
        ErrorLog.created_at < cutoff
    ).delete()
    db.session.commit()
    return deleted


def cleanup_sessions() -> int:
    """Delete sessions that are revoked or past their absolute expiry."""
    now = utcnow()
    deleted = db.session.query(SessionToken).filter(
        (SessionToken.is_revoked.is_(True)) | (SessionToken.expires_at < now)
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
