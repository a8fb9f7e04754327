from __future__ import annotations

from ..extensions import db
from storeledger.time_utils import to_utc_z

class SecurityEvent(db.Model):
    """
    Security event audit log with tenant context.

    WHY: Authorization denials must stay distinguishable from validation
    failures for audit purposes. Denied actions are recorded here before the
    caller receives a 403.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_org_occurred", "org_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # PERMISSION_DENIED, TENANT_CONTEXT_MISSING
    resource = db.Column(db.String(128), nullable=True)
    action = db.Column(db.String(64), nullable=True)  # e.g. "cancel_purchase"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }

class ErrorLog(db.Model):
    """
    Unexpected failures, keyed by the reference id shown to the user so
    support can correlate a report with the stored traceback.
    """
    __tablename__ = "error_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    reference_id = db.Column(db.String(32), nullable=False, unique=True, index=True)

    org_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    url = db.Column(db.String(512), nullable=True)
    method = db.Column(db.String(16), nullable=True)
    status = db.Column(db.Integer, nullable=True)
    error = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reference_id": self.reference_id,
            "org_id": self.org_id,
            "user_id": self.user_id,
            "url": self.url,
            "method": self.method,
            "status": self.status,
            "error": self.error,
            "created_at": to_utc_z(self.created_at),
        }
