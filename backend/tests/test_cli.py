# Overview: Pytest coverage for the bootstrap, session and retention CLI commands.

from datetime import timedelta

from storeledger.models import Organization, User, Role, SessionToken, SecurityEvent, ErrorLog
from storeledger.services import session_service
from storeledger.time_utils import utcnow


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--org", "Corner Store", "--org-code", "CORNER"])
    assert first.exit_code == 0, first.output
    assert "DONE" in first.output

    second = runner.invoke(args=["system", "init", "--org", "Corner Store", "--org-code", "CORNER"])
    assert second.exit_code == 0, second.output

    org = db_session.query(Organization).filter_by(code="CORNER").one()
    assert db_session.query(User).filter_by(org_id=org.id, is_owner=True).count() == 1
    assert db_session.query(Role).filter_by(org_id=org.id, name="admin").count() == 1


def test_issue_session(app, seller_a):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["sessions", "issue", str(seller_a.id)])

    assert result.exit_code == 0, result.output
    assert SessionToken.query.filter_by(user_id=seller_a.id).count() == 1


class TestMaintenanceCommands:

    def test_cleanup_security_events(self, app, db_session, org_a):
        now = utcnow()
        db_session.add_all([
            SecurityEvent(org_id=org_a.id, event_type="PERMISSION_DENIED", success=False,
                          occurred_at=now - timedelta(days=120)),
            SecurityEvent(org_id=org_a.id, event_type="PERMISSION_DENIED", success=False,
                          occurred_at=now - timedelta(days=5)),
        ])
        db_session.commit()

        result = app.test_cli_runner().invoke(
            args=["maintenance", "cleanup-security-events", "--retention-days", "90"]
        )

        assert result.exit_code == 0, result.output
        assert "Deleted 1 security events" in result.output
        assert db_session.query(SecurityEvent).count() == 1

    def test_cleanup_error_logs(self, app, db_session):
        now = utcnow()
        db_session.add_all([
            ErrorLog(reference_id="old000000001", error="Traceback", created_at=now - timedelta(days=200)),
            ErrorLog(reference_id="new000000001", error="Traceback", created_at=now),
        ])
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-error-logs"])

        assert result.exit_code == 0, result.output
        assert "Deleted 1 error logs" in result.output
        assert [log.reference_id for log in db_session.query(ErrorLog).all()] == ["new000000001"]

    def test_cleanup_sessions(self, app, db_session, seller_a):
        _, revoked = session_service.create_session(seller_a.id)
        session_service.revoke_session(revoked)
        expired, _ = session_service.create_session(seller_a.id)
        expired.expires_at = utcnow() - timedelta(minutes=1)
        live, _ = session_service.create_session(seller_a.id)
        live_id = live.id
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])

        assert result.exit_code == 0, result.output
        assert "Deleted 2 expired or revoked sessions" in result.output
        db_session.expire_all()
        assert [s.id for s in db_session.query(SessionToken).all()] == [live_id]
