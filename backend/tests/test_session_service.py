# Overview: Pytest coverage for session tokens and the tenant context they carry.

from datetime import timedelta

from storeledger.models import SessionToken
from storeledger.services.session_service import (
    create_session, validate_session, revoke_session, hash_token, SESSION_IDLE_TIMEOUT,
)
from storeledger.time_utils import utcnow


class TestSessions:

    def test_token_carries_tenant_context(self, db_session, seller_a, branch_a, org_a):
        session, token = create_session(seller_a.id)

        context = validate_session(token)

        assert context is not None
        assert context.tenant.org_id == org_a.id
        assert context.tenant.user_id == seller_a.id
        assert context.tenant.branch_id == branch_a.id
        assert session.token_hash == hash_token(token)
        assert session.token_hash != token

    def test_unknown_token(self, db_session):
        assert validate_session("not-a-token") is None

    def test_revoked_token(self, db_session, seller_a):
        _, token = create_session(seller_a.id)
        assert revoke_session(token) is True
        assert validate_session(token) is None
        assert revoke_session(token) is False

    def test_idle_session_revoked(self, db_session, seller_a):
        session, token = create_session(seller_a.id)
        session.last_used_at = utcnow() - SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert validate_session(token) is None
        assert db_session.get(SessionToken, session.id).revoked_reason == "Idle timeout"

    def test_deactivated_user(self, db_session, seller_a):
        _, token = create_session(seller_a.id)
        seller_a.is_active = False
        db_session.commit()

        assert validate_session(token) is None
