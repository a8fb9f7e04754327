"""
Authorization tests for storeledger.

Verifies:
- Unauthenticated requests return 401
- Seller role denied purchase and report actions (403)
- Admin and owner can perform every action
- Grants are scoped to the user's own organization
"""

import pytest

from storeledger import permissions
from storeledger.models import SecurityEvent
from storeledger.services import permission_service
from conftest import auth_headers


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All ledger endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/documents/invoice"),
            ("POST", "/api/documents/invoice"),
            ("GET", "/api/documents/purchase-remision/1"),
            ("POST", "/api/documents/remision/1/cancel"),
            ("POST", "/api/payments"),
            ("GET", "/api/payments/invoice/1"),
            ("POST", "/api/payments/invoice/1/cancel"),
            ("GET", "/api/accounts/receivable"),
            ("GET", "/api/accounts/payable"),
            ("GET", "/api/stock/1"),
            ("GET", "/api/stock/1/negative"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# SELLER DENIED OUTSIDE ITS GRANTS - 403
# =============================================================================


class TestSellerDenied:

    @pytest.fixture
    def seller_headers(self, seller_a, token_for):
        return auth_headers(token_for(seller_a))

    def test_cannot_create_purchase(self, client, seller_headers, supplier_a):
        resp = client.post("/api/documents/purchase-invoice", headers=seller_headers, json={
            "supplier_id": supplier_a.id,
            "external_invoice_id": "F-1",
            "lines": [{"name": "Boxes", "quantity": 1, "unit_price_cents": 100}],
        })
        assert resp.status_code == 403
        assert resp.get_json()["required_action"] == permissions.CREATE_PURCHASE

    def test_cannot_cancel_sale(self, client, seller_headers, owner_ctx, make_document):
        invoice = make_document(owner_ctx, "invoice")
        resp = client.post(f"/api/documents/invoice/{invoice.id}/cancel", headers=seller_headers)
        assert resp.status_code == 403

    def test_cannot_view_reports(self, client, seller_headers, branch_a):
        assert client.get("/api/accounts/payable", headers=seller_headers).status_code == 403
        assert client.get(f"/api/stock/{branch_a.id}", headers=seller_headers).status_code == 403

    def test_can_sell(self, client, seller_headers, customer_a):
        resp = client.post("/api/documents/remision", headers=seller_headers, json={
            "client_id": customer_a.id,
            "lines": [{"name": "Delivery", "quantity": 1, "unit_price_cents": 500}],
        })
        assert resp.status_code == 201


# =============================================================================
# ACTION GRANTS
# =============================================================================


class TestActionGrants:

    def test_admin_allowed_everything(self, db_session, admin_a):
        for code, _, _, _ in permissions.PERMISSION_DEFINITIONS:
            assert permission_service.validate(admin_a.id, code, admin_a.org_id) is None

    def test_owner_allowed_without_roles(self, db_session, owner_a):
        assert permission_service.get_user_permissions(owner_a.id) == set()
        assert permission_service.validate(owner_a.id, permissions.CANCEL_PURCHASE, owner_a.org_id) is None

    def test_denial_message_names_action(self, db_session, viewer_a):
        error = permission_service.validate(viewer_a.id, permissions.SEE_STATS, viewer_a.org_id)
        assert error == "You do not have permission to see stats"

    def test_inactive_user_denied(self, db_session, admin_a):
        admin_a.is_active = False
        db_session.commit()
        assert permission_service.validate(admin_a.id, permissions.SEE_INVOICES, admin_a.org_id) is not None

    def test_grant_extends_role(self, db_session, org_a, seller_a):
        role = next(r for r in permission_service.create_default_roles(org_a.id) if r.name == "seller")
        permission_service.grant_permission(role.id, permissions.CANCEL_POS_AND_REMISION)
        db_session.commit()

        assert permission_service.validate(seller_a.id, permissions.CANCEL_POS_AND_REMISION, org_a.id) is None

    def test_unknown_action_and_role(self, db_session, org_a, seller_a):
        role = next(r for r in permission_service.create_default_roles(org_a.id) if r.name == "seller")
        with pytest.raises(ValueError):
            permission_service.grant_permission(role.id, "launch_rockets")
        with pytest.raises(ValueError):
            permission_service.assign_role(seller_a.id, "auditor")

    def test_denial_logged_once_per_attempt(self, db_session, viewer_a, ctx_for):
        from storeledger.errors import AuthorizationError

        for _ in range(2):
            with pytest.raises(AuthorizationError):
                permission_service.require_action(ctx_for(viewer_a), permissions.SEE_STATS, resource="accounts")

        events = db_session.query(SecurityEvent).filter_by(user_id=viewer_a.id).all()
        assert len(events) == 2
        assert {e.action for e in events} == {permissions.SEE_STATS}
        assert all(e.org_id == viewer_a.org_id for e in events)
