"""
Pytest fixtures for storeledger backend tests.

Provides test database setup, tenant fixtures (two organizations with
branches, members, counterparties and products) and the test client.
"""

import pytest
from storeledger import create_app
from storeledger.config import TestConfig
from storeledger.context import TenantContext
from storeledger.extensions import db
from storeledger.models import (
    Organization, Branch, User, Product, StockValue, Client, Supplier,
)
from storeledger.services import permission_service, session_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# TENANTS
# =============================================================================

@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant) with default roles."""
    org = Organization(name="Org A - Acme Corp", code="ACME", is_active=True)
    db_session.add(org)
    db_session.flush()
    permission_service.create_default_roles(org.id)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant) with default roles."""
    org = Organization(name="Org B - Beta Inc", code="BETA", is_active=True)
    db_session.add(org)
    db_session.flush()
    permission_service.create_default_roles(org.id)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def branch_a(db_session, org_a):
    branch = Branch(org_id=org_a.id, name="Main", code="A1")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_a2(db_session, org_a):
    branch = Branch(org_id=org_a.id, name="North", code="A2")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b(db_session, org_b):
    branch = Branch(org_id=org_b.id, name="Main", code="B1")
    db_session.add(branch)
    db_session.commit()
    return branch


# =============================================================================
# MEMBERS
# =============================================================================

def _make_user(db_session, org, branch, email, *, role=None, is_owner=False):
    user = User(
        org_id=org.id,
        branch_id=branch.id,
        name=email.split("@")[0],
        email=email,
        is_owner=is_owner,
    )
    db_session.add(user)
    db_session.flush()
    if role:
        permission_service.assign_role(user.id, role)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner_a(db_session, org_a, branch_a):
    """Organization owner: allowed every action without roles."""
    return _make_user(db_session, org_a, branch_a, "owner@acme.com", is_owner=True)


@pytest.fixture(scope='function')
def admin_a(db_session, org_a, branch_a):
    return _make_user(db_session, org_a, branch_a, "admin@acme.com", role="admin")


@pytest.fixture(scope='function')
def seller_a(db_session, org_a, branch_a):
    return _make_user(db_session, org_a, branch_a, "seller@acme.com", role="seller")


@pytest.fixture(scope='function')
def buyer_a(db_session, org_a, branch_a):
    return _make_user(db_session, org_a, branch_a, "buyer@acme.com", role="buyer")


@pytest.fixture(scope='function')
def viewer_a(db_session, org_a, branch_a):
    """Member without any role."""
    return _make_user(db_session, org_a, branch_a, "viewer@acme.com")


@pytest.fixture(scope='function')
def owner_b(db_session, org_b, branch_b):
    return _make_user(db_session, org_b, branch_b, "owner@beta.com", is_owner=True)


@pytest.fixture(scope='function')
def ctx_for():
    """Build the tenant context of a member."""
    def _ctx(user, branch=None):
        return TenantContext(
            org_id=user.org_id,
            user_id=user.id,
            branch_id=branch.id if branch is not None else user.branch_id,
        )
    return _ctx


@pytest.fixture(scope='function')
def owner_ctx(owner_a, branch_a, ctx_for):
    return ctx_for(owner_a, branch_a)


# =============================================================================
# CATALOG AND COUNTERPARTIES
# =============================================================================

@pytest.fixture(scope='function')
def customer_a(db_session, org_a):
    customer = Client(org_id=org_a.id, name="Ana Gomez", id_number="CC-100")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_a2(db_session, org_a):
    customer = Client(org_id=org_a.id, name="Luis Perez", id_number="CC-200")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier_a(db_session, org_a):
    supplier = Supplier(org_id=org_a.id, name="Distribuidora Norte", id_number="NIT-900")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def product_a(db_session, org_a):
    product = Product(org_id=org_a.id, name="Coffee 500g", reference="COF-500",
                      price_cents=2000, cost_cents=1200, tax_rate_bps=0)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a2(db_session, org_a):
    product = Product(org_id=org_a.id, name="Sugar 1kg", reference="SUG-1",
                      price_cents=800, cost_cents=500, tax_rate_bps=1900)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session, org_b):
    product = Product(org_id=org_b.id, name="Tea", reference="TEA-1", price_cents=900)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def set_stock(db_session):
    """Seed a stock record."""
    def _set(branch, product, value):
        db_session.add(StockValue(product_id=product.id, branch_id=branch.id, value=value))
        db_session.commit()
    return _set


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture(scope='function')
def token_for(db_session):
    """Issue a session token for a member."""
    def _token(user):
        _, token = session_service.create_session(user.id)
        return token
    return _token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(owner_a, token_for):
    return auth_headers(token_for(owner_a))


@pytest.fixture(scope='function')
def viewer_headers(viewer_a, token_for):
    return auth_headers(token_for(viewer_a))


# =============================================================================
# DOCUMENTS
# =============================================================================

@pytest.fixture(scope='function')
def make_document(db_session, branch_a, customer_a, supplier_a):
    """
    Create a document through the lifecycle controller.

    Without explicit lines, a single manual line worth total_cents is used.
    """
    from storeledger.services import document_service

    def _make(ctx, family="invoice", *, lines=None, total_cents=10000, branch=None, **extra):
        payload = {
            "branch_id": (branch or branch_a).id,
            "lines": lines if lines is not None else [
                {"name": "Service", "quantity": 1, "unit_price_cents": total_cents}
            ],
        }
        if family.startswith("purchase"):
            payload.update(supplier_id=supplier_a.id, external_invoice_id="EXT-1")
        else:
            payload.update(client_id=customer_a.id)
        payload.update(extra)
        return document_service.create_document(ctx, family, payload)

    return _make
