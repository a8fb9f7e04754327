"""Initial schema: tenancy, authorization, catalog, stock, document families

Creates:
1. organizations, branches, document_sequences (tenant root + numbering)
2. users, roles, permissions and their associations, session_tokens
3. products, clients, suppliers, stock_values (unique product x branch)
4. Four document families, each with its own lines and payments tables
5. security_events, error_logs

Revision ID: sl001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'sl001_initial'
down_revision = None
branch_labels = None
depends_on = None


# (document table, line table, payment table, side)
DOCUMENT_FAMILIES = [
    ('sale_invoices', 'sale_invoice_lines', 'sale_invoice_payments', 'sale'),
    ('sale_remisions', 'sale_remision_lines', 'sale_remision_payments', 'sale'),
    ('purchase_invoices', 'purchase_invoice_lines', 'purchase_invoice_payments', 'purchase'),
    ('purchase_remisions', 'purchase_remision_lines', 'purchase_remision_payments', 'purchase'),
]


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable, server_default=sa.func.now())


def upgrade():
    # ==========================================================================
    # STEP 1: Tenancy
    # ==========================================================================
    op.create_table('organizations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_organizations_code', 'organizations', ['code'], unique=True)
    op.create_index('ix_organizations_is_active', 'organizations', ['is_active'])

    op.create_table('branches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_branches_org_name')
    )
    op.create_index('ix_branches_org_id', 'branches', ['org_id'])

    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'document_type', name='uq_doc_sequences_org_type')
    )
    op.create_index('ix_document_sequences_org_id', 'document_sequences', ['org_id'])
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])

    # ==========================================================================
    # STEP 2: Users and authorization
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('is_owner', sa.Boolean(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'email', name='uq_users_org_email')
    )
    op.create_index('ix_users_org_id', 'users', ['org_id'])

    op.create_table('roles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_roles_org_name')
    )
    op.create_index('ix_roles_org_id', 'roles', ['org_id'])

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=False),
        _timestamp('assigned_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_user_roles')
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])
    op.create_index('ix_user_roles_role_id', 'user_roles', ['role_id'])

    op.create_table('permissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_permissions_code', 'permissions', ['code'], unique=True)
    op.create_index('ix_permissions_category', 'permissions', ['category'])

    op.create_table('role_permissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('role_id', 'permission_id', name='uq_role_permissions')
    )
    op.create_index('ix_role_permissions_role_id', 'role_permissions', ['role_id'])
    op.create_index('ix_role_permissions_permission_id', 'role_permissions', ['permission_id'])

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_org_id', 'session_tokens', ['org_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ==========================================================================
    # STEP 3: Catalog, counterparties and stock
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=True),
        sa.Column('cost_cents', sa.Integer(), nullable=True),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_org_id', 'products', ['org_id'])
    op.create_index('ix_products_org_name', 'products', ['org_id', 'name'])

    for counterparty in ('clients', 'suppliers'):
        op.create_table(counterparty,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('id_number', sa.String(length=64), nullable=True),
            sa.Column('tel', sa.String(length=64), nullable=True),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{counterparty}_org_id', counterparty, ['org_id'])

    op.create_table('stock_values',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'branch_id', name='uq_stock_values_product_branch')
    )
    op.create_index('ix_stock_values_product_id', 'stock_values', ['product_id'])
    op.create_index('ix_stock_values_branch_id', 'stock_values', ['branch_id'])

    # ==========================================================================
    # STEP 4: Document families
    # ==========================================================================
    for document_table, line_table, payment_table, side in DOCUMENT_FAMILIES:
        if side == 'sale':
            counterparty_columns = [
                sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id'), nullable=False),
            ]
        else:
            counterparty_columns = [
                sa.Column('external_invoice_id', sa.String(length=64), nullable=False),
                sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=False),
            ]

        op.create_table(document_table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('internal_id', sa.Integer(), nullable=False),
            sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
            sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
            sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
            *counterparty_columns,
            sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_tax_cents', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_discount_cents', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_cents', sa.Integer(), nullable=False),
            sa.Column('pending_cents', sa.Integer(), nullable=False),
            sa.Column('pays_in_days', sa.Integer(), nullable=True),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp('created_at'),
            sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('org_id', 'internal_id', name=f'uq_{document_table}_org_internal')
        )
        op.create_index(f'ix_{document_table}_org_id', document_table, ['org_id'])
        op.create_index(f'ix_{document_table}_branch_id', document_table, ['branch_id'])
        op.create_index(f'ix_{document_table}_org_branch', document_table, ['org_id', 'branch_id'])
        op.create_index(f'ix_{document_table}_created_at', document_table, ['created_at'])
        op.create_index(f'ix_{document_table}_canceled_at', document_table, ['canceled_at'])
        counterparty_fk = 'client_id' if side == 'sale' else 'supplier_id'
        op.create_index(f'ix_{document_table}_{counterparty_fk}', document_table, [counterparty_fk])

        op.create_table(line_table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('document_id', sa.Integer(), sa.ForeignKey(f'{document_table}.id'), nullable=False),
            sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=True),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('unit_price_cents', sa.Integer(), nullable=False),
            sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('line_total_cents', sa.Integer(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{line_table}_document_id', line_table, ['document_id'])
        op.create_index(f'ix_{line_table}_product_id', line_table, ['product_id'])

        op.create_table(payment_table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('document_id', sa.Integer(), sa.ForeignKey(f'{document_table}.id'), nullable=False),
            sa.Column('amount_cents', sa.Integer(), nullable=False),
            sa.Column('method', sa.String(length=32), nullable=False),
            sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
            _timestamp('created_at'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{payment_table}_document_id', payment_table, ['document_id'])
        op.create_index(f'ix_{payment_table}_created_at', payment_table, ['created_at'])

    # ==========================================================================
    # STEP 5: Audit
    # ==========================================================================
    op.create_table('security_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        _timestamp('occurred_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_security_events_org_id', 'security_events', ['org_id'])
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_success', 'security_events', ['success'])
    op.create_index('ix_security_events_occurred_at', 'security_events', ['occurred_at'])
    op.create_index('ix_security_events_org_occurred', 'security_events', ['org_id', 'occurred_at'])

    op.create_table('error_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reference_id', sa.String(length=32), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('url', sa.String(length=512), nullable=True),
        sa.Column('method', sa.String(length=16), nullable=True),
        sa.Column('status', sa.Integer(), nullable=True),
        sa.Column('error', sa.Text(), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_error_logs_reference_id', 'error_logs', ['reference_id'], unique=True)
    op.create_index('ix_error_logs_org_id', 'error_logs', ['org_id'])
    op.create_index('ix_error_logs_created_at', 'error_logs', ['created_at'])


def downgrade():
    op.drop_table('error_logs')
    op.drop_table('security_events')

    for document_table, line_table, payment_table, _ in reversed(DOCUMENT_FAMILIES):
        op.drop_table(payment_table)
        op.drop_table(line_table)
        op.drop_table(document_table)

    op.drop_table('stock_values')
    op.drop_table('suppliers')
    op.drop_table('clients')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('role_permissions')
    op.drop_table('permissions')
    op.drop_table('user_roles')
    op.drop_table('roles')
    op.drop_table('users')
    op.drop_table('document_sequences')
    op.drop_table('branches')
    op.drop_table('organizations')
