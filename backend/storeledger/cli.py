# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storeledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Org Name"] [--owner-email owner@store.local]
#   Idempotent bootstrap: organization, main branch, actions, default roles, owner user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
# - python -m flask orgs create --name "Acme Corp" --code "ACME"
# - python -m flask orgs add-branch --org-id 1 --name "North"
# - python -m flask orgs add-user --org-id 1 --name "Ana" --email ana@acme.local --role seller
#
# Action grants:
# - python -m flask perms init
# - python -m flask perms list [--role seller]
# - python -m flask perms grant --org-id 1 seller cancel_pos_and_remision
# - python -m flask perms check 3 cancel_purchase
#
# Sessions (issued after the identity provider authenticated the user):
# - python -m flask sessions issue 3
# - python -m flask sessions revoke <token>
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
# - python -m flask maintenance cleanup-error-logs --retention-days 180
# - python -m flask maintenance cleanup-sessions

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, Branch, User, Role, RolePermission, Permission
from .services import permission_service, session_service, maintenance_service


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization code')
@click.option('--owner-email', default='owner@storeledger.local', help='Owner email')
@with_appcontext
def init_system(org_name, org_code, owner_email):
    """
    Initialize an organization with a main branch, default roles and an owner.

    The owner is allowed every action. Issue a session for it with
    `flask sessions issue <user_id>`.
    """
    click.echo("START Initializing storeledger...")

    org = db.session.query(Organization).filter_by(code=org_code).first()
    if not org:
        org = Organization(name=org_name, code=org_code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    branch = db.session.query(Branch).filter_by(org_id=org.id).first()
    if not branch:
        branch = Branch(org_id=org.id, name="Main")
        db.session.add(branch)
        db.session.commit()
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    roles = permission_service.create_default_roles(org.id)
    db.session.commit()
    click.echo(f"PASS Roles: {', '.join(r.name for r in roles)}")

    owner = db.session.query(User).filter_by(org_id=org.id, email=owner_email).first()
    if not owner:
        owner = User(org_id=org.id, name="Owner", email=owner_email, branch_id=branch.id, is_owner=True)
        db.session.add(owner)
        db.session.flush()
        permission_service.assign_role(owner.id, "admin")
        db.session.commit()
        click.echo(f"PASS Created owner: {owner.email} (ID: {owner.id})")
    else:
        click.echo(f"WARN  Owner '{owner_email}' already exists, skipping...")

    click.echo("DONE storeledger initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# ORGANIZATIONS
# =============================================================================

@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Branches':<9} {'Users'}")
    click.echo("="*80)

    for org in orgs:
        branch_count = db.session.query(Branch).filter_by(org_id=org.id).count()
        user_count = db.session.query(User).filter_by(org_id=org.id).count()
        active_str = "Yes" if org.is_active else "No"

        click.echo(f"{org.id:<5} {org.name:<30} {org.code or '-':<15} {active_str:<8} {branch_count:<9} {user_count}")

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_org_cli(name, code):
    """Create a new organization (tenant) with its default roles."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        return

    org = Organization(name=name, code=code, is_active=True)
    db.session.add(org)
    db.session.flush()
    permission_service.create_default_roles(org.id)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


@orgs_group.command('add-branch')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', required=True, help='Branch name')
@click.option('--code', help='Branch code')
@with_appcontext
def add_branch_cli(org_id, name, code):
    """Add a branch to an organization."""
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        click.echo(f"FAIL Organization ID {org_id} not found")
        return

    existing = db.session.query(Branch).filter_by(org_id=org_id, name=name).first()
    if existing:
        click.echo(f"FAIL Branch '{name}' already exists in this organization")
        return

    branch = Branch(org_id=org_id, name=name, code=code)
    db.session.add(branch)
    db.session.commit()

    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}) in org '{org.name}'")


@orgs_group.command('add-user')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', required=True, help='Display name')
@click.option('--email', required=True, help='Email address')
@click.option('--branch-id', type=int, help='Default branch')
@click.option('--role', default='seller', show_default=True, help='Role name')
@with_appcontext
def add_user_cli(org_id, name, email, branch_id, role):
    """Register a member of an organization and assign a role."""
    if db.session.query(User).filter_by(org_id=org_id, email=email).first():
        click.echo(f"FAIL User '{email}' already exists in this organization")
        return

    user = User(org_id=org_id, name=name, email=email, branch_id=branch_id)
    db.session.add(user)
    db.session.flush()
    try:
        permission_service.assign_role(user.id, role)
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL Error: {str(e)}")
        return
    db.session.commit()

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{role}'")


# =============================================================================
# ACTION GRANTS
# =============================================================================

@click.group('perms')
def perms_group():
    """Action grant inspection and repair commands."""


@perms_group.command('init')
@with_appcontext
def init_permissions_cli():
    """Create missing action definitions (idempotent)."""
    created = permission_service.initialize_permissions()
    db.session.commit()
    click.echo(f"PASS Created {created} actions")


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@click.option('--org-id', type=int, help='Organization of the role')
@with_appcontext
def list_permissions_cli(role, org_id):
    """List actions, optionally only those granted to a role."""
    query = db.session.query(Permission)
    if role:
        role_query = db.session.query(Role).filter_by(name=role)
        if org_id:
            role_query = role_query.filter_by(org_id=org_id)
        role_obj = role_query.first()
        if not role_obj:
            click.echo(f"FAIL Role '{role}' not found")
            return
        query = query.join(RolePermission, RolePermission.permission_id == Permission.id).filter(
            RolePermission.role_id == role_obj.id
        )

    perms = query.order_by(Permission.category, Permission.code).all()
    current_category = None
    for perm in perms:
        if perm.category != current_category:
            click.echo(f"\nCATEGORY {perm.category}")
            click.echo("-"*80)
            current_category = perm.category
        click.echo(f"  {perm.code:<28} {perm.name}")

    click.echo(f"\n Total: {len(perms)} actions\n")


@perms_group.command('grant')
@click.option('--org-id', type=int, required=True, help='Organization of the role')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def grant_permission_cli(org_id, role_name, permission_code):
    """Grant an action to a role."""
    role = db.session.query(Role).filter_by(org_id=org_id, name=role_name).first()
    if not role:
        click.echo(f"FAIL Role '{role_name}' not found")
        return
    try:
        permission_service.grant_permission(role.id, permission_code)
        db.session.commit()
        click.echo(f"PASS Granted '{permission_code}' to role '{role_name}'")
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('check')
@click.argument('user_id', type=int)
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(user_id, permission_code):
    """Check whether a user may perform an action."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        click.echo(f"FAIL User {user_id} not found")
        return

    error = permission_service.validate(user.id, permission_code, user.org_id)
    if error is None:
        click.echo(f"PASS User {user.email} may '{permission_code}'")
    else:
        click.echo(f"FAIL {error}")


# =============================================================================
# SESSIONS
# =============================================================================

@click.group('sessions')
def sessions_group():
    """Session token commands."""


@sessions_group.command('issue')
@click.argument('user_id', type=int)
@with_appcontext
def issue_session_cli(user_id):
    """Issue a bearer token for a user already authenticated upstream."""
    try:
        session, token = session_service.create_session(user_id)
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")
        return
    click.echo(f"PASS Session {session.id} expires {session.expires_at.isoformat()}Z")
    click.echo(token)


@sessions_group.command('revoke')
@click.argument('token')
@with_appcontext
def revoke_session_cli(token):
    if session_service.revoke_session(token, reason="Revoked from CLI"):
        click.echo("PASS Session revoked")
    else:
        click.echo("FAIL Session not found or already revoked")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Retention cleanup commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


@maintenance_group.command('cleanup-error-logs')
@click.option('--retention-days', type=int, default=180, show_default=True)
@with_appcontext
def cleanup_error_logs_cli(retention_days):
    deleted = maintenance_service.cleanup_error_logs(retention_days=retention_days)
    click.echo(f"Deleted {deleted} error logs older than {retention_days} days.")


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = maintenance_service.cleanup_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(perms_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(maintenance_group)
