# Overview: Authorization service; action grants and security event logging.

"""
Action Authorization with Multi-Tenant Support

WHY: Every mutation is gated by an action grant checked BEFORE any
transaction is opened. Denials are logged to security_events so they stay
distinguishable from validation failures.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant
- Organization owners are allowed every action
- Log denials only: grants are not logged
- Tenant isolation: a user is only ever authorized inside its own org
"""

from ..context import TenantContext
from ..errors import AuthorizationError
from ..extensions import db
from ..models import User, UserRole, Role, RolePermission, Permission, SecurityEvent
from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS, get_permission_name
from storeledger.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    org_id: int | None = None,
) -> SecurityEvent:
    """
    Append a security event.

    event_type examples:
    - PERMISSION_DENIED
    - TENANT_CONTEXT_MISSING
    """
    event = SecurityEvent(
        user_id=user_id,
        org_id=org_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user_id: int) -> set[str]:
    """Union of action codes granted through all of the user's roles."""
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .all()
    )
    return {code for (code,) in rows}


def validate(user_id: int, action: str, org_id: int) -> str | None:
    """
    Check whether the user may perform the action.

    Returns:
        None when allowed, otherwise the user-facing error message
    """
    user = db.session.query(User).filter_by(id=user_id, org_id=org_id).first()

    is_allowed = bool(
        user
        and user.is_active
        and (user.is_owner or action in get_user_permissions(user.id))
    )
    if is_allowed:
        return None
    return f"You do not have permission to {get_permission_name(action).lower()}"


def require_action(ctx: TenantContext, action: str, resource: str | None = None) -> None:
    """
    Raise AuthorizationError (after logging the denial) unless allowed.
    """
    error = validate(ctx.user_id, action, ctx.org_id)
    if error is None:
        return

    log_security_event(
        user_id=ctx.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason=f"Missing action: {action}",
        org_id=ctx.org_id,
    )
    raise AuthorizationError(error, action=action)


# =============================================================================
# BOOTSTRAP
# =============================================================================

def initialize_permissions() -> int:
    """
    Insert any action definitions missing from the permissions table.

    Safe to call repeatedly (idempotent). Returns number created.
    """
    existing = {code for (code,) in db.session.query(Permission.code).all()}
    created = 0
    for code, name, description, category in PERMISSION_DEFINITIONS:
        if code in existing:
            continue
        db.session.add(Permission(code=code, name=name, description=description, category=category))
        created += 1
    db.session.flush()
    return created


def create_default_roles(org_id: int) -> list[Role]:
    """Create the default roles for an organization and grant their actions."""
    initialize_permissions()
    permissions_by_code = {p.code: p for p in db.session.query(Permission).all()}

    roles = []
    for role_name, codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(org_id=org_id, name=role_name).first()
        if not role:
            role = Role(org_id=org_id, name=role_name)
            db.session.add(role)
            db.session.flush()

        granted = {rp.permission_id for rp in role.role_permissions}
        for code in codes:
            permission = permissions_by_code[code]
            if permission.id not in granted:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
        roles.append(role)

    db.session.flush()
    return roles


def grant_permission(role_id: int, code: str) -> RolePermission:
    permission = db.session.query(Permission).filter_by(code=code).first()
    if not permission:
        raise ValueError(f"Unknown action: {code}")

    existing = db.session.query(RolePermission).filter_by(role_id=role_id, permission_id=permission.id).first()
    if existing:
        return existing

    role_permission = RolePermission(role_id=role_id, permission_id=permission.id)
    db.session.add(role_permission)
    db.session.flush()
    return role_permission


def assign_role(user_id: int, role_name: str) -> UserRole:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError(f"User {user_id} not found")

    role = db.session.query(Role).filter_by(org_id=user.org_id, name=role_name).first()
    if not role:
        raise ValueError(f"Role {role_name!r} not found in organization {user.org_id}")

    existing = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).first()
    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)
    db.session.add(user_role)
    db.session.flush()
    return user_role
