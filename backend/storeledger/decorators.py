# Overview: Request decorators for API routes; tenant context and error boundary.

from functools import wraps
from flask import request, jsonify, g

from .errors import LedgerError, UnexpectedError
from .extensions import db
from .services import session_service, error_log_service


GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.tenant: TenantContext(org_id, user_id, branch_id) passed to services
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account or organization deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.tenant = context.tenant
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def handle_ledger_errors(f):
    """
    Convert service errors into JSON responses.

    Expected errors (LedgerError) answer with their own status and message.
    Anything else is rolled back, stored in error_logs, and answered with a
    generic message plus the reference id; internal detail never leaks.

    Apply it above @require_auth so session lookup failures are covered too.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except LedgerError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception as e:
            db.session.rollback()
            tenant = getattr(g, "tenant", None)
            reference_id = error_log_service.log_error(
                e,
                org_id=tenant.org_id if tenant else None,
                user_id=tenant.user_id if tenant else None,
                url=request.path,
                method=request.method,
                status=500,
            )
            error = UnexpectedError(GENERIC_ERROR_MESSAGE, reference_id=reference_id)
            return jsonify(error.to_dict()), error.status_code

    return decorated_function


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    return data if data is not None else {}
