# Overview: Explicit tenant context threaded through every service call.

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    """
    Who is acting, and inside which organization.

    Every query a service issues is filtered by org_id; nothing reads the
    tenant from request globals, so services can run outside a request.
    """
    org_id: int
    user_id: int
    branch_id: int | None = None
