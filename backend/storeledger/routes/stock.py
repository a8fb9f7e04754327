# Overview: Flask API routes for per-branch stock reads.

from flask import Blueprint, request, jsonify, g

from .. import permissions
from ..decorators import require_auth, handle_ledger_errors
from ..errors import ValidationError
from ..services import stock_service
from ..services.permission_service import require_action


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/<int:branch_id>")
@handle_ledger_errors
@require_auth
def branch_stock_route(branch_id: int):
    require_action(g.tenant, permissions.SEE_STATS, resource=f"stock:{branch_id}")
    items = stock_service.list_branch_stock(g.tenant, branch_id)
    return jsonify({"branch_id": branch_id, "items": items}), 200


@stock_bp.get("/<int:branch_id>/negative")
@handle_ledger_errors
@require_auth
def negative_stock_route(branch_id: int):
    """
    Oversold products at a branch.

    Query params:
    - product_ids: comma-separated ids to restrict the report
    """
    require_action(g.tenant, permissions.SEE_STATS, resource=f"stock:{branch_id}")

    product_ids = None
    raw = request.args.get("product_ids")
    if raw:
        try:
            product_ids = [int(pid) for pid in raw.split(",") if pid.strip()]
        except ValueError:
            raise ValidationError("product_ids must be comma-separated integers")

    items = stock_service.find_negative_stock(g.tenant, branch_id, product_ids)
    return jsonify({"branch_id": branch_id, "items": items}), 200
