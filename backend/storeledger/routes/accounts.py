# Overview: Flask API routes for accounts receivable and payable.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, handle_ledger_errors
from ..services import accounts_service


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("/receivable")
@handle_ledger_errors
@require_auth
def receivable_route():
    """Outstanding sale balances grouped by client."""
    return jsonify(accounts_service.receivables(g.tenant)), 200


@accounts_bp.get("/payable")
@handle_ledger_errors
@require_auth
def payable_route():
    """Outstanding purchase balances grouped by supplier."""
    return jsonify(accounts_service.payables(g.tenant)), 200
