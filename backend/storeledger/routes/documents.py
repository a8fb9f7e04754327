# Overview: Flask API routes for document lifecycle; parses input and returns JSON responses.

# backend/storeledger/routes/documents.py
"""
Document Lifecycle API Routes

<family> is one of: invoice, remision, purchase-invoice, purchase-remision

- POST /api/documents/<family>                 create (stock moves)
- GET  /api/documents/<family>                 list (status/branch filters)
- GET  /api/documents/<family>/<id>            detail with lines and payments
- POST /api/documents/<family>/<id>/cancel     cancel (stock restored)

SECURITY:
- Bearer token required; tenant comes from the session
- Each family has its own create/cancel/view action
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, handle_ledger_errors, get_json_body
from ..errors import ValidationError
from ..services import document_service, ledger_service


documents_bp = Blueprint("documents", __name__, url_prefix="/api/documents")


def _int_arg(name: str, default=None):
    value = request.args.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@documents_bp.post("/<family>")
@handle_ledger_errors
@require_auth
def create_document_route(family: str):
    """
    Create a document.

    Request body:
    {
        "branch_id": 1,                 (optional, defaults to session branch)
        "client_id": 4,                 (sale families)
        "supplier_id": 2,               (purchase families)
        "external_invoice_id": "F-77",  (purchase families)
        "pays_in_days": 30,             (optional)
        "notes": "...",                 (optional)
        "lines": [
            {"product_id": 7, "quantity": 5, "unit_price_cents": 2000,
             "discount_cents": 0, "tax_rate_bps": 1900},
            {"name": "Delivery", "quantity": 1, "unit_price_cents": 500}
        ]
    }

    Returns:
        201: Document created
        400: Invalid input
        403: Permission denied
    """
    document = document_service.create_document(g.tenant, family, get_json_body())
    return jsonify({"document": document.to_dict(include_lines=True)}), 201


@documents_bp.get("/<family>")
@handle_ledger_errors
@require_auth
def list_documents_route(family: str):
    """
    Query params:
    - status: paid | pending | expired | canceled
    - branch_id: filter by branch
    - limit: max results (default 50)
    """
    documents = document_service.list_documents(
        g.tenant,
        family,
        status=request.args.get("status"),
        branch_id=_int_arg("branch_id"),
        limit=_int_arg("limit", 50),
    )
    return jsonify({
        "documents": [d.to_dict() for d in documents],
        "count": len(documents),
    }), 200


@documents_bp.get("/<family>/<int:document_id>")
@handle_ledger_errors
@require_auth
def get_document_route(family: str, document_id: int):
    document = document_service.get_document(g.tenant, family, document_id)
    return jsonify({
        "document": document.to_dict(include_lines=True, include_payments=True),
        "balance": ledger_service.balance_summary(document),
    }), 200


@documents_bp.post("/<family>/<int:document_id>/cancel")
@handle_ledger_errors
@require_auth
def cancel_document_route(family: str, document_id: int):
    """
    Cancel a document. Terminal: a second cancel answers 409.

    Returns:
        200: Document canceled, stock restored
        403: Permission denied
        404: Document not found
        409: Already canceled
        500: Unexpected failure or timeout (reference_id included)
    """
    document = document_service.cancel_document(g.tenant, family, document_id)
    return jsonify({"document": document.to_dict()}), 200
