# Overview: Flask API routes for payments against documents; parses input and returns JSON responses.

# backend/storeledger/routes/payments.py
"""
Payment API Routes

WHY: Register and cancel payments against any document family. Every
payment moves the document's pending balance in the same transaction.

SECURITY:
- manage_payments action required for registering and canceling
- the family's view action required for reading
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, handle_ledger_errors, get_json_body
from ..errors import ValidationError
from ..services import document_service, ledger_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("")
@handle_ledger_errors
@require_auth
def add_payment_route():
    """
    Register a payment.

    Request body:
    {
        "family": "invoice",
        "document_id": 123,
        "amount_cents": 4000,
        "method": "cash"        (cash | credit_card | transfer)
    }

    Returns:
        201: Payment registered with the document's new balance
        400: Invalid input
        403: Permission denied
        404: Document not found
        409: Overpayment or canceled document
    """
    data = get_json_body()

    family = data.get("family")
    document_id = data.get("document_id")
    if not family or document_id is None:
        raise ValidationError("family and document_id required")
    if isinstance(document_id, bool) or not isinstance(document_id, int):
        raise ValidationError("document_id must be an integer")

    payment = document_service.pay_document(
        g.tenant,
        family,
        document_id,
        data.get("amount_cents"),
        data.get("method"),
    )

    return jsonify({
        "payment": payment.to_dict(),
        "balance": ledger_service.balance_summary(payment.document),
    }), 201


@payments_bp.post("/<family>/<int:payment_id>/cancel")
@handle_ledger_errors
@require_auth
def cancel_payment_route(family: str, payment_id: int):
    result = document_service.cancel_document_payment(g.tenant, family, payment_id)
    return jsonify(result), 200


@payments_bp.get("/<family>/<int:payment_id>")
@handle_ledger_errors
@require_auth
def get_payment_route(family: str, payment_id: int):
    payment = ledger_service.get_payment(g.tenant, family, payment_id)
    return jsonify({"payment": payment.to_dict()}), 200
