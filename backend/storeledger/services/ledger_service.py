# Overview: Balance Ledger; payments against documents and their pending balance.

"""
Balance Ledger

WHY: Every document carries a running pending balance. Payments decrement
it, payment cancellation restores it. The balance and the payment rows must
never disagree, so each transition writes both inside ONE transaction.

ORDERING (identical for all four families):
1. Fresh locked read of the document, scoped to the tenant
2. Checks: missing -> NotFound, canceled -> AlreadyCanceled,
   amount > pending -> Overpayment
3. Conditional update: pending = pending - amount
   WHERE canceled_at IS NULL AND pending >= amount (must touch 1 row)
4. Insert the payment row

Cancel runs the other way: locked document read, DELETE the payment row
(must remove 1 row), then pending = pending + the deleted amount.

INVARIANT: 0 <= pending_cents <= total_cents in every committed state.
"""

from __future__ import annotations

from sqlalchemy import delete, update

from .. import permissions
from ..context import TenantContext
from ..errors import (
    AlreadyCanceledError,
    NotFoundError,
    OverpaymentError,
    ValidationError,
)
from ..extensions import db
from storeledger.time_utils import utcnow
from .concurrency import atomic, lock_for_update, run_with_retry
from .families import DocumentFamily, get_family
from .permission_service import require_action


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "cash"
METHOD_CREDIT_CARD = "credit_card"
METHOD_TRANSFER = "transfer"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_CREDIT_CARD,
    METHOD_TRANSFER,
]


def resolve_family(family: DocumentFamily | str) -> DocumentFamily:
    if isinstance(family, DocumentFamily):
        return family
    return get_family(family)


def _validate_payment(amount_cents, method) -> None:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount_cents must be an integer")
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be positive")
    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}")


def _get_document_locked(family: DocumentFamily, ctx: TenantContext, document_id: int):
    Document = family.document_model
    query = db.session.query(Document).filter_by(id=document_id, org_id=ctx.org_id)
    document = lock_for_update(query).populate_existing().first()
    if not document:
        raise NotFoundError(f"{family.label} {document_id} not found")
    return document


# =============================================================================
# TRANSITIONS
# =============================================================================

def apply_payment(
    ctx: TenantContext,
    family: DocumentFamily | str,
    document_id: int,
    amount_cents: int,
    method: str,
):
    """
    Register a payment against a document.

    Returns:
        The persisted payment row (family's payment model)

    Raises:
        AuthorizationError, ValidationError: before any transaction
        NotFoundError, AlreadyCanceledError, OverpaymentError: rolled back
    """
    family = resolve_family(family)
    require_action(ctx, permissions.MANAGE_PAYMENTS, resource=f"{family.key}:{document_id}")
    _validate_payment(amount_cents, method)

    Document = family.document_model

    def _op():
        with atomic():
            document = _get_document_locked(family, ctx, document_id)

            if document.canceled_at is not None:
                raise AlreadyCanceledError(f"{family.label} {document.internal_id} is canceled")

            if amount_cents > document.pending_cents:
                raise OverpaymentError(
                    f"Payment of {amount_cents} exceeds pending balance of {document.pending_cents}"
                )

            result = db.session.execute(
                update(Document)
                .where(
                    Document.id == document.id,
                    Document.canceled_at.is_(None),
                    Document.pending_cents >= amount_cents,
                )
                .values(pending_cents=Document.pending_cents - amount_cents)
            )
            if result.rowcount != 1:
                raise OverpaymentError("Pending balance changed; payment exceeds it")

            payment = family.payment_model(
                document_id=document.id,
                amount_cents=amount_cents,
                method=method,
                created_by_user_id=ctx.user_id,
                created_at=utcnow(),
            )
            db.session.add(payment)
            db.session.flush()
        return payment

    return run_with_retry(_op)


def cancel_payment(ctx: TenantContext, family: DocumentFamily | str, payment_id: int) -> dict:
    """
    Delete a payment and restore its amount to the document's pending.

    A canceled document is terminal, so its payments cannot be canceled.

    Returns:
        {"payment_id", "document_id", "amount_cents", "pending_cents"}
    """
    family = resolve_family(family)
    require_action(ctx, permissions.MANAGE_PAYMENTS, resource=f"{family.key}:payment:{payment_id}")

    Document = family.document_model
    Payment = family.payment_model

    def _op():
        with atomic():
            payment = (
                db.session.query(Payment)
                .join(Document, Document.id == Payment.document_id)
                .filter(Payment.id == payment_id, Document.org_id == ctx.org_id)
                .first()
            )
            if not payment:
                raise NotFoundError(f"Payment {payment_id} not found")
            amount = payment.amount_cents
            document_id = payment.document_id

            document = _get_document_locked(family, ctx, document_id)
            if document.canceled_at is not None:
                raise AlreadyCanceledError(f"{family.label} {document.internal_id} is canceled")

            # The delete is the first write: only the cancel that removes the
            # row may restore its amount.
            deleted = db.session.execute(
                delete(Payment).where(
                    Payment.id == payment_id,
                    Payment.document_id == document.id,
                )
            )
            if deleted.rowcount != 1:
                raise NotFoundError(f"Payment {payment_id} not found")

            restored = document.pending_cents + amount
            db.session.execute(
                update(Document)
                .where(Document.id == document.id)
                .values(pending_cents=Document.pending_cents + amount)
            )
            db.session.flush()

            summary = {
                "payment_id": payment_id,
                "document_id": document.id,
                "amount_cents": amount,
                "pending_cents": restored,
            }
        return summary

    return run_with_retry(_op)


# =============================================================================
# READS
# =============================================================================

def get_payment(ctx: TenantContext, family: DocumentFamily | str, payment_id: int):
    family = resolve_family(family)
    require_action(ctx, family.view_action, resource=f"{family.key}:payment:{payment_id}")

    Document = family.document_model
    Payment = family.payment_model
    payment = (
        db.session.query(Payment)
        .join(Document, Document.id == Payment.document_id)
        .filter(Payment.id == payment_id, Document.org_id == ctx.org_id)
        .first()
    )
    if not payment:
        raise NotFoundError(f"Payment {payment_id} not found")
    return payment


def list_payments(document) -> list:
    return list(document.payments)


def payment_status(document) -> str:
    return document.payment_status


def balance_summary(document) -> dict:
    payments = list_payments(document)
    paid_cents = sum(p.amount_cents for p in payments)
    return {
        "total_cents": document.total_cents,
        "paid_cents": paid_cents,
        "pending_cents": document.pending_cents,
        "payment_status": payment_status(document),
        "payments_count": len(payments),
    }
