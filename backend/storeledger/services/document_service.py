# Overview: Document Lifecycle Controller; create, pay, cancel for every document family.

"""
Document Lifecycle Controller

WHY: Sale invoices, sale remisions, purchase invoices and purchase remisions
share one lifecycle. A single controller drives all four, parameterized by
the DocumentFamily policy (see families.py).

LIFECYCLE:
    Draft (validated payload) -> Active -> Partially Paid -> Paid
                                  \\______________________________-> Canceled

Paid states are derived from pending vs total; only canceled_at is stored.

TRANSACTIONS:
- Authorization and payload validation happen BEFORE any transaction
- Create: numbering + document + lines + stock in one transaction
- Cancel: canceled_at + stock restore in one transaction bounded by
  CANCEL_DOCUMENT_TIMEOUT_MS; exceeding it rolls back everything
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import update

from ..context import TenantContext
from ..errors import AlreadyCanceledError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Client, Product, Supplier
from storeledger.time_utils import utcnow
from . import ledger_service
from .concurrency import atomic, run_with_retry
from .families import DocumentFamily
from .ledger_service import resolve_family
from .permission_service import require_action
from .sequence_service import next_internal_id
from .stock_service import adjust_stock


DEFAULT_CANCEL_TIMEOUT_MS = 10000

STATUS_PAID = "paid"
STATUS_PENDING = "pending"
STATUS_EXPIRED = "expired"
STATUS_CANCELED = "canceled"
VALID_STATUS_FILTERS = [STATUS_PAID, STATUS_PENDING, STATUS_EXPIRED, STATUS_CANCELED]

MAX_LIST_LIMIT = 500


# =============================================================================
# VALIDATION
# =============================================================================

def _require_int(value, field: str, *, minimum: int | None = None, allow_none: bool = False) -> int | None:
    if value is None and allow_none:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return value


def compute_line(quantity: int, unit_price_cents: int, discount_cents: int, tax_rate_bps: int) -> dict:
    """
    Amounts of one line.

    Tax applies to the discounted base and rounds half up to the cent.
    """
    gross = quantity * unit_price_cents
    base = gross - discount_cents
    tax_cents = (base * tax_rate_bps + 5000) // 10000
    return {
        "gross_cents": gross,
        "tax_cents": tax_cents,
        "line_total_cents": base + tax_cents,
    }


def _validate_payload(ctx: TenantContext, family: DocumentFamily, payload: dict) -> dict:
    """Return normalized document fields and lines, or raise ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    branch_id = payload.get("branch_id", ctx.branch_id)
    branch_id = _require_int(branch_id, "branch_id", minimum=1)
    branch = db.session.query(Branch).filter_by(id=branch_id, org_id=ctx.org_id).first()
    if not branch or branch.deleted_at is not None:
        raise ValidationError(f"Branch {branch_id} not found")

    fields = {"branch_id": branch_id}

    if family.is_purchase:
        supplier_id = _require_int(payload.get("supplier_id"), "supplier_id", minimum=1)
        if not db.session.query(Supplier.id).filter_by(id=supplier_id, org_id=ctx.org_id).first():
            raise ValidationError(f"Supplier {supplier_id} not found")
        external_invoice_id = payload.get("external_invoice_id")
        if not isinstance(external_invoice_id, str) or not external_invoice_id.strip():
            raise ValidationError("external_invoice_id is required for purchases")
        fields["supplier_id"] = supplier_id
        fields["external_invoice_id"] = external_invoice_id.strip()
    else:
        client_id = _require_int(payload.get("client_id"), "client_id", minimum=1)
        if not db.session.query(Client.id).filter_by(id=client_id, org_id=ctx.org_id).first():
            raise ValidationError(f"Client {client_id} not found")
        fields["client_id"] = client_id

    fields["pays_in_days"] = _require_int(payload.get("pays_in_days"), "pays_in_days", minimum=0, allow_none=True)

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")
    fields["notes"] = notes

    raw_lines = payload.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("At least one line is required")

    product_ids = set()
    for line in raw_lines:
        if isinstance(line, dict) and line.get("product_id") is not None:
            product_ids.add(_require_int(line["product_id"], "product_id", minimum=1))

    products = {}
    if product_ids:
        products = {
            p.id: p for p in db.session.query(Product)
            .filter(Product.id.in_(product_ids), Product.org_id == ctx.org_id)
            .all()
        }
        missing = sorted(product_ids - set(products))
        if missing:
            raise ValidationError(f"Products not found: {missing}")

    lines = []
    for position, raw in enumerate(raw_lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Line {position} must be an object")

        product = products.get(raw.get("product_id"))
        quantity = _require_int(raw.get("quantity"), f"Line {position} quantity", minimum=1)

        unit_price = raw.get("unit_price_cents")
        if unit_price is None and product is not None:
            unit_price = product.cost_cents if family.is_purchase else product.price_cents
        unit_price = _require_int(unit_price, f"Line {position} unit_price_cents", minimum=0)

        discount = _require_int(raw.get("discount_cents", 0), f"Line {position} discount_cents", minimum=0)
        if discount > quantity * unit_price:
            raise ValidationError(f"Line {position} discount exceeds line amount")

        tax_rate = raw.get("tax_rate_bps")
        if tax_rate is None:
            tax_rate = product.tax_rate_bps if product is not None else 0
        tax_rate = _require_int(tax_rate, f"Line {position} tax_rate_bps", minimum=0)

        name = raw.get("name") or (product.name if product is not None else None)
        if not name:
            raise ValidationError(f"Line {position} requires a name or a product")

        amounts = compute_line(quantity, unit_price, discount, tax_rate)
        lines.append({
            "position": position,
            "product_id": product.id if product is not None else None,
            "name": name,
            "quantity": quantity,
            "unit_price_cents": unit_price,
            "discount_cents": discount,
            "tax_rate_bps": tax_rate,
            "tax_cents": amounts["tax_cents"],
            "line_total_cents": amounts["line_total_cents"],
            "gross_cents": amounts["gross_cents"],
        })

    subtotal = sum(line["gross_cents"] for line in lines)
    total_tax = sum(line["tax_cents"] for line in lines)
    total_discount = sum(line["discount_cents"] for line in lines)
    fields.update(
        subtotal_cents=subtotal,
        total_tax_cents=total_tax,
        total_discount_cents=total_discount,
        total_cents=subtotal + total_tax - total_discount,
    )
    return {"fields": fields, "lines": lines}


# =============================================================================
# TRANSITIONS
# =============================================================================

def create_document(ctx: TenantContext, family: DocumentFamily | str, payload: dict):
    """
    Validate and persist a document, its lines, and the stock movement.

    Sale families subtract stock, purchase families add it.
    """
    family = resolve_family(family)
    require_action(ctx, family.create_action, resource=family.key)
    prepared = _validate_payload(ctx, family, payload)
    fields = prepared["fields"]

    def _op():
        with atomic():
            now = utcnow()
            pays_in_days = fields["pays_in_days"]
            document = family.document_model(
                org_id=ctx.org_id,
                internal_id=next_internal_id(ctx.org_id, family.sequence_name),
                created_by_user_id=ctx.user_id,
                pending_cents=fields["total_cents"],
                expires_at=now + timedelta(days=pays_in_days) if pays_in_days is not None else None,
                created_at=now,
                **fields,
            )
            db.session.add(document)
            db.session.flush()

            for line in prepared["lines"]:
                db.session.add(family.line_model(
                    document_id=document.id,
                    **{k: v for k, v in line.items() if k != "gross_cents"},
                ))

            adjust_stock(document.branch_id, prepared["lines"], family.stock_on_create)
            db.session.flush()
        return document

    document = run_with_retry(_op)
    current_app.logger.info(
        "Created %s id=%s internal_id=%s org_id=%s",
        family.key, document.id, document.internal_id, ctx.org_id,
    )
    return document


def cancel_document(
    ctx: TenantContext,
    family: DocumentFamily | str,
    document_id: int,
    *,
    timeout_ms: int | None = None,
):
    """
    Cancel a document and restore its stock movement.

    Canceling is terminal: a second call raises AlreadyCanceledError and
    changes nothing. Not retried; a timeout rolls back the whole cancel.
    """
    family = resolve_family(family)
    require_action(ctx, family.cancel_action, resource=f"{family.key}:{document_id}")

    if timeout_ms is None:
        timeout_ms = current_app.config.get("CANCEL_DOCUMENT_TIMEOUT_MS", DEFAULT_CANCEL_TIMEOUT_MS)

    Document = family.document_model

    with atomic(timeout_ms=timeout_ms):
        result = db.session.execute(
            update(Document)
            .where(
                Document.id == document_id,
                Document.org_id == ctx.org_id,
                Document.canceled_at.is_(None),
            )
            .values(canceled_at=utcnow())
        )
        if result.rowcount != 1:
            exists = db.session.query(Document.id).filter_by(id=document_id, org_id=ctx.org_id).first()
            if not exists:
                raise NotFoundError(f"{family.label} {document_id} not found")
            raise AlreadyCanceledError(f"{family.label} {document_id} is already canceled")

        document = (
            db.session.query(Document)
            .filter_by(id=document_id, org_id=ctx.org_id)
            .populate_existing()
            .one()
        )
        adjust_stock(document.branch_id, document.lines, family.stock_on_cancel)

    current_app.logger.info(
        "Canceled %s id=%s org_id=%s user_id=%s",
        family.key, document_id, ctx.org_id, ctx.user_id,
    )
    return document


def pay_document(ctx: TenantContext, family: DocumentFamily | str, document_id: int, amount_cents: int, method: str):
    return ledger_service.apply_payment(ctx, family, document_id, amount_cents, method)


def cancel_document_payment(ctx: TenantContext, family: DocumentFamily | str, payment_id: int) -> dict:
    return ledger_service.cancel_payment(ctx, family, payment_id)


# =============================================================================
# READS
# =============================================================================

def get_document(ctx: TenantContext, family: DocumentFamily | str, document_id: int):
    family = resolve_family(family)
    require_action(ctx, family.view_action, resource=f"{family.key}:{document_id}")

    document = (
        db.session.query(family.document_model)
        .filter_by(id=document_id, org_id=ctx.org_id)
        .first()
    )
    if not document:
        raise NotFoundError(f"{family.label} {document_id} not found")
    return document


def list_documents(
    ctx: TenantContext,
    family: DocumentFamily | str,
    *,
    status: str | None = None,
    branch_id: int | None = None,
    limit: int = 50,
) -> list:
    """
    Documents of one family, newest first.

    status: paid | pending | expired | canceled (None = all)
    """
    family = resolve_family(family)
    require_action(ctx, family.view_action, resource=family.key)

    if status is not None and status not in VALID_STATUS_FILTERS:
        raise ValidationError(f"Invalid status: {status}. Must be one of {VALID_STATUS_FILTERS}")
    limit = _require_int(limit, "limit", minimum=1)
    limit = min(limit, MAX_LIST_LIMIT)

    Document = family.document_model
    query = db.session.query(Document).filter(Document.org_id == ctx.org_id)

    if branch_id is not None:
        query = query.filter(Document.branch_id == branch_id)

    if status == STATUS_CANCELED:
        query = query.filter(Document.canceled_at.isnot(None))
    elif status == STATUS_PAID:
        query = query.filter(Document.canceled_at.is_(None), Document.pending_cents <= 0)
    elif status == STATUS_PENDING:
        query = query.filter(Document.canceled_at.is_(None), Document.pending_cents > 0)
    elif status == STATUS_EXPIRED:
        query = query.filter(
            Document.canceled_at.is_(None),
            Document.pending_cents > 0,
            Document.expires_at.isnot(None),
            Document.expires_at < utcnow(),
        )

    return query.order_by(Document.internal_id.desc()).limit(limit).all()
