"""
Document families share one shape (DocumentMixin / DocumentLineMixin /
DocumentPaymentMixin) but live in their own tables, so every Payment keeps a
type-specific foreign key to exactly one document table.

    sale_invoices       <- sale_invoice_lines,       sale_invoice_payments
    sale_remisions      <- sale_remision_lines,      sale_remision_payments
    purchase_invoices   <- purchase_invoice_lines,   purchase_invoice_payments
    purchase_remisions  <- purchase_remision_lines,  purchase_remision_payments

INVARIANTS (enforced by ledger_service / document_service):
- 0 <= pending_cents <= total_cents in every committed state
- canceled_at is set at most once; a canceled document is terminal
"""

from __future__ import annotations

from datetime import timezone

from sqlalchemy.orm import declared_attr

from ..extensions import db
from storeledger.time_utils import to_utc_z, utcnow


PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_CANCELED = "canceled"


class DocumentMixin:
    family_key: str = ""

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing number, sequential per organization and family
    internal_id = db.Column(db.Integer, nullable=False)

    # Amounts in cents: total = subtotal + tax - discount
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    total_tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    pending_cents = db.Column(db.Integer, nullable=False)

    # Credit term (None = due immediately)
    pays_in_days = db.Column(db.Integer, nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    canceled_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @declared_attr
    def __table_args__(cls):
        return (
            db.UniqueConstraint("org_id", "internal_id", name=f"uq_{cls.__tablename__}_org_internal"),
            db.Index(f"ix_{cls.__tablename__}_org_branch", "org_id", "branch_id"),
            {"sqlite_autoincrement": True},
        )

    @declared_attr
    def org_id(cls):
        return db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    @declared_attr
    def branch_id(cls):
        return db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    @declared_attr
    def created_by_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    @declared_attr
    def branch(cls):
        return db.relationship("Branch")

    @property
    def payment_status(self) -> str:
        """Derived state: paid/partial are never stored."""
        if self.canceled_at is not None:
            return PAYMENT_STATUS_CANCELED
        if self.pending_cents <= 0:
            return PAYMENT_STATUS_PAID
        if self.pending_cents < self.total_cents:
            return PAYMENT_STATUS_PARTIAL
        return PAYMENT_STATUS_UNPAID

    @property
    def is_expired(self) -> bool:
        if self.canceled_at is not None or self.pending_cents <= 0 or self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is not None:
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        return expires_at < utcnow()

    def counterparty_dict(self) -> dict:
        return {}

    def to_dict(self, *, include_lines: bool = False, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "family": self.family_key,
            "internal_id": self.internal_id,
            "org_id": self.org_id,
            "branch_id": self.branch_id,
            "subtotal_cents": self.subtotal_cents,
            "total_tax_cents": self.total_tax_cents,
            "total_discount_cents": self.total_discount_cents,
            "total_cents": self.total_cents,
            "pending_cents": self.pending_cents,
            "payment_status": self.payment_status,
            "pays_in_days": self.pays_in_days,
            "expires_at": to_utc_z(self.expires_at),
            "is_expired": self.is_expired,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "canceled_at": to_utc_z(self.canceled_at),
        }
        data.update(self.counterparty_dict())
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        if include_payments:
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class SaleSideMixin:
    @declared_attr
    def client_id(cls):
        return db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)

    @declared_attr
    def client(cls):
        return db.relationship("Client")

    def counterparty_dict(self) -> dict:
        return {"client_id": self.client_id}


class PurchaseSideMixin:
    # Supplier's own invoice/remision number
    external_invoice_id = db.Column(db.String(64), nullable=False)

    @declared_attr
    def supplier_id(cls):
        return db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    @declared_attr
    def supplier(cls):
        return db.relationship("Supplier")

    def counterparty_dict(self) -> dict:
        return {
            "supplier_id": self.supplier_id,
            "external_invoice_id": self.external_invoice_id,
        }


class DocumentLineMixin:
    """
    Line item. product_id is nullable: manual/ad hoc lines carry only a name
    and never touch stock.
    """
    __document_table__: str = ""
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    @declared_attr
    def document_id(cls):
        return db.Column(db.Integer, db.ForeignKey(f"{cls.__document_table__}.id"), nullable=False, index=True)

    @declared_attr
    def product_id(cls):
        return db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "position": self.position,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "line_total_cents": self.line_total_cents,
        }


class DocumentPaymentMixin:
    """
    Payment against one document.

    Created only in the transaction that decrements the parent's pending;
    deleted only in the transaction that restores it.
    """
    __document_table__: str = ""
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(32), nullable=False)  # cash, credit_card, transfer
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    @declared_attr
    def document_id(cls):
        return db.Column(db.Integer, db.ForeignKey(f"{cls.__document_table__}.id"), nullable=False, index=True)

    @declared_attr
    def created_by_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


# =============================================================================
# SALE INVOICE
# =============================================================================

class SaleInvoice(DocumentMixin, SaleSideMixin, db.Model):
    __tablename__ = "sale_invoices"
    family_key = "invoice"

    lines = db.relationship("SaleInvoiceLine", back_populates="document", order_by="SaleInvoiceLine.position", lazy=True)
    payments = db.relationship("SaleInvoicePayment", back_populates="document", order_by="SaleInvoicePayment.id", lazy=True)


class SaleInvoiceLine(DocumentLineMixin, db.Model):
    __tablename__ = "sale_invoice_lines"
    __document_table__ = "sale_invoices"

    document = db.relationship("SaleInvoice", back_populates="lines")


class SaleInvoicePayment(DocumentPaymentMixin, db.Model):
    __tablename__ = "sale_invoice_payments"
    __document_table__ = "sale_invoices"

    document = db.relationship("SaleInvoice", back_populates="payments")


# =============================================================================
# SALE REMISION
# =============================================================================

class SaleRemision(DocumentMixin, SaleSideMixin, db.Model):
    __tablename__ = "sale_remisions"
    family_key = "remision"

    lines = db.relationship("SaleRemisionLine", back_populates="document", order_by="SaleRemisionLine.position", lazy=True)
    payments = db.relationship("SaleRemisionPayment", back_populates="document", order_by="SaleRemisionPayment.id", lazy=True)


class SaleRemisionLine(DocumentLineMixin, db.Model):
    __tablename__ = "sale_remision_lines"
    __document_table__ = "sale_remisions"

    document = db.relationship("SaleRemision", back_populates="lines")


class SaleRemisionPayment(DocumentPaymentMixin, db.Model):
    __tablename__ = "sale_remision_payments"
    __document_table__ = "sale_remisions"

    document = db.relationship("SaleRemision", back_populates="payments")


# =============================================================================
# PURCHASE INVOICE
# =============================================================================

class PurchaseInvoice(DocumentMixin, PurchaseSideMixin, db.Model):
    __tablename__ = "purchase_invoices"
    family_key = "purchase-invoice"

    lines = db.relationship("PurchaseInvoiceLine", back_populates="document", order_by="PurchaseInvoiceLine.position", lazy=True)
    payments = db.relationship("PurchaseInvoicePayment", back_populates="document", order_by="PurchaseInvoicePayment.id", lazy=True)


class PurchaseInvoiceLine(DocumentLineMixin, db.Model):
    __tablename__ = "purchase_invoice_lines"
    __document_table__ = "purchase_invoices"

    document = db.relationship("PurchaseInvoice", back_populates="lines")


class PurchaseInvoicePayment(DocumentPaymentMixin, db.Model):
    __tablename__ = "purchase_invoice_payments"
    __document_table__ = "purchase_invoices"

    document = db.relationship("PurchaseInvoice", back_populates="payments")


# =============================================================================
# PURCHASE REMISION
# =============================================================================

class PurchaseRemision(DocumentMixin, PurchaseSideMixin, db.Model):
    __tablename__ = "purchase_remisions"
    family_key = "purchase-remision"

    lines = db.relationship("PurchaseRemisionLine", back_populates="document", order_by="PurchaseRemisionLine.position", lazy=True)
    payments = db.relationship("PurchaseRemisionPayment", back_populates="document", order_by="PurchaseRemisionPayment.id", lazy=True)


class PurchaseRemisionLine(DocumentLineMixin, db.Model):
    __tablename__ = "purchase_remision_lines"
    __document_table__ = "purchase_remisions"

    document = db.relationship("PurchaseRemision", back_populates="lines")


class PurchaseRemisionPayment(DocumentPaymentMixin, db.Model):
    __tablename__ = "purchase_remision_payments"
    __document_table__ = "purchase_remisions"

    document = db.relationship("PurchaseRemision", back_populates="payments")
