# Overview: Per-family policies for the document lifecycle controller.

"""
Document families

Four document families share one lifecycle. What differs between them is
data, not code, so each family is a DocumentFamily policy selected by key:

    key                 side      create    cancel     create action              cancel action
    invoice             sale      subtract  add        create_electronic_invoice  cancel_pos_and_remision
    remision            sale      subtract  add        create_pos_and_remision    cancel_pos_and_remision
    purchase-invoice    purchase  add       subtract   create_purchase            cancel_purchase
    purchase-remision   purchase  add       subtract   create_purchase            cancel_purchase

Cancellation always applies the opposite stock direction of creation, so
create + cancel nets to zero.
"""

from __future__ import annotations

from dataclasses import dataclass

from .. import permissions
from ..errors import ValidationError
from ..models import (
    SaleInvoice, SaleInvoiceLine, SaleInvoicePayment,
    SaleRemision, SaleRemisionLine, SaleRemisionPayment,
    PurchaseInvoice, PurchaseInvoiceLine, PurchaseInvoicePayment,
    PurchaseRemision, PurchaseRemisionLine, PurchaseRemisionPayment,
)
from .stock_service import DIRECTION_ADD, DIRECTION_SUBTRACT, opposite


SIDE_SALE = "sale"
SIDE_PURCHASE = "purchase"


@dataclass(frozen=True)
class DocumentFamily:
    key: str
    label: str
    side: str
    document_model: type
    line_model: type
    payment_model: type
    stock_on_create: str
    create_action: str
    cancel_action: str
    view_action: str

    @property
    def stock_on_cancel(self) -> str:
        return opposite(self.stock_on_create)

    @property
    def sequence_name(self) -> str:
        return self.document_model.__tablename__

    @property
    def is_purchase(self) -> bool:
        return self.side == SIDE_PURCHASE


SALE_INVOICE = DocumentFamily(
    key="invoice",
    label="Invoice",
    side=SIDE_SALE,
    document_model=SaleInvoice,
    line_model=SaleInvoiceLine,
    payment_model=SaleInvoicePayment,
    stock_on_create=DIRECTION_SUBTRACT,
    create_action=permissions.CREATE_ELECTRONIC_INVOICE,
    cancel_action=permissions.CANCEL_POS_AND_REMISION,
    view_action=permissions.SEE_INVOICES,
)

SALE_REMISION = DocumentFamily(
    key="remision",
    label="Remision",
    side=SIDE_SALE,
    document_model=SaleRemision,
    line_model=SaleRemisionLine,
    payment_model=SaleRemisionPayment,
    stock_on_create=DIRECTION_SUBTRACT,
    create_action=permissions.CREATE_POS_AND_REMISION,
    cancel_action=permissions.CANCEL_POS_AND_REMISION,
    view_action=permissions.SEE_INVOICES,
)

PURCHASE_INVOICE = DocumentFamily(
    key="purchase-invoice",
    label="Purchase invoice",
    side=SIDE_PURCHASE,
    document_model=PurchaseInvoice,
    line_model=PurchaseInvoiceLine,
    payment_model=PurchaseInvoicePayment,
    stock_on_create=DIRECTION_ADD,
    create_action=permissions.CREATE_PURCHASE,
    cancel_action=permissions.CANCEL_PURCHASE,
    view_action=permissions.SEE_PURCHASES,
)

PURCHASE_REMISION = DocumentFamily(
    key="purchase-remision",
    label="Purchase remision",
    side=SIDE_PURCHASE,
    document_model=PurchaseRemision,
    line_model=PurchaseRemisionLine,
    payment_model=PurchaseRemisionPayment,
    stock_on_create=DIRECTION_ADD,
    create_action=permissions.CREATE_PURCHASE,
    cancel_action=permissions.CANCEL_PURCHASE,
    view_action=permissions.SEE_PURCHASES,
)

FAMILIES = {
    family.key: family
    for family in (SALE_INVOICE, SALE_REMISION, PURCHASE_INVOICE, PURCHASE_REMISION)
}

SALE_FAMILIES = [SALE_INVOICE, SALE_REMISION]
PURCHASE_FAMILIES = [PURCHASE_INVOICE, PURCHASE_REMISION]


def get_family(key: str) -> DocumentFamily:
    family = FAMILIES.get(key) if isinstance(key, str) else None
    if family is None:
        raise ValidationError(
            f"Invalid document type: {key}. Must be one of {sorted(FAMILIES)}"
        )
    return family
