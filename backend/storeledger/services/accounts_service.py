# Overview: Accounts receivable/payable; outstanding pending balances per counterparty.

from __future__ import annotations

from sqlalchemy import func

from .. import permissions
from ..context import TenantContext
from ..extensions import db
from ..models import Client, Supplier
from .families import SALE_FAMILIES, PURCHASE_FAMILIES
from .permission_service import require_action


def _outstanding(ctx: TenantContext, families, counterparty_model, counterparty_column: str) -> list[dict]:
    """
    Sum pending of non-canceled documents with pending > 0, per counterparty,
    across the given families. Largest balance first.
    """
    totals: dict[int, dict] = {}

    for family in families:
        Document = family.document_model
        fk = getattr(Document, counterparty_column)
        rows = (
            db.session.query(
                fk,
                counterparty_model.name,
                func.sum(Document.pending_cents),
                func.count(Document.id),
            )
            .join(counterparty_model, counterparty_model.id == fk)
            .filter(
                Document.org_id == ctx.org_id,
                Document.canceled_at.is_(None),
                Document.pending_cents > 0,
            )
            .group_by(fk, counterparty_model.name)
            .all()
        )
        for counterparty_id, name, pending, count in rows:
            entry = totals.setdefault(counterparty_id, {
                counterparty_column: counterparty_id,
                "name": name,
                "pending_cents": 0,
                "documents_count": 0,
                "by_family": {},
            })
            entry["pending_cents"] += int(pending or 0)
            entry["documents_count"] += int(count)
            entry["by_family"][family.key] = int(pending or 0)

    return sorted(totals.values(), key=lambda e: (-e["pending_cents"], e[counterparty_column]))


def receivables(ctx: TenantContext) -> dict:
    """What clients owe: sale invoices and sale remisions."""
    require_action(ctx, permissions.SEE_STATS, resource="accounts:receivable")
    entries = _outstanding(ctx, SALE_FAMILIES, Client, "client_id")
    return {
        "total_pending_cents": sum(e["pending_cents"] for e in entries),
        "clients": entries,
    }


def payables(ctx: TenantContext) -> dict:
    """What the organization owes suppliers: purchase invoices and remisions."""
    require_action(ctx, permissions.SEE_STATS, resource="accounts:payable")
    entries = _outstanding(ctx, PURCHASE_FAMILIES, Supplier, "supplier_id")
    return {
        "total_pending_cents": sum(e["pending_cents"] for e in entries),
        "suppliers": entries,
    }
