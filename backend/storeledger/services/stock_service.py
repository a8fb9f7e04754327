# Overview: Stock Adjustment Engine; bulk per-branch quantity deltas.

"""
Stock Adjustment Engine

WHY: Document creation and cancellation move stock for every line at once.
Issuing one query per product holds row locks longer and multiplies round
trips, so deltas are applied as ONE bulk statement inside the caller's
transaction.

RULES:
- Lines without product_id (manual lines) have no stock record; they are
  filtered out before anything is built.
- An empty batch issues no statement at all.
- Repeated product ids are summed into a single delta (an upsert may not
  touch the same row twice).
- Values are NOT clamped: stock may go negative (oversold inventory).
- Missing stock rows are created holding the signed delta.
- Never commits; the enclosing document transition owns the transaction.
"""

from __future__ import annotations

from typing import Iterable, Literal

from sqlalchemy import bindparam, select
from sqlalchemy.dialects import postgresql, sqlite

from ..context import TenantContext
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Product, StockValue
from storeledger.time_utils import utcnow


StockDirection = Literal["add", "subtract"]

DIRECTION_ADD = "add"
DIRECTION_SUBTRACT = "subtract"
VALID_DIRECTIONS = (DIRECTION_ADD, DIRECTION_SUBTRACT)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def opposite(direction: str) -> str:
    return DIRECTION_SUBTRACT if direction == DIRECTION_ADD else DIRECTION_ADD


def collect_deltas(items: Iterable, direction: str) -> dict[int, int]:
    """
    Reduce line items to {product_id: signed delta}.

    items may be dicts or objects exposing product_id and quantity.
    """
    if direction not in VALID_DIRECTIONS:
        raise ValueError(f"Invalid stock direction: {direction}")

    sign = 1 if direction == DIRECTION_ADD else -1
    deltas: dict[int, int] = {}
    for item in items:
        if isinstance(item, dict):
            product_id, quantity = item.get("product_id"), item.get("quantity")
        else:
            product_id, quantity = item.product_id, item.quantity
        if not product_id:
            continue
        deltas[product_id] = deltas.get(product_id, 0) + sign * int(quantity)
    return deltas


def adjust_stock(branch_id: int, items: Iterable, direction: StockDirection) -> int:
    """
    Apply per-product quantity deltas to one branch in a single statement.

    Args:
        branch_id: Branch whose stock records change
        items: line items ({product_id, quantity}); product_id may be None
        direction: "add" or "subtract"

    Returns:
        Number of products touched (0 means no statement was issued)
    """
    deltas = collect_deltas(items, direction)
    if not deltas:
        return 0

    now = utcnow()
    rows = [
        {"product_id": product_id, "branch_id": branch_id, "value": delta, "updated_at": now}
        for product_id, delta in sorted(deltas.items())
    ]

    dialect = db.session.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        _apply_generic(branch_id, rows, now)
        return len(rows)

    stmt = insert(StockValue).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["product_id", "branch_id"],
        set_={
            "value": StockValue.value + stmt.excluded.value,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.session.execute(stmt)
    return len(rows)


def _apply_generic(branch_id: int, rows: list[dict], now) -> None:
    """
    Fallback for backends without ON CONFLICT: one prepared UPDATE executed
    with a parameter list, then one multi-row INSERT for missing records.
    """
    table = StockValue.__table__
    product_ids = [row["product_id"] for row in rows]

    existing = set(
        db.session.execute(
            select(table.c.product_id).where(
                table.c.branch_id == branch_id,
                table.c.product_id.in_(product_ids),
            )
        ).scalars()
    )

    updates = [
        {"b_product_id": row["product_id"], "b_delta": row["value"]}
        for row in rows
        if row["product_id"] in existing
    ]
    if updates:
        stmt = (
            table.update()
            .where(table.c.product_id == bindparam("b_product_id"))
            .where(table.c.branch_id == branch_id)
            .values(value=table.c.value + bindparam("b_delta"), updated_at=now)
        )
        db.session.execute(stmt, updates)

    missing = [row for row in rows if row["product_id"] not in existing]
    if missing:
        db.session.execute(table.insert(), missing)


# =============================================================================
# READS
# =============================================================================

def get_stock(branch_id: int, product_id: int) -> int:
    """Current quantity on hand (0 when no record exists yet)."""
    value = db.session.execute(
        select(StockValue.value).where(
            StockValue.branch_id == branch_id,
            StockValue.product_id == product_id,
        )
    ).scalar()
    return int(value or 0)


def _get_branch(ctx: TenantContext, branch_id: int) -> Branch:
    branch = db.session.query(Branch).filter_by(id=branch_id, org_id=ctx.org_id).first()
    if not branch:
        raise NotFoundError(f"Branch {branch_id} not found")
    return branch


def list_branch_stock(ctx: TenantContext, branch_id: int) -> list[dict]:
    _get_branch(ctx, branch_id)
    rows = (
        db.session.query(StockValue, Product)
        .join(Product, Product.id == StockValue.product_id)
        .filter(StockValue.branch_id == branch_id, Product.org_id == ctx.org_id)
        .order_by(Product.name)
        .all()
    )
    return [
        {**stock.to_dict(), "product_name": product.name}
        for stock, product in rows
    ]


def find_negative_stock(ctx: TenantContext, branch_id: int, product_ids: list[int] | None = None) -> list[dict]:
    """
    Products whose stock at the branch is below zero.

    Oversell is allowed, so this is a report, not a guard.
    """
    _get_branch(ctx, branch_id)
    if product_ids is not None and not all(isinstance(pid, int) for pid in product_ids):
        raise ValidationError("product_ids must be integers")

    query = (
        db.session.query(StockValue, Product)
        .join(Product, Product.id == StockValue.product_id)
        .filter(
            StockValue.branch_id == branch_id,
            StockValue.value < 0,
            Product.org_id == ctx.org_id,
        )
    )
    if product_ids:
        query = query.filter(StockValue.product_id.in_(product_ids))

    return [
        {**stock.to_dict(), "product_name": product.name}
        for stock, product in query.order_by(StockValue.value).all()
    ]
