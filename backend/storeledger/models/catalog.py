from __future__ import annotations

from ..extensions import db
from storeledger.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data (org scoped).

    Quantities on hand are NOT stored here; see StockValue (per branch).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_org_name", "org_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    reference = db.Column(db.String(64), nullable=True)

    price_cents = db.Column(db.Integer, nullable=True)
    cost_cents = db.Column(db.Integer, nullable=True)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)  # Basis points (1900 = 19%)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} org_id={self.org_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "reference": self.reference,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class StockValue(db.Model):
    """
    Quantity on hand for one product at one branch.

    INVARIANTS:
    - Exactly one row per (product_id, branch_id); the bulk upsert in
      stock_service relies on the unique constraint.
    - value may be negative (oversold inventory is not clamped).
    - Written only by stock_service.adjust_stock inside the transaction of
      the document transition that justifies the change.
    """
    __tablename__ = "stock_values"
    __table_args__ = (
        db.UniqueConstraint("product_id", "branch_id", name="uq_stock_values_product_branch"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stocks", lazy=True))
    branch = db.relationship("Branch")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "branch_id": self.branch_id,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }

class Client(db.Model):
    """Sale-side counterparty."""
    __tablename__ = "clients"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    id_number = db.Column(db.String(64), nullable=True)
    tel = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "id_number": self.id_number,
            "tel": self.tel,
            "email": self.email,
        }


class Supplier(db.Model):
    """Purchase-side counterparty."""
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    id_number = db.Column(db.String(64), nullable=True)
    tel = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "id_number": self.id_number,
            "tel": self.tel,
            "email": self.email,
        }
