from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

# Four price tiers, keyed by the labels used on the shop floor
PRICE_TIER_NORMAL = "NORMAL"      # ราคาปกติ
PRICE_TIER_AGENT = "AGENT"        # ราคาตัวแทน
PRICE_TIER_EMPLOYEE = "EMPLOYEE"  # ราคาพนักงาน
PRICE_TIER_SPECIAL = "SPECIAL"    # ราคาพิเศษ

PRICE_TIERS = (PRICE_TIER_NORMAL, PRICE_TIER_AGENT, PRICE_TIER_EMPLOYEE, PRICE_TIER_SPECIAL)

PRICE_TIER_LABELS = {
    "ราคาปกติ": PRICE_TIER_NORMAL,
    "ราคาตัวแทน": PRICE_TIER_AGENT,
    "ราคาพนักงาน": PRICE_TIER_EMPLOYEE,
    "ราคาพิเศษ": PRICE_TIER_SPECIAL,
}

MOVEMENT_SALE = "SALE"
MOVEMENT_SALE_EDIT = "SALE_EDIT"
MOVEMENT_SALE_DELETE = "SALE_DELETE"
MOVEMENT_TYPES = (MOVEMENT_SALE, MOVEMENT_SALE_EDIT, MOVEMENT_SALE_DELETE)


class Product(db.Model):
    """
    Product master data.

    Products are soft-deleted through is_active; an inactive product cannot be
    priced or put on a sale. The engine never writes to this table, only to
    the product's StockLevel row.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    prices = db.relationship(
        "ProductPrice",
        backref="product",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    stock_level = db.relationship("StockLevel", backref="product", uselist=False, lazy=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "is_active": self.is_active,
            "prices": {p.tier: p.price_cents for p in self.prices},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductPrice(db.Model):
    """Unit price of a product for one price tier."""
    __tablename__ = "product_prices"
    __table_args__ = (
        db.UniqueConstraint("product_id", "tier", name="uq_product_prices_product_tier"),
        db.CheckConstraint("price_cents >= 0", name="ck_product_prices_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    tier = db.Column(db.String(16), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)


class StockLevel(db.Model):
    """
    Authoritative on-hand counter, one row per product.

    INVARIANT: current_stock >= 0. The stock service only ever changes it with
    a conditional UPDATE; the CHECK constraint is the last line behind that.
    """
    __tablename__ = "stock_levels"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_stock_levels_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, unique=True)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    reserved_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_point = db.Column(db.Integer, nullable=False, default=10)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "current_stock": self.current_stock,
            "reserved_stock": self.reserved_stock,
            "reorder_point": self.reorder_point,
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only record of every delta the stock service applied.

    Written in the same transaction as the delta. sale_id is a plain integer
    so movements outlive a deleted sale.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False)

    quantity_delta = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    sale_id = db.Column(db.Integer, nullable=True, index=True)
    actor_user_id = db.Column(db.Integer, nullable=True)
    request_id = db.Column(db.String(64), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "sale_id": self.sale_id,
            "actor_user_id": self.actor_user_id,
            "request_id": self.request_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
