from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

SALE_TYPE_WITHDRAWAL = "WITHDRAWAL"  # เบิก
SALE_TYPE_RETURN = "RETURN"          # คืน
SALE_TYPES = (SALE_TYPE_WITHDRAWAL, SALE_TYPE_RETURN)

SALE_TYPE_ALIASES = {
    "เบิก": SALE_TYPE_WITHDRAWAL,
    "คืน": SALE_TYPE_RETURN,
}

PAYMENT_CASH = "CASH"
PAYMENT_TRANSFER = "TRANSFER"
PAYMENT_CUSTOMER_PENDING = "CUSTOMER_PENDING"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_TRANSFER, PAYMENT_CUSTOMER_PENDING)


class Sale(db.Model):
    """
    Withdrawal or return bill of one employee.

    INVARIANTS (maintained by sales_service, never by callers):
    - total_amount_cents == sum(item.total_price_cents)
    - pending_amount_cents == max(total_amount_cents - paid_amount_cents, 0)
    - once settled, the item list is frozen until an admin reopens the bill

    pending_amount_cents is nullable only because bills written before the
    column existed carry NULL there; credit usage falls back to the total.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_employee_type_settled", "employee_id", "type", "settled"),
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Snapshot at creation so renaming an employee does not rewrite old bills
    employee_name = db.Column(db.String(255), nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    type = db.Column(db.String(16), nullable=False, default=SALE_TYPE_WITHDRAWAL)
    notes = db.Column(db.Text, nullable=True)

    # Amounts in satang
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    pending_amount_cents = db.Column(db.Integer, nullable=True)
    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_CASH)
    cash_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    transfer_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    customer_pending_cents = db.Column(db.Integer, nullable=False, default=0)
    expense_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    awaiting_transfer_cents = db.Column(db.Integer, nullable=False, default=0)

    settled = db.Column(db.Boolean, nullable=False, default=False, index=True)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    settled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    employee = db.relationship("User", foreign_keys=[employee_id])
    items = db.relationship(
        "SaleItem",
        backref="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} employee_id={self.employee_id} type={self.type} settled={self.settled}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "sale_date": to_utc_z(self.sale_date),
            "type": self.type,
            "notes": self.notes,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "pending_amount_cents": self.pending_amount_cents,
            "payment_method": self.payment_method,
            "cash_amount_cents": self.cash_amount_cents,
            "transfer_amount_cents": self.transfer_amount_cents,
            "customer_pending_cents": self.customer_pending_cents,
            "expense_amount_cents": self.expense_amount_cents,
            "awaiting_transfer_cents": self.awaiting_transfer_cents,
            "settled": self.settled,
            "settled_at": to_utc_z(self.settled_at) if self.settled_at else None,
            "settled_by_user_id": self.settled_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line of a sale. Price and name are snapshots taken when the line was priced.

    total_price_cents == unit_price_cents * (withdrawal - return_qty - defective)
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("withdrawal >= 0", name="ck_sale_items_withdrawal"),
        db.CheckConstraint("return_qty >= 0", name="ck_sale_items_return"),
        db.CheckConstraint("defective >= 0", name="ck_sale_items_defective"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(200), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    withdrawal = db.Column(db.Integer, nullable=False, default=0)
    return_qty = db.Column(db.Integer, nullable=False, default=0)
    defective = db.Column(db.Integer, nullable=False, default=0)

    total_price_cents = db.Column(db.Integer, nullable=False)

    @property
    def stock_delta(self) -> int:
        return self.return_qty - self.withdrawal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price_cents": self.unit_price_cents,
            "withdrawal": self.withdrawal,
            "return": self.return_qty,
            "defective": self.defective,
            "total_price_cents": self.total_price_cents,
        }
