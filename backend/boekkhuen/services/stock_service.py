# Overview: Stock ledger; the only code path that changes a product's on-hand counter.

from __future__ import annotations

from sqlalchemy import select, update

from ..extensions import db
from ..models import Product, StockLevel, StockMovement
from ..models.inventory import MOVEMENT_TYPES
from ..validation import InsufficientStockError, ValidationError
from ..time_utils import utcnow
"""
Stock Ledger Invariants (authoritative)

- current_stock >= 0 for every product at every commit.
- Stock only moves through apply_delta; nothing assigns current_stock directly.
- apply_delta is a single conditional UPDATE:
      current_stock = current_stock + :delta WHERE current_stock + :delta >= 0
  so two requests racing on the same product cannot both pass a stale check.
- Deltas for one operation are coalesced per product and applied in ascending
  product_id order, so every writer takes row locks in the same order.
- Each applied delta appends a StockMovement in the same transaction.
- Callers own the transaction (see concurrency.unit_of_work); this module
  never commits.
"""


def coalesce(pairs) -> dict[int, int]:
    """Merge (product_id, delta) pairs into one net delta per product."""
    totals: dict[int, int] = {}
    for product_id, delta in pairs:
        totals[product_id] = totals.get(product_id, 0) + delta
    return totals


def get_current_stock(product_id: int) -> int:
    value = db.session.execute(
        select(StockLevel.current_stock).where(StockLevel.product_id == product_id)
    ).scalar_one_or_none()
    return int(value or 0)


def _product_name(product_id: int) -> str:
    name = db.session.execute(
        select(Product.name).where(Product.id == product_id)
    ).scalar_one_or_none()
    return name or f"product {product_id}"


def _record_movement(
    *,
    product_id: int,
    delta: int,
    new_stock: int,
    movement_type: str,
    sale_id: int | None,
    actor_user_id: int | None,
    request_id: str | None,
    note: str | None,
) -> StockMovement:
    movement = StockMovement(
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=delta,
        previous_stock=new_stock - delta,
        new_stock=new_stock,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
        request_id=request_id,
        note=note,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def apply_delta(
    product_id: int,
    delta: int,
    *,
    movement_type: str,
    sale_id: int | None = None,
    actor_user_id: int | None = None,
    request_id: str | None = None,
    note: str | None = None,
) -> int:
    """
    Apply a signed delta and return the new on-hand quantity.

    Raises InsufficientStockError (and changes nothing) when the result would
    be negative. A product without a stock row counts as zero on hand.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Unknown movement type: {movement_type}")
    if delta == 0:
        return get_current_stock(product_id)

    stmt = (
        update(StockLevel)
        .where(
            StockLevel.product_id == product_id,
            StockLevel.current_stock + delta >= 0,
        )
        .values(current_stock=StockLevel.current_stock + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount == 1:
        new_stock = get_current_stock(product_id)
    else:
        exists = db.session.execute(
            select(StockLevel.id).where(StockLevel.product_id == product_id)
        ).scalar_one_or_none()

        if exists is not None or delta < 0:
            raise InsufficientStockError(
                product_id=product_id,
                product_name=_product_name(product_id),
                available=get_current_stock(product_id),
                requested=-delta,
            )

        # First stock ever booked against this product
        db.session.add(StockLevel(product_id=product_id, current_stock=delta))
        db.session.flush()
        new_stock = delta

    _record_movement(
        product_id=product_id,
        delta=delta,
        new_stock=new_stock,
        movement_type=movement_type,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
        request_id=request_id,
        note=note,
    )
    return new_stock


def apply_deltas(deltas: dict[int, int], **kwargs) -> dict[int, int]:
    """
    Apply already-coalesced deltas; returns product_id -> new stock for the
    products that actually moved. The first shortage aborts the batch and the
    caller's transaction rollback undoes any earlier rows.
    """
    new_levels: dict[int, int] = {}
    for product_id in sorted(deltas):
        delta = deltas[product_id]
        if delta == 0:
            continue
        new_levels[product_id] = apply_delta(product_id, delta, **kwargs)
    return new_levels


def low_stock_products() -> list[dict]:
    """Active products whose on-hand quantity is at or below their reorder point."""
    rows = db.session.execute(
        select(Product.id, Product.name, StockLevel.current_stock, StockLevel.reorder_point)
        .join(StockLevel, StockLevel.product_id == Product.id)
        .where(
            Product.is_active.is_(True),
            StockLevel.current_stock <= StockLevel.reorder_point,
        )
        .order_by(StockLevel.current_stock.asc(), Product.id.asc())
    ).all()
    return [
        {
            "product_id": row.id,
            "product_name": row.name,
            "current_stock": row.current_stock,
            "reorder_point": row.reorder_point,
            "out_of_stock": row.current_stock == 0,
        }
        for row in rows
    ]
