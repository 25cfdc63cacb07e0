# Overview: Pure arithmetic for sale lines, bill totals and stock contributions.

from __future__ import annotations

from dataclasses import dataclass

from ..validation import ValidationError


@dataclass(frozen=True)
class PricedLine:
    """A requested line after its unit price was resolved."""
    product_id: int
    product_name: str
    unit_price_cents: int
    withdrawal: int = 0
    return_qty: int = 0
    defective: int = 0

    @property
    def net_quantity(self) -> int:
        return self.withdrawal - self.return_qty - self.defective

    @property
    def total_price_cents(self) -> int:
        return line_total(self.unit_price_cents, self.withdrawal, self.return_qty, self.defective)

    @property
    def stock_delta(self) -> int:
        return self.return_qty - self.withdrawal


def line_total(unit_price_cents: int, withdrawal: int, return_qty: int, defective: int) -> int:
    """unit price x net quantity sold; negative for a pure return line."""
    for name, qty in (("withdrawal", withdrawal), ("return", return_qty), ("defective", defective)):
        if not isinstance(qty, int) or isinstance(qty, bool) or qty < 0:
            raise ValidationError(f"{name} must be a non-negative integer")
    return unit_price_cents * (withdrawal - return_qty - defective)


def compute_totals(lines) -> tuple[int, list[int]]:
    """Returns (total_amount_cents, per-line total_price_cents)."""
    lines = list(lines)
    if not lines:
        raise ValidationError("At least one sale item is required")
    per_line = [
        line_total(line.unit_price_cents, line.withdrawal, line.return_qty, line.defective)
        for line in lines
    ]
    return sum(per_line), per_line


def derive_pending(total_amount_cents: int, paid_amount_cents: int) -> int:
    return max(total_amount_cents - paid_amount_cents, 0)


def derive_paid(cash_amount_cents: int, transfer_amount_cents: int, explicit: int | None = None) -> int:
    if explicit is not None:
        return explicit
    return cash_amount_cents + transfer_amount_cents


def stock_contribution(items) -> dict[int, int]:
    """
    Net stock effect of an item set, per product (return - withdrawal).

    Defective units are priced but never moved here: they left the shelf as
    part of the withdrawal.
    """
    contribution: dict[int, int] = {}
    for item in items:
        contribution[item.product_id] = contribution.get(item.product_id, 0) + item.stock_delta
    return contribution


def contribution_delta(old: dict[int, int], new: dict[int, int]) -> dict[int, int]:
    """
    Per-product delta that turns the old contribution into the new one.
    Products dropped from the new set revert their old contribution fully.
    """
    delta: dict[int, int] = {}
    for product_id in set(old) | set(new):
        change = new.get(product_id, 0) - old.get(product_id, 0)
        if change:
            delta[product_id] = change
    return delta
