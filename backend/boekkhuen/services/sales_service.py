"""
Sales Service - withdrawal/return bills and their stock effects

Every write here is one unit of work: the sale row, its items and every
stock delta they imply commit together or not at all.

Lifecycle:
    (in memory) -> open/unsettled -> settled
    open/unsettled -> deleted (admin only, stock reversed)

A settled bill keeps its item list; only the settlement path may touch it,
and an admin may reopen it by settling with settled=False.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem, User
from ..models.inventory import MOVEMENT_SALE, MOVEMENT_SALE_EDIT, MOVEMENT_SALE_DELETE
from ..models.sales import SALE_TYPE_WITHDRAWAL
from ..principal import Principal
from ..time_utils import utcnow
from ..validation import (
    AuthorizationError,
    ConflictError,
    CreditLimitExceededError,
    LineItemInput,
    NotFoundError,
    PaymentInput,
    SaleQuery,
    ValidationError,
    parse_line_items,
    parse_notes,
    parse_payment,
    parse_sale_type,
)
from . import credit_service, pricing_service, stock_service
from .concurrency import lock_for_update, unit_of_work
from .sale_totals import (
    PricedLine,
    compute_totals,
    contribution_delta,
    derive_paid,
    derive_pending,
    stock_contribution,
)


def _coerce_items(items) -> list[LineItemInput]:
    if isinstance(items, list) and items and all(isinstance(i, LineItemInput) for i in items):
        return items
    return parse_line_items(items)


def _coerce_payment(payment) -> PaymentInput:
    if isinstance(payment, PaymentInput):
        return payment
    return parse_payment(payment)


def _require_owner_or_admin(principal: Principal, employee_id: int) -> None:
    if principal.is_admin or principal.user_id == employee_id:
        return
    raise AuthorizationError(
        "Only an administrator or the owning employee may change this sale",
        details={"employee_id": employee_id},
    )


def _require_admin(principal: Principal, action: str) -> None:
    if not principal.is_admin:
        raise AuthorizationError(f"Only an administrator may {action}")


def _load_active_employee(employee_id: int) -> User:
    employee = db.session.get(User, employee_id)
    if employee is None or not employee.is_active:
        raise NotFoundError("Employee not found", details={"employee_id": employee_id})
    return employee


def _load_sale_for_update(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def _check_version(sale: Sale, expected_version: int | None) -> None:
    if expected_version is not None and sale.version_id != expected_version:
        raise ConflictError(
            "Sale was modified by another request",
            details={"expected_version": expected_version, "current_version": sale.version_id},
        )


def _price_lines(items: list[LineItemInput], tier: str) -> list[PricedLine]:
    priced = pricing_service.resolve_prices({item.product_id for item in items}, tier)
    lines = []
    for item in items:
        product, unit_price = priced[item.product_id]
        lines.append(PricedLine(
            product_id=product.id,
            product_name=product.name,
            unit_price_cents=unit_price,
            withdrawal=item.withdrawal,
            return_qty=item.return_qty,
            defective=item.defective,
        ))
    return lines


def _build_items(lines: list[PricedLine], per_line_totals: list[int]) -> list[SaleItem]:
    return [
        SaleItem(
            position=index,
            product_id=line.product_id,
            product_name=line.product_name,
            unit_price_cents=line.unit_price_cents,
            withdrawal=line.withdrawal,
            return_qty=line.return_qty,
            defective=line.defective,
            total_price_cents=total,
        )
        for index, (line, total) in enumerate(zip(lines, per_line_totals))
    ]


def _same_items(existing: list[SaleItem], items: list[LineItemInput]) -> bool:
    current = [(i.product_id, i.withdrawal, i.return_qty, i.defective) for i in existing]
    wanted = [(i.product_id, i.withdrawal, i.return_qty, i.defective) for i in items]
    return current == wanted


def _enforce_credit(employee: User, *, new_pending: int, existing_pending: int,
                    request_id: str | None) -> None:
    check = credit_service.project_usage(
        employee,
        new_pending_cents=new_pending,
        existing_pending_cents=existing_pending,
    )
    if not check.exceeded:
        return

    if current_app.config.get("ENFORCE_CREDIT_LIMIT", False):
        raise CreditLimitExceededError("Credit limit exceeded", details=check.to_dict())

    current_app.logger.warning(
        "Credit limit exceeded for employee %s by %s (request %s)",
        employee.id, check.exceeded_by, request_id,
    )


def create_sale(
    principal: Principal,
    employee_id: int,
    sale_type: str,
    items,
    notes: str | None = None,
) -> Sale:
    """
    Price, total and book a new bill together with its stock movements.

    Every product touched by the bill is checked once against its coalesced
    delta, so two lines for the same product cannot slip past the check
    separately.
    """
    sale_type = parse_sale_type(sale_type)
    line_items = _coerce_items(items)
    notes = parse_notes(notes)
    _require_owner_or_admin(principal, employee_id)

    with unit_of_work():
        employee = _load_active_employee(employee_id)

        lines = _price_lines(line_items, employee.price_tier)
        total, per_line = compute_totals(lines)
        pending = derive_pending(total, 0)

        if sale_type == SALE_TYPE_WITHDRAWAL:
            _enforce_credit(employee, new_pending=pending, existing_pending=0,
                            request_id=principal.request_id)

        sale = Sale(
            employee_id=employee.id,
            employee_name=employee.name,
            sale_date=utcnow(),
            type=sale_type,
            notes=notes or None,
            items=_build_items(lines, per_line),
            total_amount_cents=total,
            paid_amount_cents=0,
            pending_amount_cents=pending,
            settled=False,
        )
        db.session.add(sale)
        db.session.flush()

        stock_service.apply_deltas(
            stock_contribution(lines),
            movement_type=MOVEMENT_SALE,
            sale_id=sale.id,
            actor_user_id=principal.user_id,
            request_id=principal.request_id,
            note=f"Sale {sale.id} created",
        )

    current_app.logger.info(
        "Sale %s created for employee %s total=%s (request %s)",
        sale.id, sale.employee_id, sale.total_amount_cents, principal.request_id,
    )
    return sale


def _replace_items(sale: Sale, items: list[LineItemInput], principal: Principal) -> bool:
    """Swap the item list, moving only the per-product difference in stock."""
    _require_owner_or_admin(principal, sale.employee_id)

    if sale.settled:
        if _same_items(sale.items, items):
            return False
        raise ConflictError("Sale already settled", details={"sale_id": sale.id})

    employee = _load_active_employee(sale.employee_id)
    lines = _price_lines(items, employee.price_tier)
    total, per_line = compute_totals(lines)
    pending = derive_pending(total, sale.paid_amount_cents or 0)

    if sale.type == SALE_TYPE_WITHDRAWAL:
        existing = sale.pending_amount_cents
        if existing is None:
            existing = sale.total_amount_cents
        _enforce_credit(employee, new_pending=pending, existing_pending=existing,
                        request_id=principal.request_id)

    deltas = contribution_delta(stock_contribution(sale.items), stock_contribution(lines))
    stock_service.apply_deltas(
        deltas,
        movement_type=MOVEMENT_SALE_EDIT,
        sale_id=sale.id,
        actor_user_id=principal.user_id,
        request_id=principal.request_id,
        note=f"Sale {sale.id} edited",
    )

    sale.items = _build_items(lines, per_line)
    sale.total_amount_cents = total
    sale.pending_amount_cents = pending
    return True


def _apply_payment(sale: Sale, payment: PaymentInput, principal: Principal) -> None:
    sale.cash_amount_cents = payment.cash_amount_cents
    sale.transfer_amount_cents = payment.transfer_amount_cents
    sale.customer_pending_cents = payment.customer_pending_cents
    sale.expense_amount_cents = payment.expense_amount_cents
    sale.awaiting_transfer_cents = payment.awaiting_transfer_cents
    sale.paid_amount_cents = derive_paid(
        payment.cash_amount_cents,
        payment.transfer_amount_cents,
        payment.paid_amount_cents,
    )
    if payment.payment_method:
        sale.payment_method = payment.payment_method
    sale.pending_amount_cents = derive_pending(sale.total_amount_cents, sale.paid_amount_cents)

    if payment.settled and not sale.settled:
        sale.settled = True
        sale.settled_at = utcnow()
        sale.settled_by_user_id = principal.user_id
    elif not payment.settled and sale.settled:
        # Reopened by an admin; item edits are allowed again
        sale.settled = False
        sale.settled_at = None
        sale.settled_by_user_id = None


def update_sale(
    principal: Principal,
    sale_id: int,
    items=None,
    payment=None,
    notes: str | None = None,
    expected_version: int | None = None,
) -> Sale:
    """
    Edit a bill's items and/or its payment fields in one transaction.

    Items are applied first, so an admin can correct quantities and settle
    the bill in the same call. Payment fields require an administrator.
    """
    if items is None and payment is None and notes is None:
        raise ValidationError("Nothing to update")

    line_items = _coerce_items(items) if items is not None else None
    payment_input = _coerce_payment(payment) if payment is not None else None
    notes = parse_notes(notes)
    if payment_input is not None:
        _require_admin(principal, "settle a sale")

    with unit_of_work():
        sale = _load_sale_for_update(sale_id)
        _check_version(sale, expected_version)

        if line_items is not None:
            _replace_items(sale, line_items, principal)
        else:
            _require_owner_or_admin(principal, sale.employee_id)

        if notes is not None:
            if sale.settled and payment_input is None:
                raise ConflictError("Sale already settled", details={"sale_id": sale.id})
            sale.notes = notes or None

        if payment_input is not None:
            _apply_payment(sale, payment_input, principal)

    current_app.logger.info(
        "Sale %s updated by user %s settled=%s (request %s)",
        sale.id, principal.user_id, sale.settled, principal.request_id,
    )
    return sale


def settle_sale(
    principal: Principal,
    sale_id: int,
    payment,
    expected_version: int | None = None,
) -> Sale:
    """Record the payment breakdown of a bill and, by default, close it."""
    _require_admin(principal, "settle a sale")
    payment_input = _coerce_payment(payment)

    with unit_of_work():
        sale = _load_sale_for_update(sale_id)
        _check_version(sale, expected_version)
        _apply_payment(sale, payment_input, principal)

    current_app.logger.info(
        "Sale %s settlement saved by user %s paid=%s pending=%s settled=%s (request %s)",
        sale.id, principal.user_id, sale.paid_amount_cents, sale.pending_amount_cents,
        sale.settled, principal.request_id,
    )
    return sale


def delete_sale(principal: Principal, sale_id: int) -> None:
    """Remove an unsettled bill and put every unit it moved back on the shelf."""
    _require_admin(principal, "delete a sale")

    with unit_of_work():
        sale = _load_sale_for_update(sale_id)
        if sale.settled:
            raise ConflictError("Reopen the sale before deleting it", details={"sale_id": sale.id})

        reversal = {pid: -delta for pid, delta in stock_contribution(sale.items).items()}
        stock_service.apply_deltas(
            reversal,
            movement_type=MOVEMENT_SALE_DELETE,
            sale_id=sale.id,
            actor_user_id=principal.user_id,
            request_id=principal.request_id,
            note=f"Sale {sale.id} deleted",
        )
        db.session.delete(sale)

    current_app.logger.info(
        "Sale %s deleted by user %s (request %s)",
        sale_id, principal.user_id, principal.request_id,
    )


def get_sale(principal: Principal, sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    if not principal.is_admin and sale.employee_id != principal.user_id:
        raise AuthorizationError("You can only view your own sales")
    return sale


def list_sales(principal: Principal, query: SaleQuery) -> tuple[list[Sale], int]:
    """Newest first; employees only ever see their own bills."""
    q = db.session.query(Sale)

    employee_id = query.employee_id
    if not principal.is_admin:
        employee_id = principal.user_id
    if employee_id is not None:
        q = q.filter(Sale.employee_id == employee_id)
    if query.sale_type is not None:
        q = q.filter(Sale.type == query.sale_type)
    if query.settled is not None:
        q = q.filter(Sale.settled.is_(query.settled))
    if query.date_from is not None:
        q = q.filter(Sale.sale_date >= query.date_from)
    if query.date_to is not None:
        q = q.filter(Sale.sale_date <= query.date_to)

    total = q.count()
    sales = (
        q.order_by(Sale.sale_date.desc(), Sale.id.desc())
        .offset((query.page - 1) * query.per_page)
        .limit(query.per_page)
        .all()
    )
    return sales, total
