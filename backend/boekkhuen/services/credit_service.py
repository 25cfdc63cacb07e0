# Overview: Live credit exposure per employee, derived from unsettled withdrawal bills.

from __future__ import annotations

from dataclasses import dataclass, asdict

from sqlalchemy import func, select

from ..extensions import db
from ..models import Sale, User
from ..models.sales import SALE_TYPE_WITHDRAWAL
from ..validation import NotFoundError
"""
Nothing here is cached or stored. Every figure is recomputed from the sales
table at read time, at read-committed isolation; the numbers drive warnings,
not stock safety, so a snapshot that misses an in-flight write is acceptable.
"""


@dataclass(frozen=True)
class CreditSummary:
    credit_limit: int
    credit_used: int
    credit_remaining: int

    def to_dict(self) -> dict:
        return asdict(self)


def build_summary(credit_limit: int | None, credit_used: int | None) -> CreditSummary:
    """Both inputs are clamped at zero so corrupted rows never yield negative credit."""
    limit = max(credit_limit or 0, 0)
    used = max(credit_used or 0, 0)
    return CreditSummary(
        credit_limit=limit,
        credit_used=used,
        credit_remaining=max(limit - used, 0),
    )


def usage_for(employee_ids) -> dict[int, int]:
    """
    Outstanding withdrawal amount per employee, in one grouped query.

    Rows with a NULL pending amount predate that column and count with their
    full total. Employees without unsettled withdrawals are absent.
    """
    ids = {int(eid) for eid in employee_ids if eid is not None}
    if not ids:
        return {}

    outstanding = func.coalesce(Sale.pending_amount_cents, Sale.total_amount_cents)
    rows = db.session.execute(
        select(Sale.employee_id, func.sum(outstanding).label("total_pending"))
        .where(
            Sale.employee_id.in_(ids),
            Sale.type == SALE_TYPE_WITHDRAWAL,
            Sale.settled.is_(False),
        )
        .group_by(Sale.employee_id)
    ).all()

    return {row.employee_id: int(row.total_pending or 0) for row in rows}


def usage_for_employee(employee_id: int) -> int:
    return usage_for([employee_id]).get(employee_id, 0)


def _load_active_employee(employee_id: int) -> User:
    employee = db.session.get(User, employee_id)
    if employee is None or not employee.is_active:
        raise NotFoundError("Employee not found", details={"employee_id": employee_id})
    return employee


def credit_summary(employee_id: int) -> CreditSummary:
    employee = _load_active_employee(employee_id)
    return build_summary(employee.credit_limit_cents, usage_for_employee(employee.id))


def credit_summary_batch(employee_ids) -> dict[int, CreditSummary]:
    """Summaries for many employees: one user query plus one aggregation."""
    ids = {int(eid) for eid in employee_ids}
    if not ids:
        return {}

    employees = db.session.execute(
        select(User).where(User.id.in_(ids), User.is_active.is_(True))
    ).scalars().all()
    usage = usage_for(e.id for e in employees)

    return {
        e.id: build_summary(e.credit_limit_cents, usage.get(e.id, 0))
        for e in employees
    }


def active_employee_ids() -> list[int]:
    return list(db.session.execute(
        select(User.id).where(User.is_active.is_(True)).order_by(User.id)
    ).scalars())


@dataclass(frozen=True)
class CreditCheck:
    """Result of projecting a bill change onto an employee's credit."""
    credit_limit: int
    current_used: int
    existing_pending: int
    requested_amount: int
    new_total: int

    @property
    def exceeded(self) -> bool:
        return self.new_total > self.credit_limit

    @property
    def exceeded_by(self) -> int:
        return max(self.new_total - self.credit_limit, 0)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["exceeded"] = self.exceeded
        data["exceeded_by"] = self.exceeded_by
        return data


def project_usage(employee: User, *, new_pending_cents: int, existing_pending_cents: int = 0) -> CreditCheck:
    """
    Credit usage if one bill's outstanding amount changed from
    existing_pending_cents to new_pending_cents.
    """
    current = usage_for_employee(employee.id)
    new_total = current - existing_pending_cents + new_pending_cents
    return CreditCheck(
        credit_limit=max(employee.credit_limit_cents or 0, 0),
        current_used=current,
        existing_pending=existing_pending_cents,
        requested_amount=new_pending_cents,
        new_total=new_total,
    )
