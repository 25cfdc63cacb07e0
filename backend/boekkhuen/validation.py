from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .models.sales import SALE_TYPES, SALE_TYPE_ALIASES, PAYMENT_METHODS
from .time_utils import parse_iso_datetime


# Largest single amount accepted from a client: 999,999,999.99 baht in satang
MAX_AMOUNT_CENTS = 99_999_999_999
MAX_QUANTITY = 1_000_000
MAX_NOTES_LENGTH = 1000


class SaleError(Exception):
    """Base class for every recoverable engine error."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(SaleError):
    """400-level input problem."""


class PriceNotConfigured(SaleError):
    """Product has no price for the employee's tier."""

    def __init__(self, product_name: str, tier: str):
        super().__init__(
            f"Price for level {tier} not found for product {product_name}",
            details={"product_name": product_name, "price_tier": tier},
        )
        self.product_name = product_name
        self.tier = tier


class InsufficientStockError(SaleError):
    """Applying a delta would drive stock below zero."""

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, requested: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class CreditLimitExceededError(SaleError):
    """Withdrawal would push the employee past the credit limit."""


class NotFoundError(SaleError):
    status_code = 404


class ConflictError(SaleError):
    """409-level business rule conflict (settled sale, concurrent write)."""
    status_code = 409


class AuthorizationError(SaleError):
    status_code = 403


def parse_int(value: Any, field: str, *, default: int | None = None, minimum: int | None = 0,
              maximum: int | None = None) -> int:
    """
    Strict integer parsing.

    Rejects floats, booleans, scientific notation and decimal strings instead of
    coercing them; a missing value falls back to ``default`` when one is given.
    """
    if value is None:
        if default is None:
            raise ValidationError(f"{field} is required")
        return default

    # bool is a subclass of int
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return result


def parse_amount_cents(value: Any, field: str, *, default: int | None = None) -> int:
    return parse_int(value, field, default=default, minimum=0, maximum=MAX_AMOUNT_CENTS)


@dataclass(frozen=True)
class LineItemInput:
    """One requested sale line before pricing."""
    product_id: int
    withdrawal: int = 0
    return_qty: int = 0
    defective: int = 0

    @property
    def net_quantity(self) -> int:
        return self.withdrawal - self.return_qty - self.defective

    @property
    def stock_delta(self) -> int:
        # defective units already left the shelf with the withdrawal
        return self.return_qty - self.withdrawal


def parse_line_items(raw: Any) -> list[LineItemInput]:
    if raw is None or not isinstance(raw, list) or len(raw) == 0:
        raise ValidationError("Sale items are required")

    items: list[LineItemInput] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        prefix = f"items[{index}]"
        product_id = parse_int(entry.get("product_id"), f"{prefix}.product_id", minimum=1)
        items.append(LineItemInput(
            product_id=product_id,
            withdrawal=parse_int(entry.get("withdrawal"), f"{prefix}.withdrawal", default=0,
                                 maximum=MAX_QUANTITY),
            return_qty=parse_int(entry.get("return"), f"{prefix}.return", default=0,
                                 maximum=MAX_QUANTITY),
            defective=parse_int(entry.get("defective"), f"{prefix}.defective", default=0,
                                maximum=MAX_QUANTITY),
        ))
    return items


def parse_notes(value: Any) -> str | None:
    """None stays None (untouched); a string is stripped and may come back empty."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("notes must be a string")
    stripped = value.strip()
    if len(stripped) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return stripped


def parse_sale_type(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Sale type is required")
    normalized = SALE_TYPE_ALIASES.get(value.strip(), value.strip().upper())
    if normalized not in SALE_TYPES:
        raise ValidationError(f"Unknown sale type: {value}")
    return normalized


@dataclass(frozen=True)
class PaymentInput:
    """
    Settlement breakdown.

    paid_amount_cents stays None when the caller did not send one, in which
    case the coordinator derives it as cash + transfer.
    """
    cash_amount_cents: int = 0
    transfer_amount_cents: int = 0
    customer_pending_cents: int = 0
    expense_amount_cents: int = 0
    awaiting_transfer_cents: int = 0
    paid_amount_cents: int | None = None
    payment_method: str | None = None
    settled: bool = True


_PAYMENT_AMOUNT_FIELDS = (
    "cash_amount_cents",
    "transfer_amount_cents",
    "customer_pending_cents",
    "expense_amount_cents",
    "awaiting_transfer_cents",
)


def parse_payment(payload: Any) -> PaymentInput:
    if not isinstance(payload, dict):
        raise ValidationError("Payment breakdown must be an object")

    allowed = set(_PAYMENT_AMOUNT_FIELDS) | {"paid_amount_cents", "payment_method", "settled"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValidationError(f"Unknown payment field: {', '.join(unknown)}")

    amounts = {
        name: parse_amount_cents(payload.get(name), name, default=0)
        for name in _PAYMENT_AMOUNT_FIELDS
    }

    paid = payload.get("paid_amount_cents")
    paid_cents = None if paid is None else parse_amount_cents(paid, "paid_amount_cents")

    method = payload.get("payment_method")
    if method is not None:
        if not isinstance(method, str) or method.strip().upper() not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {method}")
        method = method.strip().upper()

    settled = payload.get("settled", True)
    if not isinstance(settled, bool):
        raise ValidationError("settled must be a boolean")

    return PaymentInput(
        paid_amount_cents=paid_cents,
        payment_method=method,
        settled=settled,
        **amounts,
    )


@dataclass(frozen=True)
class SaleQuery:
    """Closed set of filters accepted when listing sales."""
    employee_id: int | None = None
    sale_type: str | None = None
    settled: bool | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = 1
    per_page: int = 20


def _parse_bool_arg(value: str | None, field: str) -> bool | None:
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{field} must be true or false")


def _parse_date_arg(value: str | None, field: str) -> datetime | None:
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_sale_query(args: dict, *, default_per_page: int = 20, max_per_page: int = 100) -> SaleQuery:
    allowed = {"employee_id", "type", "settled", "date_from", "date_to", "page", "per_page"}
    unknown = sorted(set(args.keys()) - allowed)
    if unknown:
        raise ValidationError(f"Unknown filter: {', '.join(unknown)}")

    employee_id = args.get("employee_id")
    sale_type = args.get("type")
    date_from = _parse_date_arg(args.get("date_from"), "date_from")
    date_to = _parse_date_arg(args.get("date_to"), "date_to")
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must be before date_to")

    return SaleQuery(
        employee_id=parse_int(employee_id, "employee_id", minimum=1) if employee_id else None,
        sale_type=parse_sale_type(sale_type) if sale_type else None,
        settled=_parse_bool_arg(args.get("settled"), "settled"),
        date_from=date_from,
        date_to=date_to,
        page=parse_int(args.get("page"), "page", default=1, minimum=1),
        per_page=parse_int(args.get("per_page"), "per_page", default=default_per_page,
                           minimum=1, maximum=max_per_page),
    )
