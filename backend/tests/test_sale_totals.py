import pytest

from boekkhuen.services.sale_totals import (
    PricedLine,
    compute_totals,
    contribution_delta,
    derive_paid,
    derive_pending,
    line_total,
    stock_contribution,
)
from boekkhuen.validation import ValidationError


def _line(product_id=1, price=10000, withdrawal=0, return_qty=0, defective=0):
    return PricedLine(
        product_id=product_id,
        product_name=f"P{product_id}",
        unit_price_cents=price,
        withdrawal=withdrawal,
        return_qty=return_qty,
        defective=defective,
    )


def test_line_total_uses_net_quantity_sold():
    # 100 baht x (10 - 2 - 1)
    assert line_total(10000, 10, 2, 1) == 70000


def test_stock_delta_ignores_defective_units():
    line = _line(withdrawal=10, return_qty=2, defective=1)
    assert line.total_price_cents == 70000
    assert line.stock_delta == -8
    assert stock_contribution([line]) == {1: -8}


def test_pure_return_line_has_negative_total():
    assert line_total(5000, 0, 3, 0) == -15000


@pytest.mark.parametrize("quantities", [(-1, 0, 0), (0, -1, 0), (0, 0, -2)])
def test_line_total_rejects_negative_quantities(quantities):
    with pytest.raises(ValidationError):
        line_total(100, *quantities)


def test_line_total_rejects_non_integer_quantities():
    with pytest.raises(ValidationError):
        line_total(100, 1.5, 0, 0)
    with pytest.raises(ValidationError):
        line_total(100, True, 0, 0)


def test_compute_totals_sums_lines():
    total, per_line = compute_totals([
        _line(1, price=5000, withdrawal=5),
        _line(2, price=700, withdrawal=10, return_qty=4),
    ])
    assert per_line == [25000, 4200]
    assert total == sum(per_line)


def test_compute_totals_requires_items():
    with pytest.raises(ValidationError):
        compute_totals([])


def test_pending_never_negative():
    assert derive_pending(25000, 10000) == 15000
    assert derive_pending(25000, 30000) == 0


def test_paid_defaults_to_cash_plus_transfer():
    assert derive_paid(3000, 2000) == 5000
    assert derive_paid(3000, 2000, explicit=4000) == 4000
    assert derive_paid(3000, 2000, explicit=0) == 0


def test_stock_contribution_coalesces_same_product():
    lines = [_line(1, withdrawal=3), _line(1, withdrawal=2, return_qty=1), _line(2, return_qty=4)]
    assert stock_contribution(lines) == {1: -4, 2: 4}


def test_contribution_delta_reverts_removed_products():
    old = {1: -5, 2: -3}
    new = {1: -7}
    assert contribution_delta(old, new) == {1: -2, 2: 3}


def test_contribution_delta_of_identical_sets_is_empty():
    lines = [_line(1, withdrawal=4), _line(2, withdrawal=1, return_qty=1)]
    assert contribution_delta(stock_contribution(lines), stock_contribution(lines)) == {}
