import pytest

from boekkhuen.services import pricing_service
from boekkhuen.validation import NotFoundError, PriceNotConfigured, ValidationError
from conftest import make_product


def test_resolves_price_for_tier(product):
    assert pricing_service.resolve_price(product, "NORMAL") == 5000
    assert pricing_service.resolve_price(product, "SPECIAL") == 3500


def test_accepts_thai_tier_label(product):
    assert pricing_service.resolve_price(product, "ราคาตัวแทน") == 4500


def test_missing_tier_price_raises(second_product):
    with pytest.raises(PriceNotConfigured) as exc:
        pricing_service.resolve_price(second_product, "EMPLOYEE")
    assert exc.value.product_name == "Instant noodles"
    assert exc.value.details == {"product_name": "Instant noodles", "price_tier": "EMPLOYEE"}


def test_unknown_tier_is_a_validation_error(product):
    with pytest.raises(ValidationError):
        pricing_service.resolve_price(product, "VIP")


def test_inactive_product_cannot_be_priced(db_session):
    retired = make_product(db_session, "Retired", {"NORMAL": 100}, is_active=False)
    with pytest.raises(NotFoundError):
        pricing_service.resolve_price(retired, "NORMAL")


def test_price_table(product):
    assert pricing_service.price_table(product) == {
        "NORMAL": 5000, "AGENT": 4500, "EMPLOYEE": 4000, "SPECIAL": 3500,
    }


def test_resolve_prices_batch(product, second_product):
    priced = pricing_service.resolve_prices([product.id, second_product.id, product.id], "AGENT")
    assert priced[product.id][1] == 4500
    assert priced[second_product.id][1] == 650


def test_resolve_prices_reports_every_missing_product(db_session, product):
    retired = make_product(db_session, "Retired", {"NORMAL": 100}, is_active=False)
    with pytest.raises(NotFoundError) as exc:
        pricing_service.resolve_prices([product.id, retired.id, 9999], "NORMAL")
    assert exc.value.details["product_ids"] == sorted([retired.id, 9999])
