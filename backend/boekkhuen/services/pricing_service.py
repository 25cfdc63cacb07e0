# Overview: Tier-based unit price lookup for products.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..models.inventory import PRICE_TIERS, PRICE_TIER_LABELS
from ..validation import NotFoundError, PriceNotConfigured, ValidationError


def normalize_tier(tier: str | None) -> str:
    """Accept a tier code in any case, or its Thai shop-floor label."""
    if not isinstance(tier, str) or not tier.strip():
        raise ValidationError("Price tier is required")
    value = tier.strip()
    value = PRICE_TIER_LABELS.get(value, value.upper())
    if value not in PRICE_TIERS:
        raise ValidationError(f"Unknown price tier: {tier}")
    return value


def price_table(product: Product) -> dict[str, int]:
    return {price.tier: price.price_cents for price in product.prices}


def resolve_price(product: Product, tier: str) -> int:
    """
    Unit price (cents) of product for the given tier.

    Pure lookup. Raises NotFoundError for an inactive product and
    PriceNotConfigured when the tier has no price row.
    """
    tier = normalize_tier(tier)
    if product is None or not product.is_active:
        raise NotFoundError("Product not found", details={"product_id": getattr(product, "id", None)})

    for price in product.prices:
        if price.tier == tier:
            return price.price_cents

    raise PriceNotConfigured(product.name, tier)


def load_active_products(product_ids) -> dict[int, Product]:
    """Fetch every referenced product in one query; inactive or missing ids raise NotFoundError."""
    wanted = set(product_ids)
    if not wanted:
        return {}

    rows = db.session.query(Product).filter(Product.id.in_(wanted)).all()
    products = {p.id: p for p in rows}

    missing = sorted(pid for pid in wanted if pid not in products or not products[pid].is_active)
    if missing:
        raise NotFoundError(
            f"Product not found: {', '.join(str(pid) for pid in missing)}",
            details={"product_ids": missing},
        )
    return products


def resolve_prices(product_ids, tier: str) -> dict[int, tuple[Product, int]]:
    """Batch form: product_id -> (product, unit price) for one tier."""
    tier = normalize_tier(tier)
    products = load_active_products(product_ids)
    return {pid: (product, resolve_price(product, tier)) for pid, product in products.items()}
