# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/boekkhuen/cli.py
# Commands Legend (run from the backend directory):
# - flask --app boekkhuen system init-db
#   Create all tables (idempotent).
# - flask --app boekkhuen system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app boekkhuen system seed-demo
#   Add an admin, one employee and two priced products with stock.
# - flask --app boekkhuen stock show 3
#   Current stock and recent movements of one product.
# - flask --app boekkhuen stock low
#   Products at or below their reorder point.
# - flask --app boekkhuen credit report
#   Live credit of every active employee.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product, ProductPrice, StockLevel, StockMovement
from .models.inventory import PRICE_TIERS
from .models.users import ROLE_ADMIN, ROLE_EMPLOYEE
from .services import credit_service, stock_service


def _baht(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Idempotent demo data: admin, employee, two products."""
    users = [
        ("admin", "Administrator", ROLE_ADMIN, 0),
        ("somchai", "Somchai", ROLE_EMPLOYEE, 500_000),
    ]
    for username, name, role, credit_limit in users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP  user {username} exists")
            continue
        db.session.add(User(username=username, name=name, role=role, credit_limit_cents=credit_limit))
        click.echo(f"ADD   user {username}")

    products = [
        ("Drinking water 600ml", (1000, 900, 800, 700), 200),
        ("Instant noodles", (700, 650, 600, 550), 500),
    ]
    for name, prices, stock in products:
        if db.session.query(Product).filter_by(name=name).first():
            click.echo(f"SKIP  product {name!r} exists")
            continue
        product = Product(name=name, category="main")
        product.prices = [ProductPrice(tier=tier, price_cents=price) for tier, price in zip(PRICE_TIERS, prices)]
        db.session.add(product)
        db.session.flush()
        db.session.add(StockLevel(product_id=product.id, current_stock=stock))
        click.echo(f"ADD   product {name!r} with {stock} in stock")

    db.session.commit()
    click.echo("PASS Demo data ready.")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('show')
@click.argument('product_id', type=int)
@click.option('--limit', default=10, show_default=True, help='Movements to list')
@with_appcontext
def show_stock(product_id, limit):
    """Current stock and latest movements of a product."""
    product = db.session.get(Product, product_id)
    if not product:
        raise click.ClickException(f"Product {product_id} not found")

    click.echo(f"{product.name} (id={product.id}): {stock_service.get_current_stock(product.id)} on hand")

    movements = (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.desc())
        .limit(limit)
        .all()
    )
    for m in movements:
        click.echo(
            f"  {m.occurred_at:%Y-%m-%d %H:%M} {m.movement_type:<12} {m.quantity_delta:+6d} "
            f"{m.previous_stock:>6} -> {m.new_stock:<6} sale={m.sale_id or '-'}"
        )


@stock_group.command('low')
@with_appcontext
def low_stock():
    """Products at or below their reorder point."""
    rows = stock_service.low_stock_products()
    if not rows:
        click.echo("No products below their reorder point.")
        return

    click.echo(f"{'ID':<6} {'Product':<40} {'Stock':>7} {'Reorder':>8}")
    for row in rows:
        click.echo(
            f"{row['product_id']:<6} {row['product_name']:<40} "
            f"{row['current_stock']:>7} {row['reorder_point']:>8}"
        )


@click.group('credit')
def credit_group():
    """Credit inspection commands."""


@credit_group.command('report')
@with_appcontext
def credit_report():
    """Limit, usage and remaining credit for every active employee."""
    summaries = credit_service.credit_summary_batch(credit_service.active_employee_ids())
    if not summaries:
        click.echo("No active employees.")
        return

    names = dict(
        db.session.query(User.id, User.name).filter(User.id.in_(summaries.keys())).all()
    )

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Limit':>13} {'Used':>13} {'Remaining':>13}")
    click.echo("=" * 80)
    for employee_id, summary in sorted(summaries.items()):
        flag = " !" if summary.credit_used > summary.credit_limit else ""
        click.echo(
            f"{employee_id:<5} {names.get(employee_id, '-'):<30} "
            f"{_baht(summary.credit_limit):>13} {_baht(summary.credit_used):>13} "
            f"{_baht(summary.credit_remaining):>13}{flag}"
        )
    click.echo("=" * 80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(credit_group)
