# Overview: Flask CLI command group for bootstrap, reporting, import and maintenance.

# backend/smartpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app smartpos shop <command> [options]
#
# Bootstrap/repair:
# - python -m flask --app smartpos shop init
#   Create tables, default shop details and (local-only, empty catalog) the demo catalog.
# - python -m flask --app smartpos shop reset-db --yes
#   DEV/TEST only: drop and recreate the local tables (deletes all local data).
# - python -m flask --app smartpos shop factory-reset --yes
#   Delete every product, order, customer and setting locally and on the remote store.
#
# Reporting:
# - python -m flask --app smartpos shop report --date 2025-01-31 [--tz Asia/Kolkata] [--xlsx Z_Report.xlsx]
#   Day-end summary and itemized breakdown; optionally write the spreadsheet.
# - python -m flask --app smartpos shop low-stock
#   Products at or below their minimum stock level, and out of stock products.
#
# Import:
# - python -m flask --app smartpos shop import products inventory.xlsx
# - python -m flask --app smartpos shop import customers customers.csv

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import export_service, import_service, inventory_service
from .services.terminal_service import EXTENSION_KEY
from .time_utils import local_date, parse_local_date, utcnow


def _terminal():
    terminal = current_app.extensions[EXTENSION_KEY]
    terminal.ensure_loaded()
    return terminal


@click.group('shop')
def shop_group():
    """Shop bootstrap, reporting and maintenance commands."""


@shop_group.command('init')
@with_appcontext
def init_shop():
    """Idempotent bootstrap: tables, shop details, demo catalog."""
    db.create_all()
    state = current_app.extensions[EXTENSION_KEY].load()
    click.echo(f"PASS Shop '{state.shop.name}' ready: {len(state.products)} products, "
               f"{len(state.orders)} orders, {len(state.customers)} customers.")


@shop_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all local tables and recreate schema.

    This will DELETE ALL LOCAL DATA! The remote store is not touched.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask --app smartpos shop init' to initialize.")


@shop_group.command('factory-reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def factory_reset(yes):
    """Delete all products, orders, customers and settings (local and remote)."""
    if not yes:
        click.confirm("WARN This will DELETE every product, order and customer. Are you sure?", abort=True)

    state = _terminal().factory_reset()
    click.echo(f"PASS Factory reset complete. Shop details restored to defaults ({state.shop.name}).")


@shop_group.command('report')
@click.option('--date', 'day', help='Calendar day YYYY-MM-DD (default: today)')
@click.option('--tz', help='IANA timezone (default: REPORT_TIMEZONE or server local time)')
@click.option('--xlsx', 'xlsx_path', type=click.Path(dir_okay=False, writable=True), help='Write the report spreadsheet here')
@with_appcontext
def report(day, tz, xlsx_path):
    """Day-end sales report."""
    terminal = _terminal()
    tz = tz or terminal.report_timezone
    try:
        selected = parse_local_date(day) or local_date(utcnow(), tz)
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD", param_hint="--date")

    result = terminal.daily_report(selected, tz)

    click.echo("\n" + "=" * 60)
    click.echo(f"DAY-END REPORT {result.day.isoformat()}")
    click.echo("=" * 60)
    click.echo(f"{'Total Sales (Gross)':<30}{result.total_sales:>12.2f}")
    click.echo(f"{'Total Orders':<30}{result.order_count:>12}")
    click.echo(f"{'Average Ticket Size':<30}{result.average_ticket:>12.2f}")
    click.echo("-" * 60)
    click.echo(f"{'Product':<36}{'Qty':>8}{'Revenue':>16}")
    for row in result.items:
        click.echo(f"{row.name[:35]:<36}{row.qty:>8}{row.revenue:>16.2f}")
    click.echo("=" * 60 + "\n")

    if xlsx_path:
        with open(xlsx_path, "wb") as fh:
            fh.write(export_service.workbook_bytes(export_service.day_report_workbook(result)))
        click.echo(f"PASS Spreadsheet written to {xlsx_path}")


@shop_group.command('low-stock')
@with_appcontext
def low_stock():
    """List products at or below their minimum level, and out of stock products."""
    catalog = list(_terminal().state.products)
    low = inventory_service.low_stock(catalog)
    out = inventory_service.out_of_stock(catalog)

    click.echo(f"\nLOW STOCK ({len(low)})")
    for p in low:
        click.echo(f"  {p.id:<16} {p.name:<30} stock={p.stock} min={p.min_stock_level}")
    click.echo(f"\nOUT OF STOCK ({len(out)})")
    for p in out:
        click.echo(f"  {p.id:<16} {p.name:<30}")


@shop_group.group('import')
def import_group():
    """Bulk import from .csv or .xlsx files."""


def _read(path):
    with open(path, "rb") as fh:
        try:
            return import_service.read_rows(path, fh)
        except import_service.ImportError as e:
            raise click.ClickException(str(e))


@import_group.command('products')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_products(path):
    result = _terminal().import_products(_read(path))
    click.echo(f"PASS Imported {result.imported} products ({result.skipped} rows skipped).")


@import_group.command('customers')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_customers(path):
    result = _terminal().import_customers(_read(path))
    click.echo(f"PASS Imported {result.imported} customers ({result.skipped} rows skipped).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(shop_group)
