# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "stockdesk:create_app" (PowerShell: $env:FLASK_APP="stockdesk:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   List variants at or below their low-stock threshold.
#
# Sales inspection:
# - python -m flask sales next-invoice
#   Show the invoice number the next posted sale would receive.
#
# Permission inspection:
# - python -m flask perms list [--role staff]
#   List permissions (optionally only those granted to a role).
# - python -m flask perms check staff DELETE_SALE
#   Check whether a role has a permission.

import click
from flask.cli import with_appcontext

from .extensions import db
from .permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    permissions_for_role,
    role_has_permission,
    validate_permission_code,
)
from .services import products_service
from .services.invoice_service import next_invoice_number
from .services.settings_service import get_settings


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize StockDesk: tables and default business settings.

    Safe to run repeatedly; existing data is left alone.
    """
    click.echo("START Initializing StockDesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = get_settings()
    db.session.commit()
    click.echo(f"PASS Settings ready: {settings.business_name} ({settings.currency}), "
               f"low-stock threshold {settings.low_stock_threshold}")

    click.echo("\nDONE StockDesk initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock():
    """List variants at or below their low-stock threshold."""
    products = products_service.list_low_stock()

    if not products:
        click.echo("No low-stock variants.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Product':<30} {'Variant':<20} {'SKU':<20} {'Stock':>7} {'Min':>7}")
    click.echo("="*90)

    count = 0
    for product in products:
        for variant in product["lowStockVariants"]:
            count += 1
            click.echo(
                f"{product['name'][:30]:<30} {variant['name'][:20]:<20} {variant['sku'][:20]:<20} "
                f"{variant['currentStock']:>7} {variant['lowStockThreshold']:>7}"
            )

    click.echo("="*90)
    click.echo(f" Total: {count} variants across {len(products)} products\n")


@click.group('sales')
def sales_group():
    """Sales inspection commands."""


@sales_group.command('next-invoice')
@with_appcontext
def next_invoice():
    """Show the invoice number the next posted sale would receive."""
    click.echo(next_invoice_number())


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Only permissions granted to this role')
def list_permissions_cli(role):
    """List all permissions, optionally filtered by role."""
    if role and role not in DEFAULT_ROLE_PERMISSIONS:
        click.echo(f"FAIL Role '{role}' not found")
        return

    perms = sorted(PERMISSION_DEFINITIONS, key=lambda p: (p[3], p[0]))
    if role:
        granted = set(permissions_for_role(role))
        perms = [p for p in perms if p[0] in granted]
        click.echo(f"\nPermissions for role: {role.upper()}")

    click.echo(f"\n{'Code':<25} {'Name':<25} {'Category'}")
    click.echo("-"*70)
    for code, name, _description, category in perms:
        click.echo(f"{code:<25} {name:<25} {category}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('check')
@click.argument('role')
@click.argument('permission_code')
def check_permission(role, permission_code):
    """Check whether a role has a permission."""
    if not validate_permission_code(permission_code):
        click.echo(f"FAIL Unknown permission: {permission_code}")
        return

    if role_has_permission(role, permission_code):
        click.echo(f"PASS {role} has {permission_code}")
    else:
        click.echo(f"FAIL {role} does not have {permission_code}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(perms_group)
