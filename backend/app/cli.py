# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop management (MULTI-TENANT):
# - python -m flask shops list
#   List all shops.
# - python -m flask shops create --name "Main Street" --code "MAIN"
#   Create a new shop (tenant).
#
# User bootstrap:
# - python -m flask users create --shop-id 1 --username cashier1 --name "Cashier One"
#   Create a staff user; its id is the X-User-Id header value.
#
# Sequence inspection:
# - python -m flask sequences show --shop-id 1
#   Print the shop's counter document.
#
# Maintenance:
# - python -m flask maintenance cleanup-stale-products --retention-days 30
#   Delete zero-quantity products stocked in before the retention window.
#   Schedule once a day (cron: 30 3 * * *).

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Shop, User
from .services import maintenance_service, sequence_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('shops')
def shops_group():
    """Shop (tenant) management commands."""


@shops_group.command('list')
@with_appcontext
def list_shops():
    """List all shops."""
    shops = db.session.query(Shop).all()

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Users'}")
    click.echo("="*70)

    for shop in shops:
        user_count = db.session.query(User).filter_by(shop_id=shop.id).count()
        active_str = "Yes" if shop.is_active else "No"
        click.echo(f"{shop.id:<5} {shop.name:<30} {shop.code or '-':<15} {active_str:<8} {user_count}")

    click.echo("="*70 + "\n")


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--code', help='Short code (unique)')
@with_appcontext
def create_shop_cli(name, code):
    """Create a new shop (tenant)."""
    if code and db.session.query(Shop).filter_by(code=code).first():
        click.echo(f"FAIL Shop with code '{code}' already exists")
        return

    shop = Shop(name=name, code=code, is_active=True)
    db.session.add(shop)
    db.session.commit()

    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}, Code: {shop.code or '-'})")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_user_cli(shop_id, username, name, phone):
    """Create a staff user."""
    if db.session.get(Shop, shop_id) is None:
        click.echo(f"FAIL Shop {shop_id} not found")
        return
    if db.session.query(User).filter_by(shop_id=shop_id, username=username).first():
        click.echo(f"FAIL User '{username}' already exists in shop {shop_id}")
        return

    user = User(shop_id=shop_id, username=username, name=name, phone=phone, is_active=True)
    db.session.add(user)
    db.session.commit()

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, Shop: {shop_id})")


@click.group('sequences')
def sequences_group():
    """Sequence counter inspection."""


@sequences_group.command('show')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@with_appcontext
def show_sequences(shop_id):
    """Print the shop's counter document."""
    click.echo(json.dumps(sequence_service.get_counters(shop_id), indent=2))


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-stale-products')
@click.option('--retention-days', type=int, default=None, help='Defaults to STALE_PRODUCT_RETENTION_DAYS')
@with_appcontext
def cleanup_stale_products_cli(retention_days):
    """
    Delete sold-out products older than the retention window.

    Default retention: 30 days.
    """
    deleted = maintenance_service.cleanup_stale_products(retention_days=retention_days)
    click.echo(f"Deleted {deleted} stale products.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)  # Multi-tenant shop management
    app.cli.add_command(users_group)
    app.cli.add_command(sequences_group)
    app.cli.add_command(maintenance_group)
