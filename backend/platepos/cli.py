# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/platepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--password "Password123"]
#   Idempotent bootstrap: creates tables and the default superadmin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username counter1 --password "Password123" --role admin --pin 1234
#   Create a user (prompts if options are omitted).
#
# Catalog:
# - python -m flask catalog add-product --name "Biryani" --full-price 25000 --half-price 14000 --full-stock 20 --half-stock 10
#   Add a product with opening stock (prices in cents).
# - python -m flask catalog list
#   Print every product with its stock counters.
#
# Stock maintenance:
# - python -m flask stock verify [--fix]
#   Report products whose total_stock disagrees with full/half counters.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLE_SUPERADMIN, ROLES
from .services import products_service, stock_service
from .services.auth_service import (
    PasswordValidationError,
    PinValidationError,
    UserError,
    create_user,
)
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='superadmin', help='Default superadmin username')
@click.option('--password', default='Password123', help='Default superadmin password')
@with_appcontext
def init_system(username, password):
    """
    Initialize PlatePOS: create all tables and a default superadmin.

    Safe to run repeatedly; an existing user with the same name is kept.

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing PlatePOS...")

    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"WARN  User '{username}' already exists, skipping...")
    else:
        try:
            create_user(username=username, password=password, role=ROLE_SUPERADMIN)
            click.echo(f"PASS Created user: {username} with role '{ROLE_SUPERADMIN}'")
        except (PasswordValidationError, UserError) as e:
            click.echo(f"FAIL Failed to create '{username}': {str(e)}")
            return

    click.echo("\n" + "="*60)
    click.echo("DONE PlatePOS Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nSECURITY WARNING: change the default password in production.")


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


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--pin', default=None, help='Counter PIN (required for admins)')
@click.option('--site', default=None, help='Site / branch label')
@with_appcontext
def create_user_cli(username, password, role, pin, site):
    """
    Create a new user.

    Password: 8+ characters with at least one letter and one digit.
    Admins also need a 4-6 digit PIN.
    """
    try:
        user = create_user(username=username, password=password, role=role, pin=pin, site=site)
        click.echo(f"PASS Created user: {user.username} with role '{user.role}' (ID: {user.id})")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except PinValidationError as e:
        click.echo(f"FAIL PIN validation failed: {str(e)}")
    except UserError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found. Run: python -m flask system init")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<12} {'Site':<20} {'Active'}")
    click.echo("="*70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<12} {user.site or '-':<20} {active_str}")
    click.echo("="*70 + "\n")


# =============================================================================
# CATALOG COMMANDS
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Catalog seeding and inspection commands."""


@catalog_group.command('add-product')
@click.option('--name', required=True, help='Product name')
@click.option('--full-price', 'full_price_cents', type=int, required=True, help='Full plate price (cents)')
@click.option('--half-price', 'half_price_cents', type=int, default=None, help='Half plate price (cents)')
@click.option('--full-stock', type=int, default=0, show_default=True)
@click.option('--half-stock', type=int, default=0, show_default=True)
@click.option('--solo', 'is_solo', is_flag=True, help='Sold as full plates only')
@click.option('--category', default=None)
@click.option('--sort-order', type=int, default=None)
@with_appcontext
def add_product_cli(name, full_price_cents, half_price_cents, full_stock, half_stock,
                    is_solo, category, sort_order):
    """Add a product with its opening stock."""
    try:
        product = products_service.create_product(
            name=name,
            full_price_cents=full_price_cents,
            half_price_cents=half_price_cents,
            full_stock=full_stock,
            half_stock=half_stock,
            is_solo=is_solo,
            category=category,
            sort_order=sort_order,
        )
    except ValidationError as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(
        f"PASS Created product: {product.name} (ID: {product.id}) "
        f"full={product.full_stock} half={product.half_stock} total={product.total_stock}"
    )


@catalog_group.command('list')
@with_appcontext
def list_products_cli():
    """Print the catalog with stock counters."""
    products = products_service.list_products()
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Solo':<6} {'Full':<8} {'Half':<8} {'Total'}")
    click.echo("="*80)
    for p in products:
        solo_str = "Yes" if p.is_solo else "No"
        click.echo(f"{p.id:<5} {p.name:<30} {solo_str:<6} {p.full_stock:<8} {p.half_stock:<8} {p.total_stock}")
    click.echo("="*80 + "\n")


# =============================================================================
# STOCK MAINTENANCE COMMANDS
# =============================================================================

@click.group('stock')
def stock_group():
    """Stock consistency commands."""


@stock_group.command('verify')
@click.option('--fix', is_flag=True, help='Recompute and store the correct totals')
@with_appcontext
def verify_stock_cli(fix):
    """Check total_stock against the full/half counters for every product."""
    mismatches = stock_service.verify_products(fix=fix)
    if not mismatches:
        click.echo("PASS All product totals are consistent")
        return

    for row in mismatches:
        click.echo(
            f"FAIL Product {row['product_id']} ({row['name']}): "
            f"stored total {row['stored_total']}, expected {row['expected_total']}"
        )
    if fix:
        click.echo(f"PASS Fixed {len(mismatches)} product(s)")
    else:
        click.echo("Run with --fix to repair.")
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
