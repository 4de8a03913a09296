# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` where migrations are managed).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired login sessions.
#
# Users:
# - python -m flask users create-admin --name Admin --email admin@example.com --password "Password123"
#   Create a user with the admin role (prompts if options are omitted).
# - python -m flask users set-role 2 admin
#   Set a user's role in the role store.
# - python -m flask users list
#   List users with their roles.
#
# Products:
# - python -m flask products verify-ledger [--product-id 1]
#   Check initial_quantity + ledger == quantity for every product.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import StockroomError
from .models import Product
from .services import auth_service, listing_service, role_store, session_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema created")


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
    click.echo("PASS Database reset complete")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired login sessions."""
    deleted = session_service.cleanup_expired_sessions(db.session)
    click.echo(f"PASS Deleted {deleted} expired session(s)")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, email, password):
    """
    Create a user with the admin role.

    The email is stored lower-cased and the password hashed with bcrypt.
    """
    try:
        user = auth_service.register_user(
            db.session,
            name=name,
            email=email,
            password=password,
            role=role_store.ADMIN_ROLE,
        )
    except StockroomError as e:
        click.echo(f"FAIL Failed to create admin: {e.message}")
        return

    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")


@users_group.command('set-role')
@click.argument('user_id', type=int)
@click.argument('role', type=click.Choice(list(role_store.ROLES)))
@with_appcontext
def set_role_cli(user_id, role):
    """Set the role of USER_ID."""
    try:
        role_store.set_role(db.session, user_id=user_id, role=role)
    except StockroomError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS User {user_id} now has role '{role}'")


@users_group.command('list')
@click.option('--limit', type=int, default=100, show_default=True, help='Users per page')
@with_appcontext
def list_users(limit):
    """List all users with their roles."""
    page = listing_service.list_users(db.session, page=1, limit=limit)

    if not page.items:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role'}")
    click.echo("="*80)

    for user in page.items:
        click.echo(f"{user['id']:<5} {user['name']:<25} {user['email']:<35} {user['role']}")

    click.echo("="*80)
    if page.total_pages > 1:
        click.echo(f"Showing {len(page.items)} of {page.total_items} users")
    click.echo("")


@click.group('products')
def products_group():
    """Product inspection commands."""


@products_group.command('verify-ledger')
@click.option('--product-id', type=int, help='Only check this product')
@with_appcontext
def verify_ledger(product_id):
    """
    Check that every product's quantity matches initial_quantity plus
    the signed sum of its movements.
    """
    if product_id is not None:
        product_ids = [product_id]
    else:
        product_ids = [row.id for row in db.session.query(Product.id).order_by(Product.id).all()]

    mismatches = 0
    for pid in product_ids:
        try:
            report = stock_service.reconcile_product(db.session, pid)
        except StockroomError as e:
            click.echo(f"FAIL Product {pid}: {e.message}")
            mismatches += 1
            continue

        if not report["consistent"]:
            mismatches += 1
            click.echo(
                f"FAIL Product {pid}: quantity={report['quantity']} "
                f"ledger={report['ledger_quantity']}"
            )

    if mismatches:
        click.echo(f"FAIL {mismatches} of {len(product_ids)} product(s) inconsistent")
    else:
        click.echo(f"PASS {len(product_ids)} product(s) consistent with their ledger")


def register_commands(app):
    """Register all CLI command groups with the Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
