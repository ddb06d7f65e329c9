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
#   Create all tables (idempotent).
# - python -m flask system seed-demo
#   Two warehouses, two showrooms, demo users and a product with four lots.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users and sessions:
# - python -m flask users create --username ana --role admin
# - python -m flask users grant-location ana 3
#   Add a location to an admin's accessible set.
# - python -m flask users grant-module clerk sales view
#   Grant a (module, action) pair to a generic `user` role account.
# - python -m flask users issue-token ana
#   Print a bearer token for API calls.
#
# Permission inspection:
# - python -m flask perms check ana products add [--location-id 1]
#
# Lot maintenance:
# - python -m flask lots repair-stock [--product-id 7] [--dry-run]
#   Rewrite products.total_stock from the sum of lot quantities.
# - python -m flask lots purge-depleted 7
#   Delete depleted, unreferenced lots of a product.

import click
from flask.cli import with_appcontext

from .errors import InventoryError
from .extensions import db
from .models import Location, User, UserLocationAccess, UserModuleGrant
from .permissions import ALL_ROLES, Role, normalize_module, normalize_action
from .services import lot_service, permission_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
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

    click.echo("PASS Database reset complete.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Idempotent demo data.

    Locations: 1 Main Warehouse, 2 Secondary Warehouse,
               3 Downtown Showroom, 4 Mall Showroom
    Users: root (super_admin), ana (admin, locations 1 and 3),
           sam (sales_manager at 3)
    Product PA001 with one lot in each location.
    """
    db.create_all()

    if db.session.query(Location).count():
        click.echo("SKIP  Locations already exist; demo data not seeded.")
        return

    locations = [
        Location(name="Main Warehouse", type="warehouse"),
        Location(name="Secondary Warehouse", type="warehouse"),
        Location(name="Downtown Showroom", type="showroom"),
        Location(name="Mall Showroom", type="showroom"),
    ]
    db.session.add_all(locations)
    db.session.flush()
    main, secondary, downtown, mall = locations

    root = User(username="root", name="Super Admin", role=Role.SUPER_ADMIN)
    ana = User(username="ana", name="Admin", role=Role.ADMIN)
    sam = User(username="sam", name="Sales Manager", role=Role.SALES_MANAGER, assigned_location_id=downtown.id)
    db.session.add_all([root, ana, sam])
    db.session.flush()
    db.session.add_all([
        UserLocationAccess(user_id=ana.id, location_id=main.id, granted_by_user_id=root.id),
        UserLocationAccess(user_id=ana.id, location_id=downtown.id, granted_by_user_id=root.id),
    ])

    product, _ = lot_service.create_product_with_stock(
        product_code="PA001", name="Product A", location_id=main.id, quantity=50, unit_price_cents=2500,
    )
    for location, quantity, price in ((downtown, 30, 2700), (mall, 70, 2600), (secondary, 20, 2800)):
        lot_service.add_stock(product.id, location_id=location.id, quantity=quantity, unit_price_cents=price)

    db.session.commit()
    click.echo("PASS Demo data seeded: users root, ana, sam; product PA001 with 4 lots.")


@click.group('users')
def users_group():
    """User and session management."""


def _get_user_or_fail(username: str) -> User:
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    return user


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', default=None, help='Display name')
@click.option('--role', type=click.Choice(sorted(ALL_ROLES)), prompt=True, help='Role')
@click.option('--assigned-location-id', type=int, default=None, help='Location for single-location roles')
@with_appcontext
def create_user_cli(username, name, role, assigned_location_id):
    """Create a user."""
    if db.session.query(User).filter_by(username=username).first():
        raise click.ClickException(f"User '{username}' already exists")
    if assigned_location_id is not None and not db.session.query(Location).filter_by(id=assigned_location_id).first():
        raise click.ClickException(f"Location {assigned_location_id} not found")

    user = User(username=username, name=name, role=role, assigned_location_id=assigned_location_id)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user {user.username} (id={user.id}, role={user.role})")


@users_group.command('grant-location')
@click.argument('username')
@click.argument('location_id', type=int)
@with_appcontext
def grant_location_cli(username, location_id):
    """Add a location to a user's explicit location grants."""
    user = _get_user_or_fail(username)
    if not db.session.query(Location).filter_by(id=location_id).first():
        raise click.ClickException(f"Location {location_id} not found")

    existing = db.session.query(UserLocationAccess).filter_by(user_id=user.id, location_id=location_id).first()
    if existing:
        click.echo(f"SKIP  {username} already has location {location_id}")
        return

    db.session.add(UserLocationAccess(user_id=user.id, location_id=location_id))
    db.session.commit()
    click.echo(f"PASS Granted location {location_id} to {username}")


@users_group.command('grant-module')
@click.argument('username')
@click.argument('module')
@click.argument('action')
@with_appcontext
def grant_module_cli(username, module, action):
    """Grant a (module, action) pair to a user."""
    user = _get_user_or_fail(username)
    try:
        module = normalize_module(module)
        action = normalize_action(action)
    except InventoryError as e:
        raise click.ClickException(str(e))

    existing = db.session.query(UserModuleGrant).filter_by(user_id=user.id, module=module, action=action).first()
    if existing:
        click.echo(f"SKIP  {username} already has {module}.{action}")
        return

    db.session.add(UserModuleGrant(user_id=user.id, module=module, action=action))
    db.session.commit()
    click.echo(f"PASS Granted {module}.{action} to {username}")


@users_group.command('issue-token')
@click.argument('username')
@with_appcontext
def issue_token_cli(username):
    """Print a new bearer token for a user."""
    user = _get_user_or_fail(username)
    try:
        session, token = session_service.create_session(user.id)
    except (InventoryError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Token (expires {session.expires_at}):")
    click.echo(token)


@click.group('perms')
def perms_group():
    """Permission inspection."""


@perms_group.command('check')
@click.argument('username')
@click.argument('module')
@click.argument('action')
@click.option('--location-id', type=int, default=None, help='Transaction-level check at this location')
@with_appcontext
def check_permission_cli(username, module, action, location_id):
    """Evaluate a permission for a user."""
    user = session_service.load_session_user(_get_user_or_fail(username).id)
    evaluator = permission_service.get_evaluator()
    try:
        allowed = evaluator.check(user, module, action, location_id)
    except InventoryError as e:
        raise click.ClickException(str(e))

    where = f" at location {location_id}" if location_id is not None else ""
    verdict = "ALLOWED" if allowed else "DENIED"
    click.echo(f"{verdict}  {username} ({user.role}) {module}.{action}{where}")


@click.group('lots')
def lots_group():
    """Lot maintenance."""


@lots_group.command('repair-stock')
@click.option('--product-id', type=int, default=None, help='Only this product')
@click.option('--dry-run', is_flag=True, help='Report drift without writing')
@with_appcontext
def repair_stock_cli(product_id, dry_run):
    """Rewrite products.total_stock from the sum of lot quantities."""
    try:
        drifted = lot_service.repair_total_stock(product_id)
    except InventoryError as e:
        raise click.ClickException(str(e))

    if dry_run:
        db.session.rollback()
    else:
        db.session.commit()

    if not drifted:
        click.echo("PASS total_stock matches lot quantities for all checked products.")
        return

    for row in drifted:
        click.echo(f"{'DRIFT' if dry_run else 'FIXED'}  product {row['product_id']}: {row['before']} -> {row['after']}")


@lots_group.command('purge-depleted')
@click.argument('product_id', type=int)
@with_appcontext
def purge_depleted_cli(product_id):
    """Delete depleted lots no sale or transfer references."""
    try:
        lot_service.get_product(product_id)
    except InventoryError as e:
        raise click.ClickException(str(e))

    purged = lot_service.purge_depleted_lots(product_id)
    db.session.commit()
    click.echo(f"PASS Purged {purged} depleted lot(s) from product {product_id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(lots_group)
