# Overview: Flask CLI command groups for bootstrap, imports and inspection.

# backend/shopfloor/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Export DATABASE_URL and SECRET_KEY.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (non-destructive) and the
#   image container directory when BLOB_CONTAINER_DIR is set.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Spreadsheet import:
# - python -m flask imports run prices.xlsx [--per-row]
#   Upsert products by code and append price history rows.
#
# VAT:
# - python -m flask vat list
# - python -m flask vat add --date 2024-01-01 --rate 20
#
# Catalog inspection:
# - python -m flask catalog low-stock
#   Products at or below their critical quantity.
#
# Users:
# - python -m flask users list
# - python -m flask users create --email jane@shop.local --password "Secret123" --name Jane --role cashier

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .errors import StorageError
from .validation import ConflictError, ValidationError
from .services import import_service, products_service, user_service, vat_service
from .services.blob_storage import BlobStorage
from .time_utils import parse_date


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


def _provision_blob_container():
    if not current_app.config.get("BLOB_CONTAINER_DIR"):
        click.echo("SKIP BLOB_CONTAINER_DIR not set; image upload stays disabled.")
        return
    storage = BlobStorage.from_app()
    storage.provision()
    click.echo(f"PASS Blob container ready: {storage.path}")


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables. Existing data is left alone."""
    db.create_all()
    click.echo("PASS Database schema ready.")
    _provision_blob_container()


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
    _provision_blob_container()


@click.group('imports')
def imports_group():
    """Spreadsheet imports."""


@imports_group.command('run')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--per-row', is_flag=True, help='Commit each row on its own and keep going on failures')
@with_appcontext
def run_import(path, per_row):
    """Import an .xlsx or .csv price sheet."""
    try:
        with open(path, 'rb') as fh:
            result = import_service.import_file(fh, path, atomic=not per_row)
    except ValidationError as e:
        raise click.ClickException(str(e))
    except StorageError as e:
        raise click.ClickException(f"{e} (failed step: {e.failed_step})")

    click.echo(
        f"PASS Imported: {result.created} created, {result.updated} updated, "
        f"{result.predictions} price history rows"
    )
    for err in result.errors:
        click.echo(f"FAIL Row {err['row']} ({err['code']}): {err['error']}")
    if result.errors:
        raise SystemExit(1)


@click.group('vat')
def vat_group():
    """VAT rate management."""


@vat_group.command('list')
@with_appcontext
def list_vat():
    """List VAT rates, most recent first."""
    rates = vat_service.list_rates()
    if not rates:
        click.echo("No VAT rates configured.")
        return

    click.echo(f"{'ID':<5} {'Effective':<12} {'Rate'}")
    for rate in rates:
        click.echo(f"{rate.id:<5} {rate.effective_date.isoformat():<12} {rate.rate_bps / 100:.2f}%")


@vat_group.command('add')
@click.option('--date', 'effective', required=True, help='Effective date (YYYY-MM-DD)')
@click.option('--rate', required=True, type=float, help='Rate in percent, e.g. 20 or 5.5')
@with_appcontext
def add_vat(effective, rate):
    """Add a VAT rate effective from a date."""
    try:
        effective_date = parse_date(effective)
    except ValueError:
        raise click.BadParameter("must be YYYY-MM-DD", param_hint="--date")
    rate_bps = int(round(rate * 100))
    if rate_bps < 0 or rate_bps > 10_000:
        raise click.BadParameter("must be between 0 and 100", param_hint="--rate")

    created = vat_service.add_rate(effective_date, rate_bps)
    click.echo(f"PASS VAT rate {created.rate_bps / 100:.2f}% effective {created.effective_date.isoformat()}")


@click.group('catalog')
def catalog_group():
    """Catalog inspection."""


@catalog_group.command('low-stock')
@with_appcontext
def low_stock():
    """Products at or below their critical quantity."""
    products = products_service.list_low_stock()
    if not products:
        click.echo("No products below their critical quantity.")
        return

    click.echo(f"{'Code':<16} {'Name':<30} {'Qty':>6} {'Critical':>9}")
    for p in products:
        click.echo(f"{p['code']:<16} {p['name'][:30]:<30} {p['quantity']:>6} {p['critical_quantity']:>9}")


@click.group('users')
def users_group():
    """User inspection/bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = user_service.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Email':<30} {'Name':<20} {'Role'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.email:<30} {(user.name or ''):<20} {user.role or ''}")


@users_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--name', default=None)
@click.option('--role', default=None)
@with_appcontext
def create_user(email, password, name, role):
    """Create a user."""
    try:
        user = user_service.create_user(email, password, name=name, role=role)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(imports_group)
    app.cli.add_command(vat_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(users_group)
