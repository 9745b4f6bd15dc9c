# Overview: Flask CLI command groups for setup, backups and inspection.

# backend/threadcraft/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app threadcraft <group> <command> [options]
#
# Data:
# - flask --app threadcraft data init
#   Create any missing tables.
# - flask --app threadcraft data seed
#   Load sample clients, measurements, an order, rates and settings (empty store only).
# - flask --app threadcraft data export backup.json
#   Write the whole store to a backup document.
# - flask --app threadcraft data import backup.json
#   Merge a backup document into the store (all or nothing).
# - flask --app threadcraft data stats
#   Show record counts.
# - flask --app threadcraft data wipe --yes
#   DEV/TEST only: delete every record.
#
# Orders:
# - flask --app threadcraft orders overdue
#   List orders past their delivery date that are not delivered or cancelled.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import DataLayerError
from .services import open_data_layer
from .services.portability_service import ImportValidationError
from .services.seed_service import seed_sample_data
from .storage import init_storage


@click.group('data')
def data_group():
    """Store setup, backup and maintenance commands."""


@data_group.command('init')
@with_appcontext
def init_data():
    """Create any missing tables."""
    init_storage(current_app)
    click.echo("PASS Storage initialized")


@data_group.command('seed')
@with_appcontext
def seed_data():
    """Load sample data into an empty store."""
    data = open_data_layer(current_app)
    if seed_sample_data(data):
        click.echo("PASS Sample data loaded")
    else:
        click.echo("SKIP Store already has clients; nothing seeded")


@data_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_data(path):
    """Write the whole store to PATH as JSON."""
    data = open_data_layer(current_app)
    written = data.portability.export_json(path)
    click.echo(f"PASS Exported backup to {written}")


@data_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_data(path):
    """Merge the backup document at PATH into the store."""
    data = open_data_layer(current_app)
    try:
        result = data.portability.import_json(path)
    except ImportValidationError as exc:
        click.echo(f"FAIL {exc}", err=True)
        for error in exc.errors:
            click.echo(f"  - {error}", err=True)
        raise SystemExit(1)
    except DataLayerError as exc:
        current_app.logger.exception("Failed to import backup")
        click.echo(f"FAIL Import failed: {exc}", err=True)
        raise SystemExit(1)

    for name, count in result.counts.items():
        click.echo(f"  {name}: {count}")
    click.echo("PASS Import completed")


@data_group.command('stats')
@with_appcontext
def show_stats():
    """Show record counts."""
    stats = open_data_layer(current_app).portability.get_stats()
    for key, value in stats.items():
        click.echo(f"{key}: {value}")


@data_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data(yes):
    """
    DANGER: Delete every client, measurement, order, rate and setting.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)
    open_data_layer(current_app).portability.clear_all()
    click.echo("PASS All data deleted")


@click.group('orders')
def orders_group():
    """Order inspection commands."""


@orders_group.command('overdue')
@with_appcontext
def list_overdue():
    """List orders past their delivery date."""
    overdue = open_data_layer(current_app).orders.get_overdue()
    if not overdue:
        click.echo("No overdue orders")
        return
    for order in overdue:
        click.echo(
            f"{order.id}  {order.client_name:<24}  due {order.delivery_date.isoformat()}  "
            f"{order.status:<16}  balance {order.balance_due_cents}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(data_group)
    app.cli.add_command(orders_group)
