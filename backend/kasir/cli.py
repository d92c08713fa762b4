# Overview: Flask CLI command groups for database bootstrap and QRIS tooling.

# backend/kasir/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "kasir:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables and the default (cash only) payment settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# QRIS:
# - python -m flask qris encode "<static payload>" 15000
#   Print the dynamic payload for an amount.
# - python -m flask qris checksum "<payload>"
#   Print the CRC of a payload and whether its trailing CRC matches.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import QrisError
from .services import settings_service
from . import qris


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables and the payment settings row. Safe to run twice."""
    db.create_all()
    setting = settings_service.get_payment_setting()
    click.echo(f"PASS Database ready (default gateway: {setting.effective_default_gateway()})")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to initialize.")


@click.group('qris')
def qris_group():
    """QRIS payload tools (no database needed)."""


@qris_group.command('encode')
@click.argument('payload')
@click.argument('amount', type=int)
def qris_encode(payload, amount):
    """Turn a static QRIS payload into a dynamic one for AMOUNT."""
    try:
        click.echo(qris.encode(payload.strip(), amount))
    except QrisError as e:
        raise click.ClickException(e.message)


@qris_group.command('checksum')
@click.argument('payload')
def qris_checksum(payload):
    """Show the CRC of PAYLOAD (without its last 4 characters) and whether it matches."""
    payload = payload.strip()
    if len(payload) < 4:
        raise click.ClickException("Payload is too short to carry a checksum")
    click.echo(f"crc: {qris.crc16(payload[:-4])}")
    click.echo(f"valid: {'yes' if qris.verify_checksum(payload) else 'no'}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(qris_group)
