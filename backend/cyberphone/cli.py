# Overview: Flask CLI command groups for bootstrap, demo data and ledger audits.

# backend/cyberphone/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (if missing) and the audio track catalogue.
# - python -m flask system seed
#   Idempotent demo data: users with opening balances, stores, products, posts.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger audit:
# - python -m flask ledger verify [--user-id 1]
#   Recompute balances from wallet transactions and report mismatches.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .seed import seed_audio_tracks, seed_demo_data, DEFAULT_PASSWORD
from .services import ledger_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables and the audio track catalogue."""
    click.echo("START Initializing store...")
    db.create_all()
    added = seed_audio_tracks()
    click.echo(f"PASS Schema ready, {added} audio track(s) added")


@system_group.command('seed')
@with_appcontext
def seed_system():
    """Load demo users, stores, products and posts."""
    click.echo("START Seeding demo data...")
    db.create_all()
    created = seed_demo_data()
    click.echo(
        f"PASS Created {created['users']} user(s), {created['stores']} store(s), "
        f"{created['products']} product(s), {created['posts']} post(s)"
    )
    if created["users"]:
        click.echo(f"   All demo accounts use the password: {DEFAULT_PASSWORD}")


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


@click.group('ledger')
def ledger_group():
    """Wallet ledger audits."""


@ledger_group.command('verify')
@click.option('--user-id', type=int, help='Only check this user')
@with_appcontext
def verify_ledger(user_id):
    """Check that every stored balance equals the sum of its transactions."""
    if user_id is not None:
        user_ids = [user_id]
    else:
        user_ids = [row[0] for row in db.session.query(User.id).order_by(User.id.asc()).all()]

    failures = 0
    for uid in user_ids:
        result = ledger_service.verify_ledger(uid)
        if result["ok"]:
            click.echo(f"PASS user {uid}: {result['stored_cents']} cents")
        else:
            failures += 1
            if "error" in result:
                click.echo(f"FAIL user {uid}: {result['error']}")
            else:
                click.echo(
                    f"FAIL user {uid}: stored {result['stored_cents']} != "
                    f"computed {result['computed_cents']}"
                )

    if failures:
        raise click.ClickException(f"{failures} ledger mismatch(es)")
    click.echo(f"PASS {len(user_ids)} wallet(s) verified")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
