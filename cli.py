# cli.py - flask commands for operators and system cron
import json

import click
from flask.cli import AppGroup, with_appcontext

from extensions import db
from earnings.catalog import seed_default_products
from earnings.payouts import run_payouts
from earnings.plan import get_commission_plan
from earnings.wallet import add_deposit_account
from errors import PlatformError

seed_cli = AppGroup("seed", help="Insert reference data.")
payouts_cli = AppGroup("payouts", help="Daily payout jobs.")
commissions_cli = AppGroup("commissions", help="Referral commission settings.")


@click.command("init-db")
@with_appcontext
def init_db():
    """Create all tables (development only; use flask db upgrade elsewhere)."""
    db.create_all()
    click.echo("Database tables created")


@seed_cli.command("products")
def seed_products():
    created = seed_default_products()
    click.echo(f"Seeded {len(created)} products")


@seed_cli.command("deposit-account")
@click.option("--holder", "holder_name", required=True, help="Account holder name")
@click.option("--bank", required=True, help="Bank name")
@click.option("--iban", required=True, help="Account IBAN")
def seed_deposit_account(holder_name, bank, iban):
    try:
        account = add_deposit_account(holder_name, bank, iban)
    except PlatformError as e:
        raise click.ClickException(e.message)
    click.echo(f"Deposit account {account.id}: {account.bank} {account.iban}")


@payouts_cli.command("run")
def payouts_run():
    """Pay every due investment once. Safe to call from cron."""
    summary = run_payouts()
    click.echo(json.dumps(summary, indent=2))
    if not summary["lock_acquired"]:
        raise click.ClickException("Another payout run is in progress")


@commissions_cli.command("plan")
def commissions_plan():
    plan = get_commission_plan()
    is_valid, message = plan.validate()
    click.echo(json.dumps(plan.summary(), indent=2))
    click.echo(message)
    if not is_valid:
        raise click.ClickException("Commission plan is invalid")


def register_cli(app):
    app.cli.add_command(init_db)
    app.cli.add_command(seed_cli)
    app.cli.add_command(payouts_cli)
    app.cli.add_command(commissions_cli)
