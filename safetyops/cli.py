"""CLI tools for safety platform operations."""

from datetime import date

import click

from safetyops.core.config import settings
from safetyops.core.structured_logging import configure_logging
from safetyops.db.session import SessionLocal
from safetyops.services import certificate_service, notification_rule_service


@click.group()
def cli():
    """Safety platform CLI tools."""
    configure_logging(settings.LOG_LEVEL)


@cli.command()
@click.option(
    "--today",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Reconcile as of this date (YYYY-MM-DD, default: today UTC)",
)
def reconcile_certificates(today):
    """
    Expire every active certificate grant whose expiry date has passed.

    Reads already reconcile before listing grants; run this from cron when
    expired grants must flip without anyone reading them.

    Example:
        python -m safetyops.cli reconcile-certificates --today 2025-01-11
    """
    as_of: date | None = today.date() if today else None
    db = SessionLocal()
    try:
        changed = certificate_service.reconcile_expired_grants(db, as_of)
        click.echo(f"✓ Expired {changed} certificate grant(s)")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--created-by", default="system", help="Identity recorded as creator")
def seed_certificates(created_by: str):
    """Insert the default certificate catalog (skips names that exist)."""
    db = SessionLocal()
    try:
        added, skipped = certificate_service.seed_default_catalog(db, created_by=created_by)
        click.echo(f"✓ Added {added} certificate(s), {skipped} already present")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
def migrate_critical_recipients():
    """
    Create a notification rule for every enabled critical incident recipient.

    Recipients that already have a rule filtering on critical severity are
    left alone. The recipients table itself is kept.
    """
    db = SessionLocal()
    try:
        migrated, skipped = notification_rule_service.migrate_critical_recipients_to_rules(db)
        click.echo(f"✓ Created {migrated} rule(s)")
        click.echo(f"  Skipped {skipped} recipient(s) with an existing critical rule")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
