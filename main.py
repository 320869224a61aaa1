#!/usr/bin/env python3
"""Laiki Legacy Migration Tool - Entry point."""
import logging
import sys

import click
import psycopg2
from colorama import Fore, Style, init

from config import app_config
from src.cli import console
from src.cli.table_selector import validate_tables_option
from src.db.connection import Database
from src.exporter.json_exporter import JsonExporter
from src.introspection.origin_analyzer import analyze_dump
from src.migration.errors import MigrationError
from src.migration.memberships import MembershipCreator, summarize
from src.migration.runner import SelectiveMigrationRunner
from src.parser.backup_locator import list_backups
from src.schema.models import MigrationOptions

# Initialize colorama
init(autoreset=True)

logger = logging.getLogger(__name__)


def print_banner():
    """Print application banner."""
    click.echo(f"{Fore.CYAN}{'=' * 44}")
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Laiki Legacy Migration Tool{Fore.CYAN}          ║")
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Company → Organization Migration{Fore.CYAN}     ║")
    click.echo(f"{Fore.CYAN}{'=' * 44}{Style.RESET_ALL}")
    click.echo()


def source_database() -> Database:
    return Database(name="source", **app_config.source_db.connect_kwargs())


def target_database() -> Database:
    return Database(dsn=app_config.target_db.require_url(), name="target")


def confirm_migration(company_name: str, total_records: int, organization_id: str) -> bool:
    return click.confirm(f"Migrate {total_records:,} records from \"{company_name}\"?", default=False)


def fail(message: str, code: int = 1):
    console.error(message)
    sys.exit(code)


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """Laiki Legacy Migration Tool - Migrate legacy companies into organizations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option(
    "--source-company",
    required=True,
    help="UUID of the legacy company to migrate",
)
@click.option(
    "--tables",
    default="all",
    callback=validate_tables_option,
    help="Comma-separated tables to migrate (default: all)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be migrated without writing",
)
@click.option(
    "--yes",
    "assume_yes",
    is_flag=True,
    help="Skip the confirmation prompt",
)
@click.option(
    "--organization-id",
    default=None,
    help="Reuse the organization id of a failed run",
)
def migrate(source_company, tables, dry_run, assume_yes, organization_id):
    """Migrate one legacy company into a new organization."""
    print_banner()

    options = MigrationOptions(
        source_company_id=source_company,
        tables=tables,
        dry_run=dry_run,
        assume_yes=assume_yes,
        organization_id=organization_id,
    )

    source_db = target_db = None
    try:
        target_db = target_database()
        source_db = source_database()
        runner = SelectiveMigrationRunner(
            source_db,
            target_db,
            settings=app_config.migration,
            exporter=JsonExporter(app_config.migration.output_dir),
            confirm=confirm_migration,
        )
        record = runner.run(options)
        if record.status == "cancelled":
            sys.exit(0)
    except KeyboardInterrupt:
        # the runner's cleanup already dropped the views
        fail("Interrupted, views cleaned up", 130)
    except (MigrationError, psycopg2.Error) as e:
        fail(f"Fatal error: {e}")
    finally:
        for db in (source_db, target_db):
            if db is not None:
                db.close()


@cli.command()
@click.argument("dump", required=False, type=click.Path(exists=True, dir_okay=False))
def analyze(dump):
    """Restore a legacy dump in Docker and write an analysis report."""
    print_banner()
    console.header("🔍 Origin Database Analysis")

    try:
        report = analyze_dump(app_config.analysis, dump)
    except MigrationError as e:
        fail(str(e))
    except psycopg2.Error as e:
        fail(f"Could not query the restored database: {e}")

    console.success(f"Analysis complete! Report saved to: {report}")


@cli.command("list-backups")
def list_backups_cmd():
    """List available database dumps, newest first."""
    print_banner()

    try:
        backups = list_backups(app_config.analysis.backup_dir)
    except MigrationError as e:
        fail(str(e))

    if not backups:
        console.warning(f"No .dump files found in {app_config.analysis.backup_dir}")
        return

    click.echo(f"{Fore.YELLOW}Available backups:")
    for backup in backups:
        click.echo(f"  {Fore.GREEN}{backup.name}{Style.RESET_ALL} "
                   f"({backup.size_mb:.1f} MB, {backup.mtime:%Y-%m-%d %H:%M})")


@cli.command()
@click.option("--org-id", default=None, help="Only this organization")
def create_memberships(org_id):
    """Grant the admin profile membership on migrated organizations."""
    print_banner()

    membership = app_config.membership
    if not membership.profile_id:
        fail("MIGRATION_ADMIN_PROFILE_ID environment variable is required")

    target_db = None
    try:
        target_db = target_database()
        creator = MembershipCreator(target_db, membership.profile_id, membership.email)
        results = creator.run(org_id)
    except (MigrationError, psycopg2.Error) as e:
        fail(f"Fatal error: {e}")
    finally:
        if target_db is not None:
            target_db.close()

    for result in results:
        label = f"{result.organization_name} ({result.organization_id})"
        if result.status == "created":
            console.success(f"Created admin membership for {label}")
        elif result.status == "already_exists":
            console.warning(f"Membership already exists for {label}")
        else:
            console.error(f"Failed to create membership for {label}: {result.error}")

    summary = summarize(results)
    console.header("📊 Summary")
    console.plain(f"Total organizations: {len(results)}")
    console.plain(f"Created: {summary['created']}")
    console.plain(f"Already existed: {summary['already_exists']}")
    console.plain(f"Errors: {summary['error']}")
    if summary["error"]:
        sys.exit(1)


@cli.command()
def list_migrations():
    """List saved migration runs."""
    print_banner()

    records = JsonExporter(app_config.migration.output_dir).list_records()
    if not records:
        click.echo(f"{Fore.YELLOW}No saved migrations found.")
        return

    click.echo(f"{Fore.YELLOW}Saved migrations:")
    for record in records:
        click.echo(
            f"  {Fore.GREEN}{record['organization_id']}{Style.RESET_ALL} "
            f"{record.get('company_name') or record['source_company_id']} "
            f"[{record['status']}] {record.get('started_at', '')}"
        )


if __name__ == "__main__":
    cli()
