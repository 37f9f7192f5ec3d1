"""
Database migration management CLI.

Every schema change is preceded by a backup; any backup can be restored
with ``rollback``.
"""

from typing import Callable, Optional, Sequence
import argparse
import asyncio
import logging
import sys

from core.config import Settings, settings as default_settings
from core.database import create_engine_from_settings
from core.exceptions import BlogOpsException, BackupRequiredError
from core.logging import setup_logging
from pipeline.backup import BackupEngine
from pipeline.migration import MigrationOrchestrator
from pipeline.migration_tool import AlembicMigrationTool

logger = logging.getLogger(__name__)

RULE = "=" * 80
THIN_RULE = "-" * 80


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="db-migrate",
        description="Backup-guarded database migrations.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Back up, then create and apply a migration")
    create.add_argument("name")

    sub.add_parser("deploy", help="Back up, then apply pending migrations")
    sub.add_parser("history", help="Show migration history")

    rollback = sub.add_parser("rollback", help="Restore the database from a backup file")
    rollback.add_argument("backup_file")
    rollback.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    sub.add_parser("backups", help="List available backups")
    backup = sub.add_parser("backup", help="Take a backup now")
    backup.add_argument("--logical", action="store_true", help="Export the tables to JSON instead of a SQLite snapshot")

    reset = sub.add_parser("reset", help="Back up, then drop and re-create the schema (development only)")
    reset.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    return parser.parse_args(argv)


def confirm(prompt: str, input_func: Optional[Callable[[str], str]] = None) -> bool:
    input_func = input_func or input
    try:
        return input_func(f"{prompt} (yes/no): ").strip().lower() == "yes"
    except EOFError:
        return False


async def cmd_create(orchestrator: MigrationOrchestrator, args) -> int:
    print("Starting safe migration...\n")
    try:
        result = await orchestrator.safe_migrate(args.name)
    except BackupRequiredError as e:
        print("\nMigration aborted: backup failed, schema untouched.", file=sys.stderr)
        print(f"  Error: {e.message}", file=sys.stderr)
        return 1
    except BlogOpsException as e:
        print("\nMigration failed!", file=sys.stderr)
        print(f"  Error: {e.message}", file=sys.stderr)
        print("\nData has been backed up; you can roll back safely (see 'history').")
        return 1

    print("\nMigration succeeded!")
    print(f"  Migration: {result.migration}")
    print(f"  Backup:    {result.backup}")
    print("\nTo roll back: db-migrate rollback <backup-file>")
    return 0


async def cmd_deploy(orchestrator: MigrationOrchestrator, args) -> int:
    print("Deploying migrations...\n")
    try:
        backup_file = await orchestrator.deploy()
    except BlogOpsException as e:
        print("\nDeploy failed!", file=sys.stderr)
        print(f"  Error: {e.message}", file=sys.stderr)
        return 1

    print(f"\nDeploy succeeded! (backup: {backup_file})")
    return 0


async def cmd_history(orchestrator: MigrationOrchestrator, args) -> int:
    history = await orchestrator.get_migration_history()
    if not history:
        print("No migration history")
        return 0

    print(f"\nMigration history:\n\n{RULE}")
    for record in history:
        marker = "OK  " if record.status == "success" else "FAIL"
        print(f"[{marker}] {record.name}")
        print(f"  Time:   {record.timestamp.astimezone():%Y-%m-%d %H:%M:%S}")
        print(f"  Backup: {record.backup_file}")
        if record.error:
            print(f"  Error:  {record.error}")
        print(THIN_RULE)
    return 0


async def cmd_rollback(orchestrator: MigrationOrchestrator, args) -> int:
    print(f"About to roll back to: {args.backup_file}")
    print("Warning: this overwrites the current database!")

    if not args.yes and not confirm("Continue?"):
        print("Cancelled")
        return 0

    try:
        await orchestrator.backup_engine.restore_backup(args.backup_file)
    except BlogOpsException as e:
        print("\nRollback failed!", file=sys.stderr)
        print(f"  Error: {e.message}", file=sys.stderr)
        return 1

    print("\nRollback succeeded!")
    return 0


async def cmd_backups(orchestrator: MigrationOrchestrator, args) -> int:
    backups = await orchestrator.backup_engine.list_backups()
    if not backups:
        print("No backups")
        return 0

    print(f"\nAvailable backups:\n\n{RULE}")
    for backup in backups:
        print(backup.file)
        print(f"  Type: {backup.type}")
        print(f"  Size: {backup.size / 1024 / 1024:.2f} MB")
        print(f"  Time: {backup.created_at:%Y-%m-%d %H:%M:%S}")
        print(THIN_RULE)
    print("\nTo roll back: db-migrate rollback <file>")
    return 0


async def cmd_backup(orchestrator: MigrationOrchestrator, args) -> int:
    try:
        if args.logical:
            filename = await orchestrator.backup_engine.backup_logical()
        else:
            filename = await orchestrator.backup_engine.backup_once()
    except BlogOpsException as e:
        print(f"Backup failed: {e.message}", file=sys.stderr)
        return 1
    print(f"Backup created: {filename}")
    return 0


async def cmd_reset(orchestrator: MigrationOrchestrator, args) -> int:
    print("Warning: this drops every table and re-applies all migrations!")
    if not args.yes and not confirm("Continue?"):
        print("Cancelled")
        return 0

    try:
        backup_file = await orchestrator.reset_database()
    except BlogOpsException as e:
        print(f"Reset failed: {e.message}", file=sys.stderr)
        return 1

    print(f"Database reset (backup: {backup_file})")
    return 0


COMMANDS = {
    "create": cmd_create,
    "deploy": cmd_deploy,
    "history": cmd_history,
    "rollback": cmd_rollback,
    "backups": cmd_backups,
    "backup": cmd_backup,
    "reset": cmd_reset,
}


async def run(args: argparse.Namespace, settings: Settings) -> int:
    engine = create_engine_from_settings(settings)
    try:
        backup_engine = BackupEngine(engine, settings)
        orchestrator = MigrationOrchestrator(backup_engine, AlembicMigrationTool(settings), settings)
        return await COMMANDS[args.command](orchestrator, args)
    finally:
        await engine.dispose()


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = parse_args(argv)
    settings = settings or default_settings
    setup_logging(settings)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
