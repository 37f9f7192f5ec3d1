"""
Command-line entry points.

Scripts:
    init_db: Create the schema and stamp it at the Alembic head
    run_stats: Recalculate word counts and daily rollups, optionally verify
    migrate_cli: Backup-guarded migrations, backups and rollback
"""
