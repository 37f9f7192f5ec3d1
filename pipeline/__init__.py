"""
Batch jobs for blog statistics, backups and schema migrations.

Modules:
    aggregator: Daily rollups and word-count recomputation
    verifier: Read-only audit of stored rollups and word counts
    backup: SQLite snapshot, retention cleanup, listing and restore
    scheduler: APScheduler integration for the daily backup cycle
    migration: Backup-guarded migrations with a durable history log
    migration_tool: Alembic commands behind the migration orchestrator

Subpackages:
    transformers: Markdown stripping and word counting
    loaders: Idempotent DailyStat upserts

Architecture:
    Every job is an independent, sequential batch operation. Services take
    their database session or engine as a constructor argument; the caller
    (API lifespan, CLI script, test fixture) owns its lifecycle.

    The migration orchestrator always backs up through the backup engine
    before touching the schema.

Usage:
    from pipeline.aggregator import StatsAggregator
    from pipeline.verifier import IntegrityVerifier
    from pipeline.backup import BackupEngine
    from pipeline.migration import MigrationOrchestrator
"""

__all__ = [
    "StatsAggregator",
    "IntegrityVerifier",
    "BackupEngine",
    "BackupScheduler",
    "MigrationOrchestrator",
    "AlembicMigrationTool",
]
