"""
Integration tests for the Alembic-backed migration tool against a temporary database
"""

import pytest
from sqlalchemy import create_engine, inspect
from core.database import create_engine_from_settings, init_models
from pipeline.migration_tool import AlembicMigrationTool

TABLES = {"posts", "comments", "visit_logs", "daily_stats"}


def table_names(settings):
    engine = create_engine(settings.sync_database_url)
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


@pytest.fixture
def tool(test_settings):
    test_settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return AlembicMigrationTool(test_settings)


def test_config_targets_settings_database(tool, test_settings):
    cfg = tool.alembic_config()
    assert cfg.attributes["sqlalchemy.url"] == test_settings.sync_database_url
    assert cfg.get_main_option("script_location").endswith("alembic")


@pytest.mark.asyncio
async def test_deploy_creates_schema(tool, test_settings):
    await tool.deploy()

    assert TABLES <= table_names(test_settings)
    assert "alembic_version" in table_names(test_settings)


@pytest.mark.asyncio
async def test_reset_recreates_schema(tool, test_settings):
    await tool.deploy()
    await tool.reset()

    assert TABLES <= table_names(test_settings)


@pytest.mark.asyncio
async def test_stamp_after_create_all_makes_deploy_a_no_op(tool, test_settings):
    engine = create_engine_from_settings(test_settings)
    await init_models(engine)
    await engine.dispose()

    await tool.stamp_head()
    await tool.deploy()

    assert TABLES <= table_names(test_settings)


@pytest.mark.asyncio
async def test_diff_returns_list(tool):
    await tool.deploy()

    diff = await tool.diff()

    assert isinstance(diff, list)
