"""
Tests for the command-line entry points
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from models import Base, Post
from scripts import migrate_cli, run_stats


@pytest.fixture
def cli_settings(test_settings):
    test_settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(test_settings.sync_database_url)
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add(Post(title="Hello", content="Hello world", published=True))
        session.commit()
    engine.dispose()
    return test_settings


def test_run_stats_all_with_verify(cli_settings, capsys):
    assert run_stats.main(["--type", "all", "--days", "0", "--verify"], settings=cli_settings) == 0

    out = capsys.readouterr().out
    assert "Word counts: 1 updated, 0 failed" in out
    assert "Daily stats: 1 days processed" in out
    assert "Integrity: valid" in out


def test_run_stats_rejects_negative_window(cli_settings, capsys):
    assert run_stats.main(["--type", "daily", "--days", "-1"], settings=cli_settings) == 1
    assert "Error:" in capsys.readouterr().err


def test_backup_then_list(cli_settings, capsys):
    assert migrate_cli.main(["backup"], settings=cli_settings) == 0
    created = capsys.readouterr().out.split("Backup created: ")[1].split()[0]

    assert migrate_cli.main(["backups"], settings=cli_settings) == 0
    assert created in capsys.readouterr().out


def test_history_empty(cli_settings, capsys):
    assert migrate_cli.main(["history"], settings=cli_settings) == 0
    assert "No migration history" in capsys.readouterr().out


def test_rollback_requires_confirmation(cli_settings, capsys, monkeypatch):
    migrate_cli.main(["backup"], settings=cli_settings)
    created = capsys.readouterr().out.split("Backup created: ")[1].split()[0]
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    assert migrate_cli.main(["rollback", created], settings=cli_settings) == 0
    assert "Cancelled" in capsys.readouterr().out


def test_rollback_with_yes(cli_settings, capsys):
    migrate_cli.main(["backup"], settings=cli_settings)
    created = capsys.readouterr().out.split("Backup created: ")[1].split()[0]

    assert migrate_cli.main(["rollback", created, "--yes"], settings=cli_settings) == 0
    assert "Rollback succeeded!" in capsys.readouterr().out


def test_rollback_invalid_name_fails(cli_settings, capsys):
    assert migrate_cli.main(["rollback", "evil.sh", "--yes"], settings=cli_settings) == 1
    assert "Rollback failed!" in capsys.readouterr().err


def test_reset_refused_in_production(cli_settings, capsys):
    settings = cli_settings.model_copy(update={"ENVIRONMENT": "production"})

    assert migrate_cli.main(["reset", "--yes"], settings=settings) == 1
    assert "not allowed in production" in capsys.readouterr().err


def test_confirm_treats_eof_as_no():
    def closed_stdin(prompt):
        raise EOFError

    assert migrate_cli.confirm("Continue?", closed_stdin) is False


def test_logical_backup_then_rollback(cli_settings, capsys):
    assert migrate_cli.main(["backup", "--logical"], settings=cli_settings) == 0
    created = capsys.readouterr().out.split("Backup created: ")[1].split()[0]
    assert created.endswith(".json")

    assert migrate_cli.main(["rollback", created, "--yes"], settings=cli_settings) == 0
    assert "Rollback succeeded!" in capsys.readouterr().out
