import subprocess

import pytest

import migrate_db


def test_data_dump_uses_inserts():
    schema_cmd = migrate_db.pg_dump_command("postgresql://src/writify", migrate_db.Path("s.sql"), "schema")
    data_cmd = migrate_db.pg_dump_command("postgresql://src/writify", migrate_db.Path("d.sql"), "data")
    assert "--schema-only" in schema_cmd
    assert "--inserts" not in schema_cmd
    assert "--data-only" in data_cmd
    assert "--inserts" in data_cmd
    assert data_cmd[-2:] == ["--dbname", "postgresql://src/writify"]
    assert data_cmd[data_cmd.index("--file") + 1] == "d.sql"


def test_export_runs_schema_then_data(tmp_path, monkeypatch):
    calls = []

    def fake_run(cmd, capture_output, text):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(migrate_db.subprocess, "run", fake_run)

    written = migrate_db.export_database("postgresql://src/writify", tmp_path)

    assert written == [tmp_path / "schema.sql", tmp_path / "data.sql"]
    assert "--schema-only" in calls[0]
    assert "--data-only" in calls[1]


def test_export_failure_raises(tmp_path, monkeypatch):
    monkeypatch.setattr(
        migrate_db.subprocess, "run",
        lambda cmd, capture_output, text: subprocess.CompletedProcess(cmd, 1, "", "password authentication failed"),
    )
    with pytest.raises(migrate_db.MigrationError, match="password authentication failed"):
        migrate_db.export_database("postgresql://src/writify", tmp_path)


def test_import_requires_export_files(tmp_path):
    with pytest.raises(migrate_db.MigrationError, match="Run the export command first"):
        migrate_db.import_database("postgresql://target/writify", tmp_path)


def test_main_import_without_target_fails(tmp_path, monkeypatch):
    monkeypatch.delenv("NEON_DATABASE_URL", raising=False)
    assert migrate_db.main(["--exports-dir", str(tmp_path), "import", "--target", ""]) == 1
