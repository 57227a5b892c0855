# migrate_db.py
"""
Move a Writify database between Postgres hosts.

    python migrate_db.py export --source "postgresql://postgres@localhost/writify"
    python migrate_db.py import --target "$NEON_DATABASE_URL"
    python migrate_db.py init --target "$DATABASE_URL"

export writes exports/schema.sql and exports/data.sql with pg_dump,
import replays them in that order, init only builds an empty schema.
"""
import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path

import psycopg

from config import settings
from init_db import init_database

logger = logging.getLogger(__name__)

EXPORTS_DIR = Path(__file__).resolve().parent / "exports"
SCHEMA_FILE = "schema.sql"
DATA_FILE = "data.sql"


class MigrationError(Exception):
    pass


def pg_dump_command(source_url: str, output: Path, section: str) -> list[str]:
    """`section` is "schema" or "data"."""
    command = ["pg_dump", f"--{section}-only", "--no-owner", "--no-privileges"]
    if section == "data":
        # COPY ... FROM stdin blocks cannot be replayed through cursor.execute()
        command.append("--inserts")
    command += ["--file", str(output), "--dbname", source_url]
    return command


def export_database(source_url: str, exports_dir: Path = EXPORTS_DIR) -> list[Path]:
    exports_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for section, filename in (("schema", SCHEMA_FILE), ("data", DATA_FILE)):
        output = exports_dir / filename
        logger.info("Exporting %s to %s", section, output)
        result = subprocess.run(pg_dump_command(source_url, output, section), capture_output=True, text=True)
        if result.returncode != 0:
            raise MigrationError(f"pg_dump {section} export failed: {result.stderr.strip()}")
        written.append(output)
    return written


def read_export(exports_dir: Path, filename: str) -> str:
    path = exports_dir / filename
    if not path.exists():
        raise MigrationError(f"{path} not found. Run the export command first.")
    return path.read_text(encoding="utf-8")


def import_database(target_url: str, exports_dir: Path = EXPORTS_DIR) -> None:
    schema_sql = read_export(exports_dir, SCHEMA_FILE)
    data_sql = read_export(exports_dir, DATA_FILE)

    logger.info("Connecting to target database")
    with psycopg.connect(target_url) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT NOW()")
            logger.info("Connected, server time %s", cur.fetchone()[0])

            logger.info("Importing schema")
            cur.execute(schema_sql)
            logger.info("Importing data")
            cur.execute(data_sql)
        conn.commit()
    logger.info("Database migration completed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export/import the Writify database")
    parser.add_argument("--exports-dir", type=Path, default=EXPORTS_DIR)
    sub = parser.add_subparsers(dest="command", required=True)

    export_cmd = sub.add_parser("export", help="dump schema and data with pg_dump")
    export_cmd.add_argument("--source", default=settings.DATABASE_URL)

    import_cmd = sub.add_parser("import", help="load a previous export into another host")
    import_cmd.add_argument("--target", default=os.getenv("NEON_DATABASE_URL"))

    init_cmd = sub.add_parser("init", help="create an empty schema")
    init_cmd.add_argument("--target", default=settings.DATABASE_URL)
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    try:
        if args.command == "export":
            export_database(args.source, args.exports_dir)
        elif args.command == "import":
            if not args.target:
                raise MigrationError("No target database. Pass --target or set NEON_DATABASE_URL.")
            import_database(args.target, args.exports_dir)
        elif args.command == "init":
            if not init_database(args.target):
                raise MigrationError("Schema initialization failed")
    except (MigrationError, psycopg.Error) as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
