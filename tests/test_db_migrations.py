import os
import sqlite3
import unittest
from pathlib import Path
from unittest.mock import patch

from factory_ops import create_app
from factory_ops.config import Config
from factory_ops.db_migrations import to_sqlalchemy_url
from tests.helpers.temp_db import TempDbSandbox


def _read_schema(db_path: str) -> dict:
    conn = sqlite3.connect(db_path)
    try:
        tables = [
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' "
                "AND name NOT LIKE 'sqlite_%' AND name != 'alembic_version' ORDER BY name"
            ).fetchall()
        ]
        columns = {
            table: [row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()]
            for table in tables
        }
        indexes = sorted(
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'index' AND name LIKE 'ix_%'"
            ).fetchall()
        )
        return {"columns": columns, "indexes": indexes}
    finally:
        conn.close()


class SqlAlchemyUrlTest(unittest.TestCase):
    def test_postgres_scheme_is_normalized(self) -> None:
        self.assertEqual(to_sqlalchemy_url("postgres://u:p@db/factory"), "postgresql://u:p@db/factory")

    def test_explicit_urls_pass_through(self) -> None:
        for url in ("postgresql://u@db/x", "postgresql+psycopg2://u@db/x", "sqlite:///tmp/x.db"):
            with self.subTest(url=url):
                self.assertEqual(to_sqlalchemy_url(url), url)

    def test_plain_path_becomes_absolute_sqlite_url(self) -> None:
        url = to_sqlalchemy_url("relative/factory.db")
        expected = Path("relative/factory.db").resolve().as_posix()
        self.assertEqual(url, f"sqlite:///{expected}")

    def test_blank_path_is_rejected(self) -> None:
        with self.assertRaises(RuntimeError):
            to_sqlalchemy_url("  ")


class DbMigrationsTest(unittest.TestCase):
    def setUp(self) -> None:
        self._migrated = TempDbSandbox(prefix="migrations_alembic")
        self._bootstrapped = TempDbSandbox(prefix="migrations_init_db")
        self.addCleanup(self._migrated.cleanup)
        self.addCleanup(self._bootstrapped.cleanup)

        env_patch = patch.dict(os.environ, {"FLASK_ENV": "development"})
        env_patch.start()
        self.addCleanup(env_patch.stop)
        os.environ.pop("DATABASE_URL", None)

        temp_config = self._migrated.make_config(Config, TESTING=False, DB_AUTO_INIT=False, DATABASE_URL=None)
        self.app = create_app(temp_config)
        self.runner = self.app.test_cli_runner()

    def _invoke(self, *args: str) -> None:
        result = self.runner.invoke(args=["db", *args])
        self.assertEqual(result.exit_code, 0, msg=result.output)

    def test_schema_not_created_by_default(self) -> None:
        self.assertEqual(_read_schema(self._migrated.db_path)["columns"], {})

    def test_upgrade_matches_init_db_schema(self) -> None:
        self._invoke("upgrade")
        self._bootstrapped.open_database()

        migrated = _read_schema(self._migrated.db_path)
        bootstrapped = _read_schema(self._bootstrapped.db_path)

        self.assertEqual(len(migrated["columns"]), 12)
        self.assertEqual(migrated["columns"], bootstrapped["columns"])
        self.assertEqual(migrated["indexes"], bootstrapped["indexes"])

    def test_upgrade_downgrade_round_trip(self) -> None:
        self._invoke("upgrade")
        self.assertIn("delivery_notes", _read_schema(self._migrated.db_path)["columns"])

        self._invoke("downgrade", "base")
        self.assertEqual(_read_schema(self._migrated.db_path)["columns"], {})

        self._invoke("upgrade")
        self.assertIn("status_events", _read_schema(self._migrated.db_path)["columns"])

    def test_migrated_schema_enforces_state_values(self) -> None:
        self._invoke("upgrade")
        conn = sqlite3.connect(self._migrated.db_path)
        try:
            conn.execute("INSERT INTO users (first_name) VALUES ('Rita')")
            with self.assertRaises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO purchase_requests (description, state, opened_at, requester_id) "
                    "VALUES ('x', 'archived', '2026-10-19', 1)"
                )
        finally:
            conn.close()


if __name__ == "__main__":
    unittest.main()
