import contextlib
import sqlite3
from typing import Iterable

try:
    import psycopg2
    import psycopg2.extras
except ImportError:  # pragma: no cover - optional dependency for postgres
    psycopg2 = None

from flask import current_app, g


class Database:
    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection

    def execute(self, sql: str, params: Iterable | None = None):
        if self.backend == "postgres":
            cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            if params:
                sql = _convert_qmark_to_pg(sql)
                cursor.execute(sql, list(params))
            else:
                cursor.execute(sql)
            return cursor
        return self._conn.execute(sql, params or ())

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    @contextlib.contextmanager
    def transaction(self):
        # Postgres connections run in autocommit; switch it off for the unit of work.
        if self.backend == "postgres":
            self._conn.autocommit = False
        try:
            yield self
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            if self.backend == "postgres":
                self._conn.autocommit = True

    def close(self):
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


def _connect_database(db_path: str) -> Database:
    if db_path.lower().startswith("postgres"):
        if psycopg2 is None:
            raise RuntimeError("psycopg2 nao instalado.")
        conn = psycopg2.connect(db_path)
        conn.autocommit = True
        return Database("postgres", conn)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return Database("sqlite", conn)


def get_db():
    if "db" not in g:
        db_path = current_app.config["DB_PATH"]
        g.db = _connect_database(db_path)
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    if db.backend == "postgres":
        _init_db_postgres(db)
        return

    _init_db_sqlite(db)


_SQLITE_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL DEFAULT '',
        email TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS suppliers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS raw_materials (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0,
        category TEXT,
        code TEXT NOT NULL UNIQUE,
        price REAL NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        description TEXT NOT NULL,
        state TEXT NOT NULL DEFAULT 'open' CHECK (
            state IN ('open','being_quoted','has_budgets','closed','received')
        ),
        opened_at TEXT NOT NULL,
        closed_at TEXT,
        requester_id INTEGER NOT NULL REFERENCES users (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_request_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        purchase_request_id INTEGER NOT NULL REFERENCES purchase_requests (id),
        raw_material_id INTEGER NOT NULL REFERENCES raw_materials (id),
        quantity INTEGER NOT NULL CHECK (quantity > 0)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        description TEXT NOT NULL,
        created_at TEXT NOT NULL,
        state TEXT NOT NULL DEFAULT 'issued' CHECK (
            state IN ('issued','has_budgets','finalized')
        ),
        supplier_id INTEGER NOT NULL REFERENCES suppliers (id),
        access_token TEXT NOT NULL,
        purchase_request_id INTEGER REFERENCES purchase_requests (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS budgets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        state TEXT NOT NULL DEFAULT 'responded' CHECK (
            state IN ('responded','accepted','rejected')
        ),
        quotation_id INTEGER NOT NULL REFERENCES quotations (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS budget_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        budget_id INTEGER NOT NULL REFERENCES budgets (id),
        raw_material_id INTEGER NOT NULL REFERENCES raw_materials (id),
        quantity INTEGER NOT NULL,
        unit_price REAL NOT NULL,
        lead_time_days INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS delivery_notes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        issued_at TEXT NOT NULL,
        state TEXT NOT NULL DEFAULT 'pending' CHECK (
            state IN ('pending','received','disputed','redelivered')
        ),
        total_value REAL NOT NULL DEFAULT 0,
        budget_id INTEGER NOT NULL REFERENCES budgets (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS delivery_note_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        delivery_note_id INTEGER NOT NULL REFERENCES delivery_notes (id),
        raw_material_id INTEGER NOT NULL REFERENCES raw_materials (id),
        quantity INTEGER NOT NULL,
        unit_price REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS status_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        entity TEXT NOT NULL,
        entity_id INTEGER NOT NULL,
        from_state TEXT,
        to_state TEXT NOT NULL,
        reason TEXT,
        occurred_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
)


_INDEXES = (
    "CREATE INDEX IF NOT EXISTS ix_purchase_requests_state ON purchase_requests (state)",
    "CREATE INDEX IF NOT EXISTS ix_purchase_request_lines_request ON purchase_request_lines (purchase_request_id)",
    "CREATE INDEX IF NOT EXISTS ix_quotations_request ON quotations (purchase_request_id)",
    "CREATE INDEX IF NOT EXISTS ix_budgets_quotation ON budgets (quotation_id)",
    "CREATE INDEX IF NOT EXISTS ix_budget_lines_budget ON budget_lines (budget_id)",
    "CREATE INDEX IF NOT EXISTS ix_delivery_notes_budget ON delivery_notes (budget_id)",
    "CREATE INDEX IF NOT EXISTS ix_delivery_notes_state ON delivery_notes (state)",
    "CREATE INDEX IF NOT EXISTS ix_delivery_note_lines_note ON delivery_note_lines (delivery_note_id)",
    "CREATE INDEX IF NOT EXISTS ix_status_events_entity ON status_events (entity, entity_id)",
)


def _init_db_sqlite(db: Database):
    for statement in _SQLITE_SCHEMA:
        db.execute(statement)
    for statement in _INDEXES:
        db.execute(statement)
    db.commit()


def _to_postgres_ddl(statement: str) -> str:
    return (
        statement.replace("INTEGER PRIMARY KEY AUTOINCREMENT", "SERIAL PRIMARY KEY")
        .replace("REAL", "NUMERIC(14, 4)")
    )


def _init_db_postgres(db: Database) -> None:
    for statement in _SQLITE_SCHEMA:
        db.execute(_to_postgres_ddl(statement))
    for statement in _INDEXES:
        db.execute(statement)
    db.commit()
