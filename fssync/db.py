"""
SQLite Database Storage for the maintenance application's mirrored tables.

Holds the local customer, system and contact_person tables the reconciler
writes to, plus a JSON key-value settings table (sync cursors, technician
list). All reads and writes are keyed by the stable local `id`; reconciliation
mutations run inside an explicit unit of work (see `transaction()`).
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .logger import get_logger

logger = get_logger("fssync.db")

# Default database path
DEFAULT_DB_PATH = Path("./data/fssync.db")

# Maximum ids per DELETE ... IN (...) statement (SQLite variable limit)
DELETE_CHUNK_SIZE = 500

TABLE_COLUMNS: Dict[str, tuple] = {
    "customer": (
        "id", "external_id", "name", "address", "city", "postal_code", "country",
        "business_email", "business_phone", "website", "category", "billing_code",
        "service_manager", "sla", "abbreviation", "external_updated_at",
        "created_at", "updated_at",
    ),
    "system": (
        "id", "external_id", "customer_id", "hostname", "ip_address", "description",
        "hardware_type", "operating_system", "server_application_type",
        "installed_software", "maintenance_interval", "external_updated_at",
        "created_at", "updated_at",
    ),
    "contact_person": (
        "id", "external_id", "source", "customer_id", "name", "email", "phone",
        "external_updated_at", "created_at", "updated_at",
    ),
}

# Columns stored as JSON text / integer booleans
JSON_COLUMNS = {"installed_software"}
BOOL_COLUMNS = {"sla"}


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Database:
    """
    SQLite database for the locally mirrored Freshservice entities.

    Example:
        >>> db = Database(Path("./data/fssync.db"))
        >>> with db.transaction():
        ...     db.insert_many("customer", rows)
        >>> db.close()
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
                     Defaults to ./data/fssync.db
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._in_transaction = False
        self._init_database()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            # isolation_level=None: autocommit, transactions are explicit BEGINs
            self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def _init_database(self):
        """Initialize database schema."""
        conn = self._get_connection()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS customer (
                id TEXT PRIMARY KEY,
                external_id TEXT,
                name TEXT NOT NULL,
                address TEXT,
                city TEXT,
                postal_code TEXT,
                country TEXT,
                business_email TEXT,
                business_phone TEXT,
                website TEXT,
                category TEXT,
                billing_code TEXT,
                service_manager TEXT,
                sla INTEGER NOT NULL DEFAULT 0,
                abbreviation TEXT NOT NULL UNIQUE,
                external_updated_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # ON DELETE CASCADE: removing a customer (e.g. its department disappeared
        # from Freshservice) also removes its manually created systems and contacts
        conn.execute("""
            CREATE TABLE IF NOT EXISTS system (
                id TEXT PRIMARY KEY,
                external_id TEXT,
                customer_id TEXT NOT NULL REFERENCES customer(id) ON DELETE CASCADE,
                hostname TEXT NOT NULL,
                ip_address TEXT,
                description TEXT,
                hardware_type TEXT NOT NULL,
                operating_system TEXT NOT NULL,
                server_application_type TEXT,
                installed_software TEXT NOT NULL DEFAULT '[]',
                maintenance_interval TEXT,
                external_updated_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS contact_person (
                id TEXT PRIMARY KEY,
                external_id TEXT,
                source TEXT NOT NULL DEFAULT 'manual',
                customer_id TEXT NOT NULL REFERENCES customer(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                phone TEXT NOT NULL,
                external_updated_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # Key-value settings (sync cursors, technicians list, ...)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        conn.execute("CREATE INDEX IF NOT EXISTS idx_customer_external ON customer(external_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_system_external ON system(external_id)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_contact_source_external "
            "ON contact_person(source, external_id)"
        )

        logger.debug(f"Database initialized at {self.db_path}")

    def close(self):
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Unit of Work
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """
        Run the enclosed writes atomically.

        Commits when the block exits normally, rolls back and re-raises on any
        exception. Nested use joins the outer transaction.
        """
        if self._in_transaction:
            yield self
            return

        conn = self._get_connection()
        conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            conn.execute("ROLLBACK")
            logger.warning("Transaction rolled back")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    # =========================================================================
    # Row Encoding
    # =========================================================================

    @staticmethod
    def _check_table(table: str) -> tuple:
        if table not in TABLE_COLUMNS:
            raise ValueError(f"Unknown table: {table}")
        return TABLE_COLUMNS[table]

    @staticmethod
    def _check_columns(table: str, columns: Iterable[str]):
        allowed = TABLE_COLUMNS[table]
        unknown = [c for c in columns if c not in allowed]
        if unknown:
            raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")

    @staticmethod
    def _encode(column: str, value: Any) -> Any:
        if column in JSON_COLUMNS:
            return json.dumps(list(value or []))
        if column in BOOL_COLUMNS:
            return 1 if value else 0
        return value

    @staticmethod
    def _decode_row(row: sqlite3.Row) -> Dict[str, Any]:
        result = dict(row)
        for column in JSON_COLUMNS & result.keys():
            result[column] = json.loads(result[column]) if result[column] else []
        for column in BOOL_COLUMNS & result.keys():
            result[column] = bool(result[column])
        return result

    # =========================================================================
    # Generic Entity Operations
    # =========================================================================

    def fetch_all(self, table: str, **filters: Any) -> List[Dict[str, Any]]:
        """
        Get all rows of an entity table, optionally filtered by equality.

        Args:
            table: "customer", "system" or "contact_person"
            **filters: column=value conditions combined with AND

        Returns:
            Decoded rows (JSON lists and booleans restored)
        """
        self._check_table(table)
        self._check_columns(table, filters.keys())

        sql = f"SELECT * FROM {table}"
        params: List[Any] = []
        if filters:
            clauses = []
            for column, value in filters.items():
                if value is None:
                    clauses.append(f"{column} IS NULL")
                else:
                    clauses.append(f"{column} = ?")
                    params.append(value)
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY rowid"

        cursor = self._get_connection().execute(sql, params)
        return [self._decode_row(row) for row in cursor.fetchall()]

    def get_row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        """Get one row by local id."""
        self._check_table(table)
        cursor = self._get_connection().execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,))
        row = cursor.fetchone()
        return self._decode_row(row) if row else None

    def insert_many(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """
        Insert rows that all carry the same set of columns.

        Returns:
            Number of rows inserted.
        """
        if not rows:
            return 0
        self._check_table(table)
        columns = list(rows[0].keys())
        self._check_columns(table, columns)

        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        values = [tuple(self._encode(c, row.get(c)) for c in columns) for row in rows]

        self._get_connection().executemany(sql, values)
        return len(rows)

    def update_row(self, table: str, row_id: str, patch: Dict[str, Any]) -> int:
        """
        Apply a column patch to one row.

        Returns:
            Number of rows changed (0 or 1).
        """
        if not patch:
            return 0
        self._check_table(table)
        self._check_columns(table, patch.keys())

        assignments = ", ".join(f"{column} = ?" for column in patch)
        values = [self._encode(c, v) for c, v in patch.items()]
        cursor = self._get_connection().execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?", values + [row_id]
        )
        return cursor.rowcount

    def delete_rows(self, table: str, row_ids: List[str]) -> int:
        """
        Delete rows by local id.

        Returns:
            Number of rows deleted.
        """
        if not row_ids:
            return 0
        self._check_table(table)
        conn = self._get_connection()
        deleted = 0
        for start in range(0, len(row_ids), DELETE_CHUNK_SIZE):
            chunk = row_ids[start:start + DELETE_CHUNK_SIZE]
            placeholders = ", ".join("?" for _ in chunk)
            cursor = conn.execute(f"DELETE FROM {table} WHERE id IN ({placeholders})", chunk)
            deleted += cursor.rowcount
        return deleted

    # =========================================================================
    # Typed Accessors
    # =========================================================================

    def get_customers(self) -> List[Dict[str, Any]]:
        """Get all customers."""
        return self.fetch_all("customer")

    def get_systems(self) -> List[Dict[str, Any]]:
        """Get all systems."""
        return self.fetch_all("system")

    def get_contacts(self, source: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get contact persons, optionally only those of one source."""
        if source is None:
            return self.fetch_all("contact_person")
        return self.fetch_all("contact_person", source=source)

    # =========================================================================
    # Settings (key-value, JSON values)
    # =========================================================================

    def get_setting(self, key: str) -> Any:
        """Get a setting's decoded JSON value, or None if the key is absent."""
        cursor = self._get_connection().execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()
        return json.loads(row["value"]) if row else None

    def set_setting(self, key: str, value: Any):
        """Insert or replace a setting, keeping its original created_at."""
        now = utc_now_iso()
        self._get_connection().execute("""
            INSERT INTO settings (key, value, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        """, (key, json.dumps(value), now, now))

    def get_all_settings(self) -> Dict[str, Any]:
        cursor = self._get_connection().execute("SELECT key, value FROM settings ORDER BY key")
        return {row["key"]: json.loads(row["value"]) for row in cursor.fetchall()}

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> Dict[str, int]:
        """Get row counts per table."""
        conn = self._get_connection()
        stats = {}
        for table in list(TABLE_COLUMNS) + ["settings"]:
            stats[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        return stats
