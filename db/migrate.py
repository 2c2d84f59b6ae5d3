from __future__ import annotations

import hashlib
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path


MIGRATION_RE = re.compile(r"^(\d{4})_([a-zA-Z0-9_]+)\.sql$")


@dataclass(frozen=True)
class SqlMigration:
    version: str
    name: str
    path: Path

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.path.read_bytes()).hexdigest()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def discover_migrations(migrations_dir: str) -> list[SqlMigration]:
    """Numbered `NNNN_name.sql` files in version order; other files are ignored."""
    base = Path(migrations_dir)
    if not base.is_dir():
        raise RuntimeError(f"Migrations directory not found: {migrations_dir}")
    found: list[SqlMigration] = []
    for path in sorted(base.glob("*.sql")):
        m = MIGRATION_RE.match(path.name)
        if m:
            found.append(SqlMigration(version=m.group(1), name=m.group(2), path=path))
    return found


def _applied_checksums(conn: sqlite3.Connection) -> dict[str, tuple[str, str]]:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            checksum TEXT NOT NULL,
            applied_at_utc TEXT NOT NULL
        )
        """
    )
    rows = conn.execute("SELECT version, name, checksum FROM schema_migrations").fetchall()
    return {str(version): (str(name), str(checksum)) for version, name, checksum in rows}


def apply_sqlite_migrations(conn: sqlite3.Connection, migrations_dir: str) -> list[str]:
    """
    Apply pending SQL migrations and return the versions applied this call.

    A version that was already applied must still have the same name and file
    checksum; an edited migration raises instead of silently diverging.
    """
    pending = discover_migrations(migrations_dir)
    applied = _applied_checksums(conn)
    ran: list[str] = []

    for migration in pending:
        checksum = migration.checksum
        previous = applied.get(migration.version)
        if previous is not None:
            if previous != (migration.name, checksum):
                raise RuntimeError(
                    f"Migration {migration.version} already applied with different content "
                    f"(recorded name={previous[0]}, file name={migration.name})."
                )
            continue

        print(f"[DB] Applying migration {migration.path.name}")
        conn.executescript(migration.path.read_text(encoding="utf-8"))
        conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, applied_at_utc) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, checksum, _utc_now_iso()),
        )
        conn.commit()
        ran.append(migration.version)
    return ran


def list_schema_migrations_sync(conn: sqlite3.Connection, limit: int = 50) -> list[tuple[str, str, str]]:
    try:
        return conn.execute(
            "SELECT version, name, applied_at_utc FROM schema_migrations ORDER BY version DESC LIMIT ?",
            (max(1, min(int(limit), 500)),),
        ).fetchall()
    except sqlite3.OperationalError:
        return []


def table_columns_sync(conn: sqlite3.Connection, table: str) -> list[str]:
    # rows: (cid, name, type, notnull, dflt_value, pk)
    return [r[1] for r in conn.execute(f"PRAGMA table_info({table})").fetchall()]


def default_migrations_dir() -> str:
    return str(Path(__file__).resolve().parents[1] / "migrations")


def open_settings_db(db_path: str, migrations_dir: str | None = None) -> sqlite3.Connection:
    # check_same_thread=False because lookups run via asyncio.to_thread
    conn = sqlite3.connect(db_path, check_same_thread=False)
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
    apply_sqlite_migrations(conn, migrations_dir or default_migrations_dir())
    conn.commit()
    return conn
