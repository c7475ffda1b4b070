"""SQLite repository for backup snapshot sidecar records."""

from __future__ import annotations

import sqlite3
import time
from pathlib import Path

from storage.models import BackupRecordRow


class SQLiteBackupRecordRepo:
    """Repository boundary for backup_records table."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        if db_path is None:
            db_path = Path.home() / ".composer" / "composer.db"
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_table()

    def record(
        self,
        commit_hash: str,
        vault_root: str,
        action_type: str,
        file_path: str,
        dest_path: str | None = None,
        description: str = "",
    ) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO backup_records
                (commit_hash, vault_root, action_type, file_path, dest_path, timestamp, description)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (commit_hash, vault_root, action_type, file_path, dest_path, time.time(), description),
            )
            conn.commit()

    def close(self) -> None:
        """Compatibility no-op for protocol parity."""
        return None

    def get(self, vault_root: str, commit_hash: str) -> BackupRecordRow | None:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                "SELECT * FROM backup_records WHERE vault_root = ? AND commit_hash = ?",
                (vault_root, commit_hash),
            )
            row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def list_recent(self, vault_root: str, limit: int = 10) -> list[BackupRecordRow]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """
                SELECT * FROM backup_records
                WHERE vault_root = ?
                ORDER BY timestamp DESC, rowid DESC
                LIMIT ?
                """,
                (vault_root, limit),
            )
            rows = cursor.fetchall()
        return [self._row_to_record(row) for row in rows]

    def _ensure_table(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS backup_records (
                    commit_hash TEXT NOT NULL,
                    vault_root TEXT NOT NULL,
                    action_type TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    dest_path TEXT,
                    timestamp REAL NOT NULL,
                    description TEXT DEFAULT '',
                    PRIMARY KEY (vault_root, commit_hash)
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_backup_records_root
                ON backup_records(vault_root, timestamp)
                """
            )
            conn.commit()

    def _row_to_record(self, row: sqlite3.Row) -> BackupRecordRow:
        return BackupRecordRow(
            commit_hash=row["commit_hash"],
            vault_root=row["vault_root"],
            action_type=row["action_type"],
            file_path=row["file_path"],
            dest_path=row["dest_path"],
            timestamp=row["timestamp"],
            description=row["description"] or "",
        )
