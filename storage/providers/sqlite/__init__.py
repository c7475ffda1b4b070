"""SQLite storage provider implementations."""

from .backup_record_repo import SQLiteBackupRecordRepo

__all__ = ["SQLiteBackupRecordRepo"]
