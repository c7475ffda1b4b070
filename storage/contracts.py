"""Repository contracts shared by storage providers."""

from __future__ import annotations

from typing import Protocol

from storage.models import BackupRecordRow


class BackupRecordRepo(Protocol):
    def record(
        self,
        commit_hash: str,
        vault_root: str,
        action_type: str,
        file_path: str,
        dest_path: str | None = None,
        description: str = "",
    ) -> None: ...

    def get(self, vault_root: str, commit_hash: str) -> BackupRecordRow | None: ...

    def list_recent(self, vault_root: str, limit: int = 10) -> list[BackupRecordRow]: ...

    def close(self) -> None: ...
