"""Storage domain models shared by providers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class BackupRecordRow:
    """Structured sidecar for one backup snapshot."""

    commit_hash: str
    vault_root: str
    action_type: str  # 'delete', 'move'
    file_path: str
    dest_path: str | None
    timestamp: float
    description: str = ""
