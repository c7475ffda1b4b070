"""Backup history listing and file recovery.

Records come from tagged commits, newest first. When a structured sidecar row
exists for a commit it is authoritative; otherwise the action and paths are
read back from the human-readable message templates.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path

from core.composer.backup import BACKUP_TAG
from core.composer.results import ErrorKind, OperationError, RecoveryResult
from core.composer.vcs import VCSError, VersionControl
from core.filesystem.backend import DocumentStore
from storage.contracts import BackupRecordRepo

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10

_DELETE_RE = re.compile(r"Before deleting:\s*(?P<path>.+?)\s*$")
_MOVE_RE = re.compile(r"Before moving:\s*(?P<src>.+?)\s+->\s+(?P<dst>.+?)\s*$")


@dataclass
class OperationRecord:
    index: int
    hash: str
    time_ago: str
    action_type: str  # 'delete', 'move', 'unknown'
    file_path: str
    dest_path: str
    full_message: str

    def to_dict(self) -> dict:
        return asdict(self)


def parse_backup_message(message: str) -> tuple[str, str, str]:
    """Return (action_type, file_path, dest_path) from a backup commit message."""
    if (match := _MOVE_RE.search(message)) is not None:
        return "move", match.group("src").strip(), match.group("dst").strip()
    if (match := _DELETE_RE.search(message)) is not None:
        return "delete", match.group("path").strip(), ""
    return "unknown", "", ""


class HistoryRecoveryService:
    """Lists backup snapshots and restores files from the commit before each one."""

    def __init__(
        self,
        store: DocumentStore,
        vcs: VersionControl,
        *,
        tag: str = BACKUP_TAG,
        sidecar: BackupRecordRepo | None = None,
    ):
        self.store = store
        self.vcs = vcs
        self.tag = tag
        self.sidecar = sidecar

    @property
    def root(self) -> Path:
        return self.store.root

    async def list(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[OperationRecord] | OperationError:
        if limit <= 0:
            return []
        if not await self.vcs.is_repository(self.root):
            return OperationError(
                ErrorKind.VCS_ERROR,
                "This vault is not a git repository. File operation history is not available.",
            )
        try:
            entries = await self.vcs.log(self.root, self.tag, limit)
        except VCSError as e:
            if e.no_commits:
                return []
            return OperationError(ErrorKind.VCS_ERROR, f"Error reading git history: {e}")

        records = []
        for index, entry in enumerate(entries, start=1):
            action_type, file_path, dest_path = self._describe(entry.hash, entry.subject)
            records.append(
                OperationRecord(
                    index=index,
                    hash=entry.hash,
                    time_ago=entry.relative_time,
                    action_type=action_type,
                    file_path=file_path,
                    dest_path=dest_path,
                    full_message=entry.subject,
                )
            )
        return records

    def _describe(self, commit_hash: str, subject: str) -> tuple[str, str, str]:
        if self.sidecar is not None:
            try:
                row = self.sidecar.get(str(self.root), commit_hash)
            except Exception as e:
                logger.warning("Could not read backup sidecar for %s: %s", commit_hash[:8], e)
                row = None
            if row is not None:
                return row.action_type, row.file_path, row.dest_path or ""
        body = subject.split(self.tag, 1)[1] if self.tag in subject else subject
        return parse_backup_message(body)

    async def recover(self, snapshot_id: str, path: str) -> RecoveryResult | OperationError:
        snapshot_id = snapshot_id.strip()
        try:
            subject = await self.vcs.show_subject(self.root, snapshot_id)
        except VCSError as e:
            if e.not_a_repository:
                return OperationError(
                    ErrorKind.VCS_ERROR,
                    "This vault is not a git repository. File operation history is not available.",
                )
            return OperationError(ErrorKind.INVALID_SNAPSHOT, f"Commit {snapshot_id} could not be read: {e}")

        if self.tag not in subject:
            return OperationError(
                ErrorKind.INVALID_SNAPSHOT,
                f"Commit {snapshot_id} is not an {self.tag} commit. "
                "Please use list_recent_file_operations to find valid commits.",
            )

        if self.store.exists(path):
            return OperationError(
                ErrorKind.DESTINATION_CONFLICT,
                f'File "{path}" already exists. Delete or move it first if you want to recover an older version.',
            )

        # parent of the snapshot = state right before the guarded action
        try:
            await self.vcs.checkout_path(self.root, f"{snapshot_id}^", path)
        except VCSError as e:
            if "did not match any file" in f"{e} {e.stderr}":
                return OperationError(
                    ErrorKind.NOT_FOUND,
                    f'File "{path}" was not found in git history at that commit. The file path may be incorrect.',
                )
            return OperationError(ErrorKind.VCS_ERROR, f"Error recovering file: {e}")

        logger.info("Recovered %s from parent of %s", path, snapshot_id[:8])
        return RecoveryResult(recovered_path=path, from_snapshot=snapshot_id)


__all__ = ["DEFAULT_HISTORY_LIMIT", "HistoryRecoveryService", "OperationRecord", "parse_backup_message"]
