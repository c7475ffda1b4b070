"""Best-effort version-control snapshot before a destructive operation.

A snapshot is a commit of every pending change (empty commits allowed) whose
message is ``BACKUP_TAG`` followed by a description such as
``Before deleting: notes/a.md``. Failing to snapshot never blocks the
delete/move itself; the boolean result only says whether a recovery point exists.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from core.composer.locks import PathLocks, work_tree_key
from core.composer.vcs import VCSError, VersionControl
from storage.contracts import BackupRecordRepo

logger = logging.getLogger(__name__)

BACKUP_TAG = "[Auto-backup]"


class BackupAction(str, Enum):
    DELETE = "delete"
    MOVE = "move"


def delete_description(path: str) -> str:
    return f"Before deleting: {path}"


def move_description(source_path: str, dest_path: str) -> str:
    return f"Before moving: {source_path} -> {dest_path}"


def backup_message(description: str, tag: str = BACKUP_TAG) -> str:
    return f"{tag} {description}"


class BackupGuard:
    """Creates tagged recovery commits ahead of delete/move."""

    def __init__(
        self,
        vcs: VersionControl,
        *,
        tag: str = BACKUP_TAG,
        sidecar: BackupRecordRepo | None = None,
        enabled: bool = True,
        locks: PathLocks | None = None,
    ):
        self.vcs = vcs
        self.tag = tag
        self.sidecar = sidecar
        self.enabled = enabled
        self._locks = locks or PathLocks()

    async def before(
        self,
        action: BackupAction,
        target_root: Path,
        description: str,
        *,
        file_path: str = "",
        dest_path: str | None = None,
    ) -> bool:
        """Snapshot ``target_root``. Returns True only if a recovery commit was created."""
        if not self.enabled:
            logger.info("Auto-backup disabled, skipping commit before %s", action.value)
            return False

        message = backup_message(description, self.tag)
        # stage+commit touches the shared index; one at a time per work tree
        async with self._locks.hold(work_tree_key(target_root)):
            try:
                if not await self.vcs.is_repository(target_root):
                    logger.info("Vault is not a git repository, skipping auto-commit")
                    return False
                await self.vcs.commit_all(target_root, message, allow_empty=True)
            except VCSError as e:
                if e.not_a_repository:
                    logger.info("Vault is not a git repository, skipping auto-commit")
                elif e.nothing_to_commit:
                    logger.info("No changes to commit before action")
                else:
                    logger.error("Git auto-commit failed: %s", e)
                return False
            except Exception:
                logger.exception("Git auto-commit failed")
                return False

            logger.info("Git auto-commit created: %s", message)
            await self._record_sidecar(action, target_root, description, file_path, dest_path)
        return True

    async def before_delete(self, target_root: Path, path: str) -> bool:
        return await self.before(BackupAction.DELETE, target_root, delete_description(path), file_path=path)

    async def before_move(self, target_root: Path, source_path: str, dest_path: str) -> bool:
        return await self.before(
            BackupAction.MOVE,
            target_root,
            move_description(source_path, dest_path),
            file_path=source_path,
            dest_path=dest_path,
        )

    async def _record_sidecar(
        self,
        action: BackupAction,
        target_root: Path,
        description: str,
        file_path: str,
        dest_path: str | None,
    ) -> None:
        if self.sidecar is None or not file_path:
            return
        try:
            commit_hash = await self.vcs.head(target_root)
            self.sidecar.record(
                commit_hash=commit_hash,
                vault_root=str(Path(target_root).resolve()),
                action_type=action.value,
                file_path=file_path,
                dest_path=dest_path,
                description=description,
            )
        except Exception as e:
            logger.warning("Backup commit created but sidecar record failed: %s", e)


__all__ = [
    "BACKUP_TAG",
    "BackupAction",
    "BackupGuard",
    "backup_message",
    "delete_description",
    "move_description",
]
