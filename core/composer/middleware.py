"""Composer Middleware - safe note editing tools.

Provides write_to_file, replace_in_file, delete_note, move_note,
list_recent_file_operations and undo_file_operation.

Edits go through the preview gate (unless bypassed); deletes and moves are
preceded by a best-effort git backup commit that undo_file_operation can
restore from. All paths are relative to the vault root.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from langchain.agents.middleware import AgentMiddleware, AgentState
from langchain.tools import tool

from config.schema import ComposerSettings
from core.composer.backup import BackupGuard
from core.composer.blocks import GRAMMAR_HINT
from core.composer.git import GitVersionControl
from core.composer.history import HistoryRecoveryService
from core.composer.locks import PathLocks, work_tree_key
from core.composer.patch import PatchEngine, PatchSuccess
from core.composer.preview import PreviewCoordinator, PreviewSurface
from core.composer.results import (
    DestructiveEnvelope,
    EditEnvelope,
    ErrorKind,
    HistoryEnvelope,
    OperationError,
    PreviewDecision,
    RecoveryEnvelope,
)
from core.composer.vcs import VersionControl
from core.filesystem.backend import DocumentStore
from core.filesystem.local_backend import LocalVaultStore
from storage.contracts import BackupRecordRepo
from storage.providers.sqlite.backup_record_repo import SQLiteBackupRecordRepo

logger = logging.getLogger(__name__)

WRITE_TO_FILE_TOOL_NAME = "write_to_file"
REPLACE_IN_FILE_TOOL_NAME = "replace_in_file"
DELETE_NOTE_TOOL_NAME = "delete_note"
MOVE_NOTE_TOOL_NAME = "move_note"
LIST_OPERATIONS_TOOL_NAME = "list_recent_file_operations"
UNDO_OPERATION_TOOL_NAME = "undo_file_operation"

_NO_RETRY = "Do not retry or attempt alternative approaches to modify this file in response to the current user request."
_NO_CALL_AGAIN = "Do not call this tool again to modify this file in response to the current user request."


def coerce_confirmation(value: Any) -> bool:
    """Accept booleans and the strings "true"/"false" (any case, padded)."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f"confirmation must be true or false, got {value!r}")
    if value is None:
        return True
    return bool(value)


def content_to_text(content: str | dict[str, Any] | list[Any]) -> str:
    """Structured content (e.g. canvas JSON) is written as indented JSON."""
    if isinstance(content, str):
        return content
    return json.dumps(content, indent=2, ensure_ascii=False)


class ComposerState(AgentState):
    """State for composer middleware."""

    pass


class ComposerMiddleware(AgentMiddleware[ComposerState]):
    """
    Composer middleware.

    Features:
    - write_to_file / replace_in_file through the preview gate
    - SEARCH/REPLACE blocks with line-ending-aware matching
    - delete_note / move_note guarded by git backup commits
    - list_recent_file_operations / undo_file_operation over backup history
    """

    state_schema = ComposerState

    def __init__(
        self,
        store: DocumentStore,
        *,
        settings: ComposerSettings | None = None,
        vcs: VersionControl | None = None,
        preview_surface: PreviewSurface | None = None,
        sidecar: BackupRecordRepo | None = None,
        verbose: bool = True,
    ) -> None:
        """
        Initialize ComposerMiddleware.

        Args:
            store: Vault document store
            settings: Composer settings (default: built-in defaults)
            vcs: Version-control collaborator (default: git CLI)
            preview_surface: Diff review UI; without one every edit bypasses preview
            sidecar: Structured backup record repository (optional)
            verbose: Whether to output detailed logs
        """
        AgentMiddleware.__init__(self)
        self.store = store
        self.settings = settings or ComposerSettings()
        self.vcs = vcs or GitVersionControl(timeout=self.settings.backup.timeout)
        self.verbose = verbose
        self._locks = PathLocks()

        self.patch_engine = PatchEngine(min_file_size=self.settings.replace_in_file.min_file_size)
        self.preview = PreviewCoordinator(
            store,
            preview_surface,
            auto_accept=not self.settings.review_enabled,
        )
        self.backup_guard = BackupGuard(
            self.vcs,
            tag=self.settings.backup.tag,
            sidecar=sidecar,
            enabled=self.settings.backup.enabled,
            locks=self._locks,
        )
        self.history = HistoryRecoveryService(store, self.vcs, tag=self.settings.backup.tag, sidecar=sidecar)

        if self.verbose:
            surface_name = type(preview_surface).__name__ if preview_surface else "none"
            print(f"[Composer] Initialized with vault: {store.root}")
            print(f"[Composer] Preview surface: {surface_name} (review enabled: {self.settings.review_enabled})")

        @tool(WRITE_TO_FILE_TOOL_NAME)
        async def write_to_file_tool(
            path: str,
            content: str | dict[str, Any],
            confirmation: bool | str = True,
        ) -> str:
            """Write content to a file and show the changes in a preview before applying them.

            Args:
                path: File path relative to the vault root, with an explicit extension such as .md or .canvas.
                    Prefer existing folders or the root folder unless the user asked otherwise.
                content: The COMPLETE intended content of the file, without truncation or omissions.
                    Use a string for text files; an object is written as formatted JSON (e.g. .json, .canvas).
                confirmation: Ask for confirmation with the preview before writing (default true).
                    Set to false to apply immediately.
            """
            return (await self._write_to_file(path, content, confirmation)).to_json()

        @tool(REPLACE_IN_FILE_TOOL_NAME)
        async def replace_in_file_tool(path: str, diff: str) -> str:
            """Replace sections of a LARGE existing file using SEARCH/REPLACE blocks.

            Each block MUST use these exact markers:

            ------- SEARCH
            [exact content to find, including all whitespace and indentation]
            =======
            [new content to replace with]
            +++++++ REPLACE

            Use this for small, targeted edits; use write_to_file for new files, small files and major rewrites.
            For multiple changes include multiple blocks in order. Every occurrence of the search text is
            replaced, so keep SEARCH content specific and only as long as needed.

            Args:
                path: File path relative to the vault root, including the extension.
                diff: One or more SEARCH/REPLACE blocks.
            """
            return (await self._replace_in_file(path, diff)).to_json()

        @tool(DELETE_NOTE_TOOL_NAME)
        async def delete_note_tool(path: str) -> str:
            """Delete a note (move it to the vault trash). Use only when the user explicitly asks.

            A git backup commit is created first when the vault is a git repository.

            Args:
                path: File path relative to the vault root, including the extension.
            """
            return (await self._delete_note(path)).to_json()

        @tool(MOVE_NOTE_TOOL_NAME)
        async def move_note_tool(source_path: str, destination_path: str) -> str:
            """Move or rename a note and update all links pointing to it.

            A git backup commit is created first when the vault is a git repository.

            Args:
                source_path: Current path relative to the vault root, including the extension.
                destination_path: New path relative to the vault root, including the extension.
            """
            return (await self._move_note(source_path, destination_path)).to_json()

        @tool(LIST_OPERATIONS_TOOL_NAME)
        async def list_recent_file_operations_tool(limit: int | None = None) -> str:
            """List recent delete/move operations recorded as backup commits, newest first.

            Use this to find an operation the user wants to undo.

            Args:
                limit: Maximum number of operations to show (default: 10)
            """
            return (await self._list_recent_file_operations(limit)).to_json()

        @tool(UNDO_OPERATION_TOOL_NAME)
        async def undo_file_operation_tool(commit_hash: str, file_path: str) -> str:
            """Recover a file as it was BEFORE a delete/move, from git history.

            Call list_recent_file_operations first to find the commit hash and path.

            Args:
                commit_hash: Hash of the backup commit
                file_path: Path to recover (the original path before the operation)
            """
            return (await self._undo_file_operation(commit_hash, file_path)).to_json()

        all_tools = {
            WRITE_TO_FILE_TOOL_NAME: write_to_file_tool,
            REPLACE_IN_FILE_TOOL_NAME: replace_in_file_tool,
            DELETE_NOTE_TOOL_NAME: delete_note_tool,
            MOVE_NOTE_TOOL_NAME: move_note_tool,
            LIST_OPERATIONS_TOOL_NAME: list_recent_file_operations_tool,
            UNDO_OPERATION_TOOL_NAME: undo_file_operation_tool,
        }
        enabled = self.settings.tools.enabled_map()
        self.tools = [t for name, t in all_tools.items() if enabled.get(name, True)]

    @classmethod
    def from_settings(
        cls,
        settings: ComposerSettings,
        *,
        preview_surface: PreviewSurface | None = None,
        verbose: bool = True,
    ) -> ComposerMiddleware:
        """Build a middleware over a local vault folder from settings."""
        if not settings.vault_root:
            raise ValueError("settings.vault_root is required")
        sidecar = None
        if settings.history.sidecar_enabled:
            sidecar = SQLiteBackupRecordRepo(settings.history.sidecar_db_path)
        return cls(
            LocalVaultStore(settings.vault_root),
            settings=settings,
            preview_surface=preview_surface,
            sidecar=sidecar,
            verbose=verbose,
        )

    @property
    def vault_root(self) -> Path:
        return self.store.root

    # ── edits ──

    async def _write_to_file(self, path: str, content: Any, confirmation: Any = True) -> EditEnvelope:
        try:
            confirm = coerce_confirmation(confirmation)
        except ValueError as e:
            return EditEnvelope(result=PreviewDecision.FAILED, message=str(e), error=ErrorKind.WRITE_FAILED)
        text = content_to_text(content)

        async with self._locks.hold(path):
            if self.store.exists(path) and not self.store.is_file(path):
                return EditEnvelope(
                    result=PreviewDecision.FAILED,
                    message=f'Path "{path}" exists but is not a file',
                    error=ErrorKind.NOT_FOUND,
                )
            try:
                original = self.store.read(path).content if self.store.is_file(path) else ""
            except Exception as e:
                return EditEnvelope(
                    result=PreviewDecision.FAILED,
                    message=f'Failed to read file "{path}": {e}',
                    error=ErrorKind.WRITE_FAILED,
                )

            outcome = await self.preview.submit(path, original, text, confirmation=confirm)

        if outcome.bypassed:
            if outcome.decision is PreviewDecision.ACCEPTED:
                return EditEnvelope(
                    result=outcome.decision,
                    message=f"File changes applied without preview. {_NO_RETRY}",
                )
            return EditEnvelope(
                result=outcome.decision,
                message=f"Error writing to file without preview: {outcome.error}",
                error=ErrorKind.WRITE_FAILED,
            )

        return EditEnvelope(
            result=outcome.decision,
            message=f"File change result: {outcome.decision.value}. {_NO_RETRY}",
            error=ErrorKind.WRITE_FAILED if outcome.error else None,
        )

    async def _replace_in_file(self, path: str, diff: str) -> EditEnvelope:
        if not self.store.is_file(path):
            return EditEnvelope(
                result=PreviewDecision.FAILED,
                message=f"File not found at path: {path}. Please check the file path and try again.",
                error=ErrorKind.NOT_FOUND,
            )

        try:
            async with self._locks.hold(path):
                original = self.store.read(path).content
                patched = self.patch_engine.apply_diff(original, diff)
                if isinstance(patched, OperationError):
                    return EditEnvelope.from_error(patched, self._patch_error_message(path, diff, patched))

                outcome = await self.preview.submit(path, original, patched.final_content)
        except Exception as e:
            logger.exception("SEARCH/REPLACE on %s failed", path)
            return EditEnvelope(
                result=PreviewDecision.FAILED,
                message=(
                    f"Error performing SEARCH/REPLACE on {path}: {e}. "
                    "Please check the file path and diff format and try again."
                ),
                error=ErrorKind.WRITE_FAILED,
            )

        return self._replace_envelope(patched, outcome.decision, outcome.bypassed, outcome.error)

    @staticmethod
    def _patch_error_message(path: str, diff: str, err: OperationError) -> str:
        if err.kind is ErrorKind.SIZE_GATE:
            return f"File is too small to use this tool. Please use {WRITE_TO_FILE_TOOL_NAME} instead."
        if err.kind is ErrorKind.INVALID_INSTRUCTION:
            return f"No valid SEARCH/REPLACE blocks found in diff. {GRAMMAR_HINT}\n diff: {diff}"
        if err.kind is ErrorKind.NO_MATCH:
            return f'Search text not found in file {path} : "{err.detail}".'
        if err.kind is ErrorKind.NO_OP:
            return (
                f"No changes made to {path}. The search text was not found or replacement "
                f"resulted in identical content. Call {WRITE_TO_FILE_TOOL_NAME} instead"
            )
        return err.detail

    @staticmethod
    def _replace_envelope(
        patched: PatchSuccess,
        decision: PreviewDecision,
        bypassed: bool,
        error: str | None,
    ) -> EditEnvelope:
        applied = patched.blocks_applied
        if bypassed and decision is PreviewDecision.ACCEPTED:
            message = f"Applied {applied} SEARCH/REPLACE block(s) without preview. {_NO_CALL_AGAIN}"
        elif bypassed:
            message = f"Error applying changes without preview: {error}"
        else:
            message = (
                f"Applied {applied} SEARCH/REPLACE block(s) (replacing all occurrences). "
                f"Result: {decision.value}. {_NO_CALL_AGAIN}"
            )
        return EditEnvelope(
            result=decision,
            message=message,
            blocks_applied=applied,
            error=ErrorKind.WRITE_FAILED if error else None,
        )

    # ── destructive operations ──

    async def _delete_note(self, path: str) -> DestructiveEnvelope:
        if not self.store.is_file(path):
            return DestructiveEnvelope(
                success=False,
                message=f"File not found at path: {path}. Please check the file path and try again.",
                error=ErrorKind.NOT_FOUND,
            )

        async with self._locks.hold(path):
            backup_created = await self.backup_guard.before_delete(self.vault_root, path)
            result = self.store.trash(path)

        if not result.success:
            return DestructiveEnvelope(
                success=False,
                message=f"Error deleting file: {result.error}",
                backup_created=backup_created,
                error=ErrorKind.WRITE_FAILED,
            )

        backup_note = " A git backup was created before deletion." if backup_created else ""
        return DestructiveEnvelope(
            success=True,
            backup_created=backup_created,
            message=(
                f'File "{path}" has been moved to trash.{backup_note} '
                "You can restore it from the vault's .trash folder or use git to recover."
            ),
        )

    async def _move_note(self, source_path: str, destination_path: str) -> DestructiveEnvelope:
        if not self.store.is_file(source_path):
            return DestructiveEnvelope(
                success=False,
                message=f"Source file not found at path: {source_path}. Please check the file path and try again.",
                error=ErrorKind.NOT_FOUND,
            )

        async with self._locks.hold(source_path, destination_path):
            if self.store.exists(destination_path):
                return DestructiveEnvelope(
                    success=False,
                    message=(
                        f'Destination path "{destination_path}" already exists. '
                        "Please choose a different destination."
                    ),
                    error=ErrorKind.DESTINATION_CONFLICT,
                )

            backup_created = await self.backup_guard.before_move(self.vault_root, source_path, destination_path)
            result = self.store.move(source_path, destination_path)

        if not result.success:
            return DestructiveEnvelope(
                success=False,
                message=f"Error moving file: {result.error}",
                backup_created=backup_created,
                error=ErrorKind.WRITE_FAILED,
            )

        backup_note = " A git backup was created before the move." if backup_created else ""
        return DestructiveEnvelope(
            success=True,
            backup_created=backup_created,
            old_path=source_path,
            new_path=destination_path,
            message=(
                f'File moved from "{source_path}" to "{destination_path}". '
                f"All internal links have been updated.{backup_note}"
            ),
        )

    # ── history ──

    async def _list_recent_file_operations(self, limit: int | None = None) -> HistoryEnvelope:
        limit = limit or self.settings.history.default_limit
        records = await self.history.list(limit)
        if isinstance(records, OperationError):
            return HistoryEnvelope(success=False, message=records.detail, error=records.kind)

        if not records:
            return HistoryEnvelope(
                success=True,
                operations=[],
                message=(
                    "No recent file operations found in git history. "
                    "No operations have been recorded yet."
                ),
            )
        return HistoryEnvelope(
            success=True,
            operations=[r.to_dict() for r in records],
            message=(
                f"Found {len(records)} recent file operation(s). "
                f"Use {UNDO_OPERATION_TOOL_NAME} with the commit hash to recover files."
            ),
        )

    async def _undo_file_operation(self, commit_hash: str, file_path: str) -> RecoveryEnvelope:
        # checkout writes the index, same as a backup commit
        async with self._locks.hold(file_path), self._locks.hold(work_tree_key(self.vault_root)):
            result = await self.history.recover(commit_hash, file_path)

        if isinstance(result, OperationError):
            return RecoveryEnvelope(success=False, message=result.detail, error=result.kind)
        return RecoveryEnvelope(
            success=True,
            recovered_path=result.recovered_path,
            from_snapshot=result.from_snapshot,
            message=(
                f'File "{file_path}" has been recovered from git history. '
                "The file has been restored to its state before the operation. "
                "You may need to refresh the file tree to see it."
            ),
        )


__all__ = ["ComposerMiddleware", "ComposerState", "coerce_confirmation", "content_to_text"]
