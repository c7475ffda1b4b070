"""Composer - safe, reviewable note mutations for an agent.

Components:
- blocks / patch: SEARCH/REPLACE parsing and application
- line_endings: LF/CRLF detection, normalization and restoration
- preview: diff review gate with a single-shot decision
- backup / history: git recovery points before delete/move, and undo
"""

from core.composer.backup import BACKUP_TAG, BackupGuard
from core.composer.blocks import EditBlock, parse_search_replace_blocks
from core.composer.git import GitVersionControl
from core.composer.history import HistoryRecoveryService, OperationRecord
from core.composer.middleware import ComposerMiddleware
from core.composer.patch import PatchEngine, PatchSuccess
from core.composer.preview import PreviewCoordinator, PreviewRequest, PreviewSurface, compute_diff
from core.composer.results import ErrorKind, OperationError, PreviewDecision

__all__ = [
    "BACKUP_TAG",
    "BackupGuard",
    "ComposerMiddleware",
    "EditBlock",
    "ErrorKind",
    "GitVersionControl",
    "HistoryRecoveryService",
    "OperationError",
    "OperationRecord",
    "PatchEngine",
    "PatchSuccess",
    "PreviewCoordinator",
    "PreviewDecision",
    "PreviewRequest",
    "PreviewSurface",
    "compute_diff",
    "parse_search_replace_blocks",
]
