"""Closed result types for composer operations.

Every operation returns either its success payload or an ``OperationError``
carrying one ``ErrorKind``. Tool-facing envelopes serialize to JSON so the
calling agent can react deterministically.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    NO_MATCH = "no_match"
    NO_OP = "no_op"
    SIZE_GATE = "size_gate"
    INVALID_INSTRUCTION = "invalid_instruction"
    BACKUP_FAILURE = "backup_failure"
    DESTINATION_CONFLICT = "destination_conflict"
    INVALID_SNAPSHOT = "invalid_snapshot"
    WRITE_FAILED = "write_failed"
    VCS_ERROR = "vcs_error"


class PreviewDecision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationError:
    """Failure variant shared by all operations."""

    kind: ErrorKind
    detail: str


# ── envelopes ──


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class _Envelope:
    @property
    def outcome(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"outcome": self.outcome, **asdict(self)})

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass
class EditEnvelope(_Envelope):
    """write_to_file / replace_in_file outcome."""

    result: PreviewDecision | None
    message: str
    blocks_applied: int | None = None
    error: ErrorKind | None = None

    @property
    def outcome(self) -> str:
        return (self.result or PreviewDecision.FAILED).value

    @classmethod
    def from_error(cls, err: OperationError, message: str | None = None) -> EditEnvelope:
        return cls(result=PreviewDecision.FAILED, message=message or err.detail, error=err.kind)


@dataclass
class _StatusEnvelope(_Envelope):
    """Envelope whose outcome follows a ``success`` flag."""

    @property
    def outcome(self) -> str:
        return "ok" if self.success else "error"


@dataclass
class DestructiveEnvelope(_StatusEnvelope):
    """delete_note / move_note outcome."""

    success: bool
    message: str
    backup_created: bool | None = None
    old_path: str | None = None
    new_path: str | None = None
    error: ErrorKind | None = None


@dataclass
class HistoryEnvelope(_StatusEnvelope):
    """list_recent_file_operations outcome."""

    success: bool
    message: str
    operations: list[dict[str, Any]] | None = None
    error: ErrorKind | None = None


@dataclass
class RecoveryEnvelope(_StatusEnvelope):
    """undo_file_operation outcome."""

    success: bool
    message: str
    recovered_path: str | None = None
    from_snapshot: str | None = None
    error: ErrorKind | None = None


@dataclass
class RecoveryResult:
    recovered_path: str
    from_snapshot: str


__all__ = [
    "DestructiveEnvelope",
    "EditEnvelope",
    "ErrorKind",
    "HistoryEnvelope",
    "OperationError",
    "PreviewDecision",
    "RecoveryEnvelope",
    "RecoveryResult",
]
