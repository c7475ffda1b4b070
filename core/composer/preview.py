"""Preview gate between a candidate change and the document store.

A preview runs through ``INIT -> DIFF_COMPUTED -> AWAITING_DECISION`` and ends
in exactly one of ``ACCEPTED``, ``REJECTED`` or ``FAILED``. The diff is handed
to a ``PreviewSurface`` together with a single-shot ``on_decision`` callback;
the calling coroutine waits on a future until that callback fires. There is no
built-in timeout: callers that need one wrap ``submit`` in ``asyncio.wait_for``,
and the surface is told to ``dismiss`` the abandoned request.
"""

from __future__ import annotations

import asyncio
import difflib
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from core.composer.results import PreviewDecision
from core.filesystem.backend import DocumentStore, FileWriteResult

logger = logging.getLogger(__name__)

_NEWLINE_SPLIT_RE = re.compile(r"(\r\n|\n)")


# ── diff ──


@dataclass
class DiffChange:
    """One run of tokens: unchanged, added or removed."""

    value: str
    count: int
    added: bool = False
    removed: bool = False


def _tokenize(text: str) -> list[str]:
    return [part for part in _NEWLINE_SPLIT_RE.split(text) if part]


def _key(token: str) -> str:
    return "\n" if token in ("\n", "\r\n") else token.strip()


def compute_diff(original: str, candidate: str) -> list[DiffChange]:
    """Line diff that ignores whitespace inside a line but keeps line breaks as tokens.

    Indentation or trailing-space changes compare equal; an added or removed
    blank line still shows up as an added or removed newline token.
    """
    old_tokens = _tokenize(original)
    new_tokens = _tokenize(candidate)
    matcher = difflib.SequenceMatcher(
        None,
        [_key(t) for t in old_tokens],
        [_key(t) for t in new_tokens],
        autojunk=False,
    )

    changes: list[DiffChange] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            changes.append(DiffChange(value="".join(new_tokens[j1:j2]), count=j2 - j1))
            continue
        if i2 > i1:
            changes.append(DiffChange(value="".join(old_tokens[i1:i2]), count=i2 - i1, removed=True))
        if j2 > j1:
            changes.append(DiffChange(value="".join(new_tokens[j1:j2]), count=j2 - j1, added=True))
    return changes


# ── surface ──


@dataclass
class PreviewRequest:
    """What the preview surface receives.

    ``on_decision`` must be called exactly once. ``None`` means the surface was
    closed without a decision and counts as a rejection.
    """

    target_path: str
    diff_lines: list[DiffChange]
    on_decision: Callable[[PreviewDecision | None], None]
    original: str = ""
    candidate: str = ""


class PreviewSurface(ABC):
    """Interactive diff review UI."""

    @abstractmethod
    def show(self, request: PreviewRequest) -> None:
        """Display the diff; call ``request.on_decision`` once the user decides."""
        ...

    def dismiss(self, request: PreviewRequest) -> None:
        """Withdraw a request whose caller stopped waiting."""
        return None


# ── state machine ──


class PreviewState(str, Enum):
    INIT = "init"
    DIFF_COMPUTED = "diff_computed"
    AWAITING_DECISION = "awaiting_decision"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


_TRANSITIONS: dict[PreviewState, set[PreviewState]] = {
    PreviewState.INIT: {PreviewState.DIFF_COMPUTED, PreviewState.FAILED},
    PreviewState.DIFF_COMPUTED: {PreviewState.AWAITING_DECISION, PreviewState.FAILED},
    PreviewState.AWAITING_DECISION: {PreviewState.ACCEPTED, PreviewState.REJECTED, PreviewState.FAILED},
    PreviewState.ACCEPTED: set(),
    PreviewState.REJECTED: set(),
    PreviewState.FAILED: set(),
}

_TERMINAL_BY_DECISION = {
    PreviewDecision.ACCEPTED: PreviewState.ACCEPTED,
    PreviewDecision.REJECTED: PreviewState.REJECTED,
    PreviewDecision.FAILED: PreviewState.FAILED,
}


class PreviewSession:
    """A single preview: one diff, one decision."""

    def __init__(self, target_path: str):
        self.target_path = target_path
        self.state = PreviewState.INIT
        self.request: PreviewRequest | None = None
        self._decided = False
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future[PreviewDecision] = self._loop.create_future()

    def _advance(self, new_state: PreviewState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid preview transition: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def compute(self, original: str, candidate: str) -> PreviewRequest:
        self.request = PreviewRequest(
            target_path=self.target_path,
            diff_lines=compute_diff(original, candidate),
            on_decision=self._on_decision,
            original=original,
            candidate=candidate,
        )
        self._advance(PreviewState.DIFF_COMPUTED)
        return self.request

    def _on_decision(self, decision: PreviewDecision | None) -> None:
        if self._decided:
            logger.warning("Ignoring repeated preview decision for %s: %s", self.target_path, decision)
            return
        self._decided = True
        resolved = PreviewDecision(decision) if decision is not None else PreviewDecision.REJECTED
        self._loop.call_soon_threadsafe(self._resolve, resolved)

    def _resolve(self, decision: PreviewDecision) -> None:
        if not self._future.done():
            self._future.set_result(decision)

    async def wait(self, surface: PreviewSurface) -> PreviewDecision:
        assert self.request is not None, "compute() must run before wait()"
        self._advance(PreviewState.AWAITING_DECISION)
        try:
            surface.show(self.request)
        except Exception:
            logger.exception("Preview surface failed to show %s", self.target_path)
            self._advance(PreviewState.FAILED)
            return PreviewDecision.FAILED

        try:
            decision = await self._future
        except asyncio.CancelledError:
            self._decided = True
            self._advance(PreviewState.REJECTED)
            surface.dismiss(self.request)
            raise

        self._advance(_TERMINAL_BY_DECISION[decision])
        return decision


@dataclass
class PreviewOutcome:
    decision: PreviewDecision
    bypassed: bool = False
    error: str | None = None
    session_state: PreviewState | None = field(default=None, repr=False)


class PreviewCoordinator:
    """Routes a candidate through review (or bypasses it) and persists accepted content."""

    def __init__(
        self,
        store: DocumentStore,
        surface: PreviewSurface | None = None,
        *,
        auto_accept: bool = False,
    ):
        self.store = store
        self.surface = surface
        self.auto_accept = auto_accept

    def should_bypass(self, confirmation: bool = True) -> bool:
        return self.auto_accept or not confirmation or self.surface is None

    async def submit(
        self,
        path: str,
        original: str,
        candidate: str,
        *,
        confirmation: bool = True,
    ) -> PreviewOutcome:
        if self.should_bypass(confirmation):
            result = self._persist(path, candidate)
            if not result.success:
                return PreviewOutcome(PreviewDecision.FAILED, bypassed=True, error=result.error)
            return PreviewOutcome(PreviewDecision.ACCEPTED, bypassed=True)

        session = PreviewSession(path)
        session.compute(original, candidate)
        decision = await session.wait(self.surface)

        if decision is not PreviewDecision.ACCEPTED:
            return PreviewOutcome(decision, session_state=session.state)

        result = self._persist(path, candidate)
        if not result.success:
            logger.error("Accepted change to %s could not be written: %s", path, result.error)
            return PreviewOutcome(PreviewDecision.FAILED, error=result.error, session_state=session.state)
        return PreviewOutcome(PreviewDecision.ACCEPTED, session_state=session.state)

    def _persist(self, path: str, content: str) -> FileWriteResult:
        try:
            if self.store.is_file(path):
                return self.store.write(path, content)
            return self.store.create(path, content)
        except Exception as e:
            return FileWriteResult(success=False, error=str(e))


__all__ = [
    "DiffChange",
    "PreviewCoordinator",
    "PreviewOutcome",
    "PreviewRequest",
    "PreviewSession",
    "PreviewState",
    "PreviewSurface",
    "compute_diff",
]
