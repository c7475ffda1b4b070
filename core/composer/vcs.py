"""Version-control collaborator interface.

Used only as an append-only recovery log: commit everything, read the log
back, and check a single path out of an older commit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class VCSError(Exception):
    """A version-control call failed (non-zero exit, timeout, missing binary)."""

    def __init__(self, message: str, *, stderr: str = "", timed_out: bool = False):
        super().__init__(message)
        self.stderr = stderr
        self.timed_out = timed_out

    @property
    def not_a_repository(self) -> bool:
        return "not a git repository" in f"{self} {self.stderr}".lower()

    @property
    def no_commits(self) -> bool:
        text = f"{self} {self.stderr}".lower()
        return "does not have any commits yet" in text or "bad default revision 'head'" in text

    @property
    def nothing_to_commit(self) -> bool:
        return "nothing to commit" in f"{self} {self.stderr}".lower()


@dataclass(frozen=True)
class LogEntry:
    hash: str
    relative_time: str
    subject: str


class VersionControl(ABC):
    @abstractmethod
    async def is_repository(self, root: Path) -> bool: ...

    @abstractmethod
    async def commit_all(self, root: Path, message: str, *, allow_empty: bool = True) -> None:
        """Stage every pending change and commit. Raises VCSError."""
        ...

    @abstractmethod
    async def head(self, root: Path) -> str:
        """Hash of the current HEAD commit. Raises VCSError."""
        ...

    @abstractmethod
    async def log(self, root: Path, tag_filter: str, limit: int) -> list[LogEntry]:
        """Newest-first commits whose message contains ``tag_filter`` literally."""
        ...

    @abstractmethod
    async def show_subject(self, root: Path, ref: str) -> str: ...

    @abstractmethod
    async def checkout_path(self, root: Path, commit_ref: str, path: str) -> None:
        """Restore ``path`` into the work tree as it was at ``commit_ref``."""
        ...


__all__ = ["LogEntry", "VCSError", "VersionControl"]
