"""Document store abstraction.

Separates vault I/O (local folder, remote vault) from editing policy
(patching, preview, backups). All paths are vault-relative, using "/".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass
class FileReadResult:
    """Raw file content from the store."""

    content: str
    size: int = 0


@dataclass
class FileWriteResult:
    """Result of a mutating store call (write/create/move/trash)."""

    success: bool
    error: str | None = None


class DocumentStore(ABC):
    """Abstract vault store.

    Implementations:
    - LocalVaultStore: a vault that is a plain folder on disk
    """

    @property
    @abstractmethod
    def root(self) -> Path:
        """Absolute vault root on disk (used as the version-control work tree)."""
        ...

    @abstractmethod
    def read(self, path: str) -> FileReadResult:
        """Read raw file content.

        Raises:
            FileNotFoundError: If no file exists at path
        """
        ...

    @abstractmethod
    def write(self, path: str, content: str) -> FileWriteResult:
        """Overwrite an existing file."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if anything (file or folder) exists at path."""
        ...

    @abstractmethod
    def is_file(self, path: str) -> bool:
        """Check if path is an existing file."""
        ...

    @abstractmethod
    def create(self, path: str, initial_text: str = "") -> FileWriteResult:
        """Create a new file, creating parent folders as needed."""
        ...

    @abstractmethod
    def move(self, source_path: str, dest_path: str) -> FileWriteResult:
        """Move/rename a file and rewrite links that point at it."""
        ...

    @abstractmethod
    def trash(self, path: str) -> FileWriteResult:
        """Soft-delete a file (recoverable outside the composer)."""
        ...
