"""Document store package."""

from core.filesystem.backend import DocumentStore, FileReadResult, FileWriteResult
from core.filesystem.local_backend import LocalVaultStore

__all__ = ["DocumentStore", "FileReadResult", "FileWriteResult", "LocalVaultStore"]
