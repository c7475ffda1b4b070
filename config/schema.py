"""Composer configuration schema using Pydantic.

This module defines the complete configuration structure with:
- Nested config groups (preview, replace_in_file, backup, history, tools)
- Field validators for the vault root and the backup tag
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_BACKUP_TAG = "[Auto-backup]"

# ============================================================================
# Editing
# ============================================================================


class PreviewConfig(BaseModel):
    """Configuration for the diff preview gate."""

    enabled: bool = Field(True, description="Show a preview before writing (False = always bypass)")


class ReplaceInFileConfig(BaseModel):
    """Configuration for replace_in_file."""

    min_file_size: int = Field(
        3000, ge=0, description="Documents shorter than this (characters) must use write_to_file"
    )


# ============================================================================
# Version control
# ============================================================================


class BackupConfig(BaseModel):
    """Configuration for automatic backup commits."""

    enabled: bool = Field(True, description="Commit before delete/move when the vault is a git repo")
    tag: str = Field(DEFAULT_BACKUP_TAG, description="Literal marker prefixed to backup commit messages")
    timeout: float = Field(10.0, gt=0, description="Per git call timeout in seconds")

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Backup tag must not be empty")
        return v


class HistoryConfig(BaseModel):
    """Configuration for history listing and recovery."""

    default_limit: int = Field(10, gt=0, description="Operations listed when no limit is given")
    sidecar_db_path: str | None = Field(None, description="SQLite file for structured backup records")
    sidecar_enabled: bool = Field(True, description="Write/read structured backup records")


# ============================================================================
# Tools
# ============================================================================


class ComposerToolsConfig(BaseModel):
    """Enable/disable individual composer tools."""

    write_to_file: bool = True
    replace_in_file: bool = True
    delete_note: bool = True
    move_note: bool = True
    list_recent_file_operations: bool = True
    undo_file_operation: bool = True

    def enabled_map(self) -> dict[str, bool]:
        return self.model_dump()


# ============================================================================
# Main Settings
# ============================================================================


class ComposerSettings(BaseModel):
    """Main composer configuration.

    Configuration priority (highest to lowest):
    1. Overrides passed by the caller
    2. Project config (<vault>/.composer/composer.json)
    3. User config (~/.composer/composer.json)
    4. System defaults (config/defaults/composer.json)
    """

    vault_root: str | None = Field(None, description="Vault root directory")
    auto_accept_edits: bool = Field(False, description="Apply edits without preview")
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
    replace_in_file: ReplaceInFileConfig = Field(default_factory=ReplaceInFileConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    tools: ComposerToolsConfig = Field(default_factory=ComposerToolsConfig)

    @field_validator("vault_root")
    @classmethod
    def validate_vault_root(cls, v: str | None) -> str | None:
        """Validate vault_root exists."""
        if v is None:
            return v
        path = Path(v).expanduser().resolve()
        if not path.exists():
            raise ValueError(f"Vault root does not exist: {path}")
        if not path.is_dir():
            raise ValueError(f"Vault root is not a directory: {path}")
        return str(path)

    @property
    def review_enabled(self) -> bool:
        return self.preview.enabled and not self.auto_accept_edits
