"""Configuration management for the composer."""

from .schema import ComposerSettings

__all__ = ["ComposerSettings"]
