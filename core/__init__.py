"""Core agent middleware."""

from core.composer import ComposerMiddleware

__all__ = ["ComposerMiddleware"]
