"""Widgets for the composer TUI"""

from .apply_view import ApplyView

__all__ = ["ApplyView"]
