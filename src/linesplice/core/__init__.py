"""Core value types shared by the editing and document layers."""

from .ranges import MAX_COLUMN, LineRange, Position, Range

__all__ = ["MAX_COLUMN", "LineRange", "Position", "Range"]
