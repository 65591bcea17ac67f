"""Bounded snapshot stacks for undo/redo."""

from __future__ import annotations

from .dom import Document


def append_history(history: list[Document], snapshot: Document, limit: int) -> list[Document]:
    """Push onto the newest end, dropping the oldest entries beyond limit."""
    if limit <= 0:
        return []
    return [*history, snapshot][-limit:]


def prepend_history(history: list[Document], snapshot: Document, limit: int) -> list[Document]:
    """Push onto the front (newest-first stacks), dropping entries beyond limit."""
    if limit <= 0:
        return []
    return [snapshot, *history][:limit]
