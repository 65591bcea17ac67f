"""
Document persistence.

Stores only move raw values in and out; turning a raw value into a trusted
Document is restore_document's job, so every store gets the same
normalization and legacy migration.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from .dom import Document, normalize_document
from .migration import migrate_legacy_empty_nodes

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Key-value style persistence for the current document."""

    @abstractmethod
    def load(self) -> object | None:
        """Return the stored raw value, or None if nothing was saved yet."""
        ...

    @abstractmethod
    def save(self, data: dict) -> None:
        """Persist a document in wire shape (Document.to_dict())."""
        ...


class JsonFileStore(DocumentStore):
    """One JSON file per document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> object | None:
        if not self.path.exists():
            return None
        with open(self.path, encoding="utf-8") as f:
            text = f.read()
        if not text.strip():
            return None
        return json.loads(text)

    def save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise


class MemoryStore(DocumentStore):
    """In-process store, handy for tests and dry runs."""

    def __init__(self, initial: object | None = None):
        self._data = copy.deepcopy(initial)
        self.save_count = 0

    def load(self) -> object | None:
        return copy.deepcopy(self._data)

    def save(self, data: dict) -> None:
        self._data = copy.deepcopy(data)
        self.save_count += 1


def restore_document(raw: object) -> Document:
    """Normalize an untrusted value and dissolve legacy empty nodes. Raises MalformedDocument."""
    return migrate_legacy_empty_nodes(normalize_document(raw))


def load_document(store: DocumentStore) -> Document | None:
    """Restore the stored document; None if absent or unusable."""
    try:
        raw = store.load()
        if raw is None:
            return None
        return restore_document(raw)
    except (OSError, ValueError) as e:
        logger.warning("Failed to restore document from %s: %s", type(store).__name__, e)
        return None
