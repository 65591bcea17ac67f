"""
Base export format interface and registry.

Each format strategy turns a Document into text. The registry resolves
formats by name (--format) or by output file extension (--output).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..config import ExportConfig
from ..dom import Document


class ExportFormat(ABC):
    """Base class for document serializers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Format name used on the command line."""
        ...

    @property
    @abstractmethod
    def extensions(self) -> list[str]:
        """Output file extensions this format owns (e.g., ['.mmd'])."""
        ...

    @property
    def fence_language(self) -> str | None:
        """Markdown code fence language, or None if the output is never fenced."""
        return None

    @abstractmethod
    def render(self, doc: Document, config: ExportConfig | None = None) -> str:
        """Serialize the document. Must be deterministic for identical trees."""
        ...


def wrap_code_fence(text: str, language: str = "mermaid") -> str:
    """Wrap text in a Markdown fenced code block."""
    body = text if isinstance(text, str) else ""
    return f"```{language}\n{body}\n```"


class FormatRegistry:
    """Registry of export formats with lookup by name and extension."""

    def __init__(self):
        self._formats: list[ExportFormat] = []
        self._by_extension: dict[str, ExportFormat] = {}
        self._by_name: dict[str, ExportFormat] = {}

    def register(self, fmt: ExportFormat) -> None:
        """Register an export format."""
        self._formats.append(fmt)
        self._by_name[fmt.name] = fmt
        for ext in fmt.extensions:
            # First registered wins for extension conflicts
            if ext not in self._by_extension:
                self._by_extension[ext] = fmt

    def get_by_name(self, name: str) -> ExportFormat | None:
        return self._by_name.get(name)

    def get_by_extension(self, ext: str) -> ExportFormat | None:
        """Get format by file extension."""
        if not ext.startswith('.'):
            ext = '.' + ext
        return self._by_extension.get(ext.lower())

    def for_filename(self, filename: str) -> ExportFormat | None:
        if '.' not in filename:
            return None
        return self.get_by_extension(filename.rsplit('.', 1)[-1])

    @property
    def names(self) -> list[str]:
        return [fmt.name for fmt in self._formats]


# Global registry instance
registry = FormatRegistry()
