"""Formatter request/result types and lookup of the formatter for a buffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol

from hcltide.checker.diagnostics import CheckDiagnostic


@dataclass(slots=True)
class FormatRequest:
    file_path: str
    source_text: str
    project_root: str = ""


@dataclass(slots=True)
class FormatResult:
    formatted_text: str = ""
    message: str = ""
    failed: bool = False
    diagnostics: list[CheckDiagnostic] = field(default_factory=list)
    debug_lines: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class CodeFormattingProvider(Protocol):
    def format_document(self, request: FormatRequest) -> FormatResult:
        ...


class CodeFormattingRegistry:
    """Finds a formatter by language id first, then by file suffix.

    Providers registered later take precedence over earlier ones.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[frozenset[str], frozenset[str], CodeFormattingProvider]] = []

    def register_provider(
        self,
        provider: CodeFormattingProvider,
        *,
        language_ids: Iterable[str] = (),
        extensions: Iterable[str] = (),
    ) -> None:
        languages = frozenset(key for key in map(_language_key, language_ids) if key)
        suffixes = frozenset(key for key in map(_suffix_key, extensions) if key)
        self._entries.insert(0, (languages, suffixes, provider))

    def provider_for(self, *, language_id: str = "", file_path: str = "") -> CodeFormattingProvider | None:
        language = _language_key(language_id)
        if language:
            for languages, _suffixes, provider in self._entries:
                if language in languages:
                    return provider
        suffix = _suffix_key(Path(file_path).suffix) if file_path else ""
        if suffix:
            for _languages, suffixes, provider in self._entries:
                if suffix in suffixes:
                    return provider
        return None


def _language_key(value: str) -> str:
    return str(value or "").strip().lower()


def _suffix_key(value: str) -> str:
    text = str(value or "").strip().lower()
    if text and not text.startswith("."):
        text = f".{text}"
    return text


__all__ = ["CodeFormattingProvider", "CodeFormattingRegistry", "FormatRequest", "FormatResult"]
