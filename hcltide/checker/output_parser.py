"""Extraction of diagnostic blocks from `terraform fmt` style output."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator


STDIN_SOURCE_NAME = "<stdin>"

# Newer releases frame each diagnostic with box-drawing gutters even with -no-color.
_GUTTER_RE = re.compile(r"^[ \t]*[╷╵][ \t]*$|^[ \t]*│ ?", re.MULTILINE)

_BLOCK_TEMPLATE = (
    r"^Error: (?P<summary>[^\n]*)\n"
    r"[ \t]*\n"
    r"[ \t]*on {source} line (?P<line>\d+)(?:, in (?P<where>[^\n]*))?:[ \t]*\n"
    r"(?P<context>(?:[ \t]+\S[^\n]*\n)*)"
    r"(?:[ \t]*\n)*"
    r"(?P<body>(?!Error: )[^\n]*\S[^\n]*(?:\n(?!Error: )[^\n]*\S[^\n]*)*)"
)

_BLOCK_CACHE: dict[str, re.Pattern[str]] = {}


@dataclass(frozen=True, slots=True)
class CheckerBlock:
    line: int
    message: str
    summary: str = ""
    where: str = ""


def block_pattern(source_name: str = STDIN_SOURCE_NAME) -> re.Pattern[str]:
    pattern = _BLOCK_CACHE.get(source_name)
    if pattern is None:
        pattern = re.compile(_BLOCK_TEMPLATE.format(source=re.escape(source_name)), re.MULTILINE)
        _BLOCK_CACHE[source_name] = pattern
    return pattern


def strip_gutters(output: str) -> str:
    return _GUTTER_RE.sub("", str(output or "").replace("\r\n", "\n"))


def iter_checker_blocks(output: str, *, source_name: str = STDIN_SOURCE_NAME) -> Iterator[CheckerBlock]:
    """Yield every diagnostic block of ``output`` in order of appearance."""
    text = strip_gutters(output)
    for match in block_pattern(source_name).finditer(text):
        lines = [raw.strip() for raw in match.group("body").splitlines()]
        message = " ".join(line for line in lines if line)
        yield CheckerBlock(
            line=int(match.group("line")),
            message=message,
            summary=match.group("summary").strip(),
            where=(match.group("where") or "").strip(),
        )


def parse_checker_output(output: str, *, source_name: str = STDIN_SOURCE_NAME) -> Iterator[tuple[int, str]]:
    """Lazily yield ``(line, message)`` pairs; line numbers are 1-based."""
    for block in iter_checker_blocks(output, source_name=source_name):
        yield block.line, block.message


__all__ = [
    "CheckerBlock",
    "STDIN_SOURCE_NAME",
    "block_pattern",
    "iter_checker_blocks",
    "parse_checker_output",
    "strip_gutters",
]
