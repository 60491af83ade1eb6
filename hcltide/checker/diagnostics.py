from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


SEVERITY_ERROR = "error"


@dataclass(frozen=True, slots=True)
class CheckDiagnostic:
    start_offset: int
    end_offset: int
    severity: str
    message: str
    line: int = 0

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "severity": self.severity,
            "message": self.message,
            "source": "checker",
        }


def line_span(text: str, line: int) -> tuple[int, int]:
    """Character range of 1-based ``line`` in ``text``, newline excluded.

    Line numbers past the end of the text clamp to the last line.
    """
    source = str(text or "")
    target = max(1, int(line))
    start = 0
    for _ in range(target - 1):
        nl = source.find("\n", start)
        if nl < 0:
            break
        start = nl + 1
    end = source.find("\n", start)
    if end < 0:
        end = len(source)
    return start, end


def map_diagnostics(
    snapshot: str,
    pairs: Iterable[tuple[int, str]],
    *,
    max_items: int = 200,
) -> list[CheckDiagnostic]:
    """Anchor ``(line, message)`` pairs to ranges of the checked snapshot."""
    seen: set[tuple[int, str]] = set()
    out: list[CheckDiagnostic] = []
    limit = max(1, int(max_items))
    for line, message in pairs:
        key = (int(line), str(message))
        if key in seen:
            continue
        seen.add(key)
        start, end = line_span(snapshot, key[0])
        out.append(
            CheckDiagnostic(
                start_offset=start,
                end_offset=end,
                severity=SEVERITY_ERROR,
                message=key[1] or "Checker error",
                line=key[0],
            )
        )
        if len(out) >= limit:
            break
    return out


__all__ = ["CheckDiagnostic", "SEVERITY_ERROR", "line_span", "map_diagnostics"]
