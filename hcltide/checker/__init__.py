from .checker_manager import CheckRequest, CheckerNotFoundError, CheckerProcessManager
from .diagnostics import CheckDiagnostic, line_span, map_diagnostics
from .output_parser import iter_checker_blocks, parse_checker_output
from .process import CheckerProcess, spawn_checker_process

__all__ = [
    "CheckDiagnostic",
    "CheckRequest",
    "CheckerNotFoundError",
    "CheckerProcess",
    "CheckerProcessManager",
    "iter_checker_blocks",
    "line_span",
    "map_diagnostics",
    "parse_checker_output",
    "spawn_checker_process",
]
