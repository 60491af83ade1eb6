from __future__ import annotations

import shlex
import shutil
from dataclasses import dataclass, field
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from hcltide.checker.diagnostics import CheckDiagnostic, map_diagnostics
from hcltide.checker.output_parser import STDIN_SOURCE_NAME, parse_checker_output
from hcltide.checker.process import CheckerHandle, ProcessSpawner, spawn_checker_process


CompletionCallback = Callable[[list[CheckDiagnostic]], None]

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_SUPERSEDED = "superseded"
STATE_COMPLETED = "completed"
STATE_DISCARDED = "discarded"

DEFAULT_CHECKER_COMMAND = ["terraform", "fmt", "-no-color", "-"]


class CheckerNotFoundError(RuntimeError):
    """Raised when the configured checker executable cannot be located."""

    def __init__(self, program: str) -> None:
        super().__init__(f"Checker executable not found: {program}")
        self.program = program


@dataclass
class CheckRequest:
    session: str
    generation: int
    snapshot: str
    on_complete: Optional[CompletionCallback] = field(default=None, repr=False)
    state: str = STATE_RUNNING


@dataclass
class _SessionState:
    generation: int = 0
    request: Optional[CheckRequest] = None
    handle: Optional[CheckerHandle] = None

    @property
    def state(self) -> str:
        if self.request is not None and self.request.state == STATE_RUNNING:
            return STATE_RUNNING
        return STATE_IDLE


class CheckerProcessManager(QObject):
    """Runs the external checker, keeping at most one live process per session.

    Every run gets the next generation number of its session. An exit is only
    reported when its generation is still the session's current one; exits of
    superseded runs are dropped after their process handle is released.
    """

    diagnosticsUpdated = Signal(str, object)   # session, diagnostics(list[CheckDiagnostic])
    checkStarted = Signal(str, int)            # session, generation
    checkDiscarded = Signal(str, int)          # session, generation
    statusMessage = Signal(str)

    DEFAULTS = {
        "enabled": True,
        "command": list(DEFAULT_CHECKER_COMMAND),
        "debounce_ms": 600,
        "max_problems": 200,
        "cwd": "",
    }

    def __init__(
        self,
        spawner: ProcessSpawner | None = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        parent=None,
    ):
        super().__init__(parent)
        self._spawner = spawner
        self._which = which
        self._checker_cfg: dict = {}
        self._sessions: dict[str, _SessionState] = {}
        self._retired: dict[tuple[str, int], tuple[CheckRequest, Optional[CheckerHandle]]] = {}
        self._diagnostics_by_session: dict[str, list[CheckDiagnostic]] = {}
        self._debounce_timers: dict[str, QTimer] = {}
        self._pending_requests: dict[str, tuple[str, Optional[CompletionCallback]]] = {}
        self._missing_warned: set[str] = set()

        self.update_settings({})

    # ---------- Public API ----------

    def update_settings(self, checker_cfg: dict):
        before_command = list(self._checker_cfg.get("command", []))

        merged = dict(self.DEFAULTS)
        merged["command"] = list(DEFAULT_CHECKER_COMMAND)
        if isinstance(checker_cfg, dict):
            merged.update(checker_cfg)
        self._checker_cfg = self._normalize_cfg(merged)

        if before_command != self._checker_cfg["command"]:
            self._missing_warned.clear()
        if not self._checker_cfg["enabled"]:
            self._stop_all_timers()

    def settings(self) -> dict:
        return dict(self._checker_cfg)

    def run_check(
        self,
        session: str,
        buffer: str,
        on_complete: Optional[CompletionCallback] = None,
    ) -> CheckRequest:
        """Start a check of ``buffer`` for ``session`` and return immediately.

        Raises :class:`CheckerNotFoundError` before anything is spawned when the
        checker executable cannot be located.
        """
        program, args = self._resolve_command()

        key = str(session)
        state = self._sessions.setdefault(key, _SessionState())
        self._supersede(key, state)

        state.generation += 1
        generation = state.generation
        request = CheckRequest(
            session=key,
            generation=generation,
            snapshot=str(buffer or ""),
            on_complete=on_complete,
        )
        state.request = request

        spawner = self._spawner or self._spawn_default
        try:
            handle = spawner(
                program,
                args,
                request.snapshot,
                on_exit=lambda output, s=key, g=generation: self._on_exit(s, g, output),
                on_error=lambda text, s=key, g=generation: self._on_spawn_error(s, g, text),
                cwd=str(self._checker_cfg.get("cwd") or ""),
            )
        except Exception as exc:
            self._on_spawn_error(key, generation, str(exc) or type(exc).__name__)
            return request
        if request.state == STATE_RUNNING:
            state.handle = handle
            self.checkStarted.emit(key, generation)
        elif handle is not None:
            # Exit was delivered synchronously by the spawner.
            handle.dispose()
        return request

    def request_check(
        self,
        session: str,
        buffer: str,
        on_complete: Optional[CompletionCallback] = None,
        reason: str = "idle",
    ) -> None:
        """Debounced entry point for editor events; ``reason="idle"`` coalesces bursts."""
        if not self._checker_cfg.get("enabled", True):
            return
        key = str(session)
        if reason != "idle":
            self._cancel_timer(key)
            self._pending_requests.pop(key, None)
            self.run_check(key, buffer, on_complete)
            return

        self._resolve_command()
        self._pending_requests[key] = (str(buffer or ""), on_complete)
        timer = self._debounce_timers.get(key)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda s=key: self._flush_debounced_request(s))
            self._debounce_timers[key] = timer
        timer.start(int(self._checker_cfg["debounce_ms"]))

    def state(self, session: str) -> str:
        state = self._sessions.get(str(session))
        return state.state if state is not None else STATE_IDLE

    def is_running(self, session: str) -> bool:
        return self.state(session) == STATE_RUNNING

    def generation(self, session: str) -> int:
        state = self._sessions.get(str(session))
        return state.generation if state is not None else 0

    def cancel(self, session: str):
        key = str(session)
        self._cancel_timer(key)
        self._pending_requests.pop(key, None)
        state = self._sessions.get(key)
        if state is not None:
            self._supersede(key, state)

    def clear_session(self, session: str):
        key = str(session)
        self.cancel(key)
        if self._diagnostics_by_session.pop(key, None) is not None:
            self.diagnosticsUpdated.emit(key, [])

    def diagnostics_snapshot(self) -> dict[str, list[CheckDiagnostic]]:
        return {k: list(v) for k, v in self._diagnostics_by_session.items()}

    def shutdown(self):
        self._stop_all_timers()
        for key in list(self._sessions.keys()):
            self._supersede(key, self._sessions[key])

    # ---------- Process lifecycle ----------

    def _supersede(self, session: str, state: _SessionState):
        request = state.request
        handle = state.handle
        state.request = None
        state.handle = None
        if request is None or request.state != STATE_RUNNING:
            return
        request.state = STATE_SUPERSEDED
        self._retired[(session, request.generation)] = (request, handle)
        if handle is not None:
            handle.terminate()

    def _on_exit(self, session: str, generation: int, output: str):
        state = self._sessions.get(session)
        request = state.request if state is not None else None
        if state is None or request is None or generation != state.generation or request.state != STATE_RUNNING:
            self._release_retired(session, generation)
            return

        handle = state.handle
        state.request = None
        state.handle = None
        request.state = STATE_COMPLETED

        pairs = parse_checker_output(output, source_name=STDIN_SOURCE_NAME)
        diagnostics = map_diagnostics(
            request.snapshot,
            pairs,
            max_items=int(self._checker_cfg["max_problems"]),
        )
        if handle is not None:
            handle.dispose()
        self._deliver(request, diagnostics)

    def _on_spawn_error(self, session: str, generation: int, text: str):
        state = self._sessions.get(session)
        request = state.request if state is not None else None
        if state is None or request is None or generation != state.generation or request.state != STATE_RUNNING:
            self._release_retired(session, generation)
            return

        handle = state.handle
        state.request = None
        state.handle = None
        request.state = STATE_COMPLETED
        self.statusMessage.emit(f"Checker failed to start: {text}")
        if handle is not None:
            handle.dispose()
        self._deliver(request, [])

    def _deliver(self, request: CheckRequest, diagnostics: list[CheckDiagnostic]):
        if diagnostics:
            self._diagnostics_by_session[request.session] = diagnostics
        else:
            self._diagnostics_by_session.pop(request.session, None)
        self.diagnosticsUpdated.emit(request.session, diagnostics)
        callback = request.on_complete
        request.on_complete = None
        if callable(callback):
            callback(diagnostics)

    def _release_retired(self, session: str, generation: int):
        request, handle = self._retired.pop((session, generation), (None, None))
        if request is not None:
            request.state = STATE_DISCARDED
            request.on_complete = None
        if handle is not None:
            handle.dispose()
        self.checkDiscarded.emit(session, generation)

    def _spawn_default(self, program, args, stdin_text, *, on_exit, on_error, cwd=""):
        return spawn_checker_process(
            program,
            args,
            stdin_text,
            on_exit=on_exit,
            on_error=on_error,
            cwd=cwd,
            parent=self,
        )

    # ---------- Helpers ----------

    def _resolve_command(self) -> tuple[str, list[str]]:
        command = list(self._checker_cfg["command"])
        program = command[0]
        resolved = self._which(program)
        if not resolved:
            if program not in self._missing_warned:
                self._missing_warned.add(program)
                self.statusMessage.emit(f"{program} not found; install it or set checker.command.")
            raise CheckerNotFoundError(program)
        return str(resolved), command[1:]

    def _flush_debounced_request(self, session: str):
        pending = self._pending_requests.pop(session, None)
        if pending is None:
            return
        buffer, on_complete = pending
        try:
            self.run_check(session, buffer, on_complete)
        except CheckerNotFoundError:
            # Already surfaced through statusMessage; a timer has no caller to raise to.
            return

    def _cancel_timer(self, session: str):
        timer = self._debounce_timers.pop(session, None)
        if timer is None:
            return
        timer.stop()
        timer.deleteLater()

    def _stop_all_timers(self):
        for key in list(self._debounce_timers.keys()):
            self._cancel_timer(key)
        self._pending_requests.clear()

    def _normalize_cfg(self, cfg: dict) -> dict:
        out = dict(cfg)
        out["enabled"] = bool(out.get("enabled", True))
        out["debounce_ms"] = max(100, min(5000, int(out.get("debounce_ms", 600))))
        out["max_problems"] = max(1, min(5000, int(out.get("max_problems", 200))))
        out["cwd"] = str(out.get("cwd") or "").strip()

        command = out.get("command")
        if isinstance(command, str):
            command = shlex.split(command)
        if isinstance(command, (list, tuple)):
            command = [str(part) for part in command if str(part).strip()]
        if not command:
            command = list(DEFAULT_CHECKER_COMMAND)
        out["command"] = command
        return out


__all__ = [
    "CheckRequest",
    "CheckerNotFoundError",
    "CheckerProcessManager",
    "DEFAULT_CHECKER_COMMAND",
    "STATE_COMPLETED",
    "STATE_DISCARDED",
    "STATE_IDLE",
    "STATE_RUNNING",
    "STATE_SUPERSEDED",
]
