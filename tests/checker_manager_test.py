"""Unit tests for the checker process manager, driven by a fake spawner."""

from typing import Any

import pytest

pytest.importorskip("PySide6.QtCore")

from hcltide.checker.checker_manager import (  # noqa: E402
    STATE_COMPLETED,
    STATE_DISCARDED,
    STATE_IDLE,
    STATE_RUNNING,
    STATE_SUPERSEDED,
    CheckerNotFoundError,
    CheckerProcessManager,
)
from tests.conftest import wait_until  # noqa: E402

BUFFER = "".join(f"line{n} = {n}\n" for n in range(1, 10))

OUTPUT_LINE_7 = (
    "Error: Unsupported argument\n"
    "\n"
    "  on <stdin> line 7:\n"
    "   7: line7 = 7\n"
    "\n"
    'An argument named "line7" is not expected here.\n'
)


class FakeHandle:
    def __init__(self) -> None:
        self.terminated = 0
        self.disposed = 0

    def terminate(self) -> None:
        self.terminated += 1

    def dispose(self) -> None:
        self.disposed += 1


class FakeSpawner:
    """Records spawn calls; the test decides when each process exits."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def __call__(self, program, args, stdin_text, *, on_exit, on_error, cwd=""):
        handle = FakeHandle()
        self.calls.append(
            {
                "program": program,
                "args": list(args),
                "stdin": stdin_text,
                "cwd": cwd,
                "on_exit": on_exit,
                "on_error": on_error,
                "handle": handle,
            }
        )
        return handle

    def finish(self, index: int, output: str = "") -> None:
        self.calls[index]["on_exit"](output)

    def fail(self, index: int, text: str = "boom") -> None:
        self.calls[index]["on_error"](text)

    def handle(self, index: int) -> FakeHandle:
        return self.calls[index]["handle"]


class Recorder:
    def __init__(self) -> None:
        self.results: list[list] = []

    def __call__(self, diagnostics) -> None:
        self.results.append(list(diagnostics))


def found(program: str) -> str:
    return f"/usr/bin/{program}"


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def manager(qt_app, spawner):
    mgr = CheckerProcessManager(spawner=spawner, which=found)
    yield mgr
    mgr.shutdown()


class TestRunCheck:
    """Tests for starting a check."""

    def test_spawns_resolved_program_with_fixed_args(self, manager, spawner) -> None:
        request = manager.run_check("main.tf", BUFFER, Recorder())
        call = spawner.calls[0]
        assert call["program"] == "/usr/bin/terraform"
        assert call["args"] == ["fmt", "-no-color", "-"]
        assert call["stdin"] == BUFFER
        assert request.generation == 1
        assert request.state == STATE_RUNNING
        assert manager.is_running("main.tf")

    def test_returns_before_completion(self, manager, spawner) -> None:
        done = Recorder()
        manager.run_check("main.tf", BUFFER, done)
        assert done.results == []

    def test_configured_cwd_is_passed(self, manager, spawner) -> None:
        manager.update_settings({"cwd": " /tmp/project "})
        manager.run_check("main.tf", BUFFER, Recorder())
        assert spawner.calls[0]["cwd"] == "/tmp/project"

    def test_exit_delivers_mapped_diagnostics_once(self, manager, spawner) -> None:
        done = Recorder()
        updates: list = []
        manager.diagnosticsUpdated.connect(lambda session, diags: updates.append((session, diags)))
        request = manager.run_check("main.tf", BUFFER, done)
        spawner.finish(0, OUTPUT_LINE_7)

        assert len(done.results) == 1
        (diag,) = done.results[0]
        assert diag.line == 7
        assert diag.severity == "error"
        assert BUFFER[diag.start_offset:diag.end_offset] == "line7 = 7"
        assert diag.message == 'An argument named "line7" is not expected here.'
        assert updates and updates[-1][0] == "main.tf"
        assert request.state == STATE_COMPLETED
        assert manager.state("main.tf") == STATE_IDLE
        assert spawner.handle(0).disposed == 1

    def test_clean_exit_delivers_empty_list(self, manager, spawner) -> None:
        done = Recorder()
        manager.run_check("main.tf", BUFFER, done)
        spawner.finish(0, "")
        assert done.results == [[]]

    def test_repeated_exit_is_ignored(self, manager, spawner) -> None:
        done = Recorder()
        manager.run_check("main.tf", BUFFER, done)
        spawner.finish(0, OUTPUT_LINE_7)
        spawner.finish(0, OUTPUT_LINE_7)
        assert len(done.results) == 1

    def test_cap_on_reported_problems(self, manager, spawner) -> None:
        manager.update_settings({"max_problems": 1})
        done = Recorder()
        manager.run_check("main.tf", BUFFER, done)
        spawner.finish(0, OUTPUT_LINE_7 + "\n" + OUTPUT_LINE_7.replace("line 7", "line 8"))
        assert [d.line for d in done.results[0]] == [7]


class TestSupersession:
    """Tests for discarding the results of older runs."""

    def test_new_run_terminates_previous(self, manager, spawner) -> None:
        first = manager.run_check("main.tf", BUFFER, Recorder())
        second = manager.run_check("main.tf", BUFFER, Recorder())
        assert spawner.handle(0).terminated == 1
        assert first.state == STATE_SUPERSEDED
        assert second.generation == first.generation + 1
        assert manager.generation("main.tf") == 2

    def test_stale_exit_is_discarded(self, manager, spawner) -> None:
        old, new = Recorder(), Recorder()
        discarded: list = []
        manager.checkDiscarded.connect(lambda session, gen: discarded.append((session, gen)))
        first = manager.run_check("main.tf", BUFFER, old)
        manager.run_check("main.tf", BUFFER, new)

        spawner.finish(0, OUTPUT_LINE_7)
        assert old.results == []
        assert new.results == []
        assert discarded == [("main.tf", 1)]
        assert first.state == STATE_DISCARDED
        assert spawner.handle(0).disposed == 1
        assert manager.is_running("main.tf")

        spawner.finish(1, "")
        assert new.results == [[]]

    def test_late_stale_exit_after_newer_completed(self, manager, spawner) -> None:
        old, new = Recorder(), Recorder()
        manager.run_check("main.tf", BUFFER, old)
        manager.run_check("main.tf", BUFFER, new)
        spawner.finish(1, OUTPUT_LINE_7)
        spawner.finish(0, "")
        assert old.results == []
        assert len(new.results) == 1
        assert manager.diagnostics_snapshot()["main.tf"][0].line == 7

    def test_sessions_are_independent(self, manager, spawner) -> None:
        a, b = Recorder(), Recorder()
        manager.run_check("a.tf", BUFFER, a)
        manager.run_check("b.tf", BUFFER, b)
        assert spawner.handle(0).terminated == 0
        spawner.finish(0, "")
        spawner.finish(1, "")
        assert a.results == [[]]
        assert b.results == [[]]


class TestFailures:
    """Tests for configuration and start-up failures."""

    def test_missing_executable_raises_without_spawning(self, qt_app, spawner) -> None:
        mgr = CheckerProcessManager(spawner=spawner, which=lambda program: None)
        messages: list[str] = []
        mgr.statusMessage.connect(messages.append)
        done = Recorder()

        with pytest.raises(CheckerNotFoundError) as excinfo:
            mgr.run_check("main.tf", BUFFER, done)
        with pytest.raises(CheckerNotFoundError):
            mgr.run_check("main.tf", BUFFER, done)

        assert excinfo.value.program == "terraform"
        assert spawner.calls == []
        assert done.results == []
        assert len(messages) == 1
        assert mgr.generation("main.tf") == 0

    def test_missing_executable_does_not_cancel_running_check(self, qt_app, spawner) -> None:
        available = {"terraform"}
        mgr = CheckerProcessManager(spawner=spawner, which=lambda p: found(p) if p in available else None)
        done = Recorder()
        mgr.run_check("main.tf", BUFFER, done)
        available.clear()
        with pytest.raises(CheckerNotFoundError):
            mgr.run_check("main.tf", BUFFER, Recorder())
        spawner.finish(0, "")
        assert done.results == [[]]

    def test_changing_command_warns_again(self, qt_app, spawner) -> None:
        mgr = CheckerProcessManager(spawner=spawner, which=lambda program: None)
        messages: list[str] = []
        mgr.statusMessage.connect(messages.append)
        with pytest.raises(CheckerNotFoundError):
            mgr.run_check("main.tf", BUFFER)
        mgr.update_settings({"command": ["tofu", "fmt", "-no-color", "-"]})
        with pytest.raises(CheckerNotFoundError):
            mgr.run_check("main.tf", BUFFER)
        assert len(messages) == 2
        assert "tofu" in messages[-1]

    def test_failed_start_delivers_empty_list(self, manager, spawner) -> None:
        messages: list[str] = []
        manager.statusMessage.connect(messages.append)
        done = Recorder()
        manager.run_check("main.tf", BUFFER, done)
        spawner.fail(0, "permission denied")
        assert done.results == [[]]
        assert any("permission denied" in text for text in messages)
        assert manager.state("main.tf") == STATE_IDLE

    def test_raising_spawner_does_not_leave_session_running(self, qt_app) -> None:
        def spawn(program, args, stdin_text, *, on_exit, on_error, cwd=""):
            raise OSError("fork failed")

        mgr = CheckerProcessManager(spawner=spawn, which=found)
        messages: list[str] = []
        mgr.statusMessage.connect(messages.append)
        done = Recorder()
        request = mgr.run_check("main.tf", BUFFER, done)
        assert done.results == [[]]
        assert request.state == STATE_COMPLETED
        assert not mgr.is_running("main.tf")
        assert any("fork failed" in text for text in messages)


class TestSynchronousSpawner:
    """A spawner that reports the exit before returning its handle."""

    def test_exit_during_spawn(self, qt_app) -> None:
        handles: list[FakeHandle] = []

        def spawn(program, args, stdin_text, *, on_exit, on_error, cwd=""):
            handle = FakeHandle()
            handles.append(handle)
            on_exit(OUTPUT_LINE_7)
            return handle

        mgr = CheckerProcessManager(spawner=spawn, which=found)
        done = Recorder()
        request = mgr.run_check("main.tf", BUFFER, done)
        assert [d.line for d in done.results[0]] == [7]
        assert request.state == STATE_COMPLETED
        assert handles[0].disposed == 1
        assert not mgr.is_running("main.tf")


class TestSessionBookkeeping:
    """Tests for cancel, clear and shutdown."""

    def test_cancel_terminates_and_drops_result(self, manager, spawner) -> None:
        done = Recorder()
        manager.run_check("main.tf", BUFFER, done)
        manager.cancel("main.tf")
        assert spawner.handle(0).terminated == 1
        assert manager.state("main.tf") == STATE_IDLE
        spawner.finish(0, OUTPUT_LINE_7)
        assert done.results == []

    def test_clear_session_drops_diagnostics(self, manager, spawner) -> None:
        updates: list = []
        manager.run_check("main.tf", BUFFER, Recorder())
        spawner.finish(0, OUTPUT_LINE_7)
        manager.diagnosticsUpdated.connect(lambda session, diags: updates.append((session, list(diags))))
        manager.clear_session("main.tf")
        assert manager.diagnostics_snapshot() == {}
        assert updates == [("main.tf", [])]

    def test_shutdown_supersedes_everything(self, manager, spawner) -> None:
        done = Recorder()
        manager.run_check("a.tf", BUFFER, done)
        manager.run_check("b.tf", BUFFER, done)
        manager.shutdown()
        assert spawner.handle(0).terminated == 1
        assert spawner.handle(1).terminated == 1
        spawner.finish(0, "")
        spawner.finish(1, "")
        assert done.results == []


class TestRequestCheck:
    """Tests for the debounced entry point."""

    def test_save_runs_immediately(self, manager, spawner) -> None:
        manager.request_check("main.tf", BUFFER, Recorder(), reason="save")
        assert len(spawner.calls) == 1

    def test_idle_requests_are_coalesced(self, qt_app, manager, spawner) -> None:
        manager.update_settings({"debounce_ms": 100})
        done = Recorder()
        manager.request_check("main.tf", "a = 1\n", done)
        manager.request_check("main.tf", "a = 2\n", done)
        assert spawner.calls == []

        assert wait_until(qt_app, lambda: len(spawner.calls) == 1)
        assert spawner.calls[0]["stdin"] == "a = 2\n"
        spawner.finish(0, "")
        assert done.results == [[]]

    def test_save_cancels_pending_idle_request(self, qt_app, manager, spawner) -> None:
        manager.update_settings({"debounce_ms": 100})
        manager.request_check("main.tf", "a = 1\n", Recorder())
        manager.request_check("main.tf", "a = 2\n", Recorder(), reason="save")
        wait_until(qt_app, lambda: len(spawner.calls) > 1, timeout=0.4)
        assert [call["stdin"] for call in spawner.calls] == ["a = 2\n"]

    def test_disabled_checker_ignores_requests(self, manager, spawner) -> None:
        manager.update_settings({"enabled": False})
        manager.request_check("main.tf", BUFFER, Recorder(), reason="save")
        assert spawner.calls == []

    def test_idle_request_raises_when_missing(self, qt_app, spawner) -> None:
        mgr = CheckerProcessManager(spawner=spawner, which=lambda program: None)
        with pytest.raises(CheckerNotFoundError):
            mgr.request_check("main.tf", BUFFER, Recorder())


class TestSettings:
    """Tests for update_settings normalisation."""

    def test_defaults(self, manager) -> None:
        cfg = manager.settings()
        assert cfg["command"] == ["terraform", "fmt", "-no-color", "-"]
        assert cfg["debounce_ms"] == 600
        assert cfg["max_problems"] == 200

    def test_string_command_is_split(self, manager, spawner) -> None:
        manager.update_settings({"command": "tofu fmt '-no-color' -"})
        manager.run_check("main.tf", BUFFER, Recorder())
        assert spawner.calls[0]["program"] == "/usr/bin/tofu"
        assert spawner.calls[0]["args"] == ["fmt", "-no-color", "-"]

    def test_empty_command_falls_back_to_default(self, manager) -> None:
        manager.update_settings({"command": []})
        assert manager.settings()["command"] == ["terraform", "fmt", "-no-color", "-"]

    def test_debounce_is_clamped(self, manager) -> None:
        manager.update_settings({"debounce_ms": 5})
        assert manager.settings()["debounce_ms"] == 100
        manager.update_settings({"debounce_ms": 99999})
        assert manager.settings()["debounce_ms"] == 5000
