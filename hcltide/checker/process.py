"""QProcess wrapper that pipes a buffer through an external checker."""

from __future__ import annotations

from typing import Callable, Protocol

from PySide6.QtCore import QObject, QProcess, Signal


ExitCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]


class CheckerHandle(Protocol):
    def terminate(self) -> None:
        ...

    def dispose(self) -> None:
        ...


class ProcessSpawner(Protocol):
    def __call__(
        self,
        program: str,
        args: list[str],
        stdin_text: str,
        *,
        on_exit: ExitCallback,
        on_error: ErrorCallback,
        cwd: str = "",
    ) -> CheckerHandle:
        ...


class CheckerProcess(QObject):
    """One checker run: feeds stdin, captures merged stdout/stderr."""

    exited = Signal(str)   # combined output
    failed = Signal(str)   # process error text

    def __init__(self, program: str, args: list[str] | None = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._program = str(program or "")
        self._args = [str(item) for item in (args or [])]
        self._output = bytearray()
        self._done = False

        self._proc = QProcess(self)
        self._proc.setProcessChannelMode(QProcess.ProcessChannelMode.MergedChannels)
        self._proc.readyReadStandardOutput.connect(self._on_output_ready)
        self._proc.finished.connect(self._on_process_finished)
        self._proc.errorOccurred.connect(self._on_process_error)

    @property
    def program(self) -> str:
        return self._program

    def is_running(self) -> bool:
        return self._proc.state() != QProcess.ProcessState.NotRunning

    def start(self, stdin_text: str, *, cwd: str = "") -> None:
        self._output.clear()
        self._done = False
        self._proc.setProgram(self._program)
        self._proc.setArguments(self._args)
        if cwd:
            self._proc.setWorkingDirectory(cwd)
        self._proc.start()
        # Writes issued while the process is starting are buffered by QProcess.
        self._proc.write(str(stdin_text or "").encode("utf-8"))
        self._proc.closeWriteChannel()

    def wait(self, msecs: int = 30000) -> bool:
        return bool(self._proc.waitForFinished(int(msecs)))

    def terminate(self) -> None:
        if self._proc.state() == QProcess.ProcessState.NotRunning:
            return
        try:
            self._proc.terminate()
        except RuntimeError:
            pass
        if self._proc.state() != QProcess.ProcessState.NotRunning:
            try:
                self._proc.kill()
            except RuntimeError:
                pass

    def dispose(self) -> None:
        self.deleteLater()

    def _on_output_ready(self) -> None:
        self._output.extend(bytes(self._proc.readAllStandardOutput()))

    def _on_process_finished(self, _exit_code: int, _exit_status: QProcess.ExitStatus) -> None:
        if self._done:
            return
        self._done = True
        self._output.extend(bytes(self._proc.readAllStandardOutput()))
        text = self._output.decode("utf-8", errors="replace")
        self._output.clear()
        self.exited.emit(text)

    def _on_process_error(self, error: QProcess.ProcessError) -> None:
        if error != QProcess.ProcessError.FailedToStart or self._done:
            return
        # No finished() follows a failed start.
        self._done = True
        self._output.clear()
        self.failed.emit(self._proc.errorString())


def spawn_checker_process(
    program: str,
    args: list[str],
    stdin_text: str,
    *,
    on_exit: ExitCallback,
    on_error: ErrorCallback,
    cwd: str = "",
    parent: QObject | None = None,
) -> CheckerProcess:
    proc = CheckerProcess(program, args, parent)
    proc.exited.connect(on_exit)
    proc.failed.connect(on_error)
    proc.start(stdin_text, cwd=cwd)
    return proc


__all__ = [
    "CheckerHandle",
    "CheckerProcess",
    "ProcessSpawner",
    "spawn_checker_process",
]
