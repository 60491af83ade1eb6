"""HCL / Terraform formatting provider backed by `terraform fmt`."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess

from hcltide.checker.diagnostics import map_diagnostics
from hcltide.checker.output_parser import parse_checker_output
from hcltide.formatting.code_formatting import FormatRequest, FormatResult


TERRAFORM_FORMAT_EXTENSIONS = {".tf", ".tfvars", ".hcl"}
TERRAFORM_FORMAT_LANGUAGE_IDS = {"hcl", "terraform"}
DEFAULT_FORMAT_COMMAND = ["terraform", "fmt", "-no-color", "-"]


class TerraformFormatProvider:
    def __init__(self, *, command: list[str] | str | None = None, which=shutil.which) -> None:
        if isinstance(command, str):
            command = shlex.split(command)
        self._command = [str(part) for part in (command or DEFAULT_FORMAT_COMMAND)]
        self._which = which

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def format_document(self, request: FormatRequest) -> FormatResult:
        source_text = str(request.source_text or "")
        if not source_text:
            return FormatResult(formatted_text=source_text, message="Nothing to format.")

        program = self._command[0]
        resolved = self._which(program)
        debug = [f"[Format] {program}: {resolved or 'not found'}"]
        if not resolved:
            return FormatResult(
                message=f"Terraform formatter not found: {program}",
                failed=True,
                debug_lines=debug,
            )

        cmd = [str(resolved)] + self._command[1:]
        cwd = self._working_dir(request)
        debug.append(f"[Format] cmd: {' '.join(cmd)}")
        try:
            proc = subprocess.run(
                cmd,
                input=source_text,
                text=True,
                capture_output=True,
                cwd=cwd or None,
                check=False,
            )
        except FileNotFoundError:
            return FormatResult(
                message=f"Terraform formatter not found: {program}",
                failed=True,
                debug_lines=debug,
            )
        except OSError as exc:
            return FormatResult(message=str(exc), failed=True, debug_lines=debug)

        stderr = str(proc.stderr or "").strip()
        if stderr:
            debug.append(f"[Format][stderr] {stderr}")
        if proc.returncode != 0:
            combined = f"{proc.stdout or ''}\n{proc.stderr or ''}"
            diagnostics = map_diagnostics(source_text, parse_checker_output(combined))
            message = diagnostics[0].message if diagnostics else (stderr or f"terraform fmt failed (exit {proc.returncode}).")
            return FormatResult(
                message=message,
                failed=True,
                diagnostics=diagnostics,
                debug_lines=debug,
            )
        return FormatResult(formatted_text=str(proc.stdout or ""), debug_lines=debug)

    @staticmethod
    def _working_dir(request: FormatRequest) -> str:
        file_dir = os.path.dirname(str(request.file_path or ""))
        if file_dir and os.path.isdir(file_dir):
            return file_dir
        root = str(request.project_root or "")
        if root and os.path.isdir(root):
            return root
        return ""
