import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication

from hcltide.checker import CheckerNotFoundError, CheckerProcessManager
from hcltide.formatting import CodeFormattingRegistry, FormatRequest
from hcltide.formatting.providers import (
    TERRAFORM_FORMAT_EXTENSIONS,
    TERRAFORM_FORMAT_LANGUAGE_IDS,
    TerraformFormatProvider,
)
from hcltide.services import build_document_outline, group_outline
from hcltide.services.hcl_indent import reindent_text
from hcltide.settings_store import JsonSettingsStore
from hcltide.syntax.hcl_parser import parse_hcl

USAGE = "usage: main.py {indent|outline|check|format} FILE [--project DIR]"


def _split_cli_args(argv: list[str]) -> tuple[list[str], str | None]:
    filtered: list[str] = []
    project_root: str | None = None
    skip_next = False
    for idx, arg in enumerate(argv):
        if skip_next:
            skip_next = False
            continue
        if arg == "--project":
            if idx + 1 < len(argv):
                project_root = argv[idx + 1]
            skip_next = True
            continue
        filtered.append(arg)
    return filtered, project_root


def _load_settings(project_root: str | None) -> JsonSettingsStore:
    store = JsonSettingsStore.for_project(project_root or Path.cwd())
    store.load()
    if store.last_error:
        print(f"settings: {store.last_error}", file=sys.stderr)
    return store


def _run_indent(source: str, store: JsonSettingsStore) -> int:
    sys.stdout.write(reindent_text(source, store.section("indent")))
    return 0


def _run_outline(source: str, store: JsonSettingsStore) -> int:
    include_attributes = bool(store.get("outline.include_attributes", True))
    symbols = build_document_outline(parse_hcl(source), include_attributes=include_attributes)
    for category, items in group_outline(symbols).items():
        print(category)
        for symbol in items:
            print(f"  {symbol.name}  ({symbol.line}:{symbol.column})")
    return 0


def _run_format(path: Path, source: str, store: JsonSettingsStore) -> int:
    registry = CodeFormattingRegistry()
    registry.register_provider(
        TerraformFormatProvider(command=store.get("format.command")),
        language_ids=TERRAFORM_FORMAT_LANGUAGE_IDS,
        extensions=TERRAFORM_FORMAT_EXTENSIONS,
    )
    provider = registry.provider_for(language_id="", file_path=str(path))
    if provider is None:
        print(f"No formatter for {path.name}", file=sys.stderr)
        return 2
    result = provider.format_document(FormatRequest(file_path=str(path), source_text=source))
    if not result.ok:
        print(result.message, file=sys.stderr)
        for diag in result.diagnostics:
            print(f"{path}:{diag.line}: {diag.message}", file=sys.stderr)
        return 1
    sys.stdout.write(result.formatted_text)
    return 0


def _run_check(path: Path, source: str, store: JsonSettingsStore) -> int:
    app = QCoreApplication.instance() or QCoreApplication([sys.argv[0]])
    manager = CheckerProcessManager()
    manager.update_settings(store.section("checker"))
    manager.statusMessage.connect(lambda text: print(text, file=sys.stderr))
    found: list = []
    finished: list[bool] = []

    def _on_complete(diagnostics):
        found.extend(diagnostics)
        finished.append(True)
        app.quit()

    try:
        manager.run_check(str(path), source, _on_complete)
    except CheckerNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if not finished:
        app.exec()
    manager.shutdown()
    for diag in found:
        print(f"{path}:{diag.line}: {diag.severity}: {diag.message}")
    return 1 if found else 0


if __name__ == "__main__":
    cli_args, project_root = _split_cli_args(sys.argv[1:])
    if len(cli_args) != 2 or cli_args[0] not in {"indent", "outline", "check", "format"}:
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    command, file_arg = cli_args
    target = Path(file_arg).expanduser()
    try:
        text = target.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Cannot read {target}: {exc}", file=sys.stderr)
        sys.exit(2)

    settings = _load_settings(project_root)
    if command == "indent":
        sys.exit(_run_indent(text, settings))
    if command == "outline":
        sys.exit(_run_outline(text, settings))
    if command == "format":
        sys.exit(_run_format(target, text, settings))
    sys.exit(_run_check(target, text, settings))
