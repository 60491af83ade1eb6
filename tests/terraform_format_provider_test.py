"""Unit tests for the terraform fmt formatting provider."""

import subprocess

from hcltide.formatting import CodeFormattingRegistry, FormatRequest
from hcltide.formatting.providers import (
    TERRAFORM_FORMAT_EXTENSIONS,
    TERRAFORM_FORMAT_LANGUAGE_IDS,
    TerraformFormatProvider,
)

FMT_ERROR = (
    "Error: Invalid character\n"
    "\n"
    "  on <stdin> line 2:\n"
    "   2: b = ?\n"
    "\n"
    "This character is not used within the language.\n"
)


def found(program: str) -> str:
    return f"/usr/bin/{program}"


class FakeRun:
    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[tuple] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


class TestTerraformFormatProvider:
    """Tests for format_document."""

    def test_formatted_text_is_returned(self, monkeypatch, tmp_path) -> None:
        run = FakeRun(stdout="a = 1\n")
        monkeypatch.setattr(subprocess, "run", run)
        target = tmp_path / "main.tf"
        result = TerraformFormatProvider(which=found).format_document(
            FormatRequest(file_path=str(target), source_text="a   =   1\n")
        )
        assert result.ok
        assert result.formatted_text == "a = 1\n"
        cmd, kwargs = run.calls[0]
        assert cmd == ["/usr/bin/terraform", "fmt", "-no-color", "-"]
        assert kwargs["input"] == "a   =   1\n"
        assert kwargs["cwd"] == str(tmp_path)

    def test_failure_carries_diagnostics(self, monkeypatch) -> None:
        monkeypatch.setattr(subprocess, "run", FakeRun(returncode=2, stderr=FMT_ERROR))
        result = TerraformFormatProvider(which=found).format_document(
            FormatRequest(file_path="main.tf", source_text="a = 1\nb = ?\n")
        )
        assert not result.ok
        assert result.message == "This character is not used within the language."
        assert [(d.line, d.start_offset, d.end_offset) for d in result.diagnostics] == [(2, 6, 11)]

    def test_failure_without_diagnostics_uses_stderr(self, monkeypatch) -> None:
        monkeypatch.setattr(subprocess, "run", FakeRun(returncode=1, stderr="boom\n"))
        result = TerraformFormatProvider(which=found).format_document(
            FormatRequest(file_path="main.tf", source_text="a = 1\n")
        )
        assert result.message == "boom"
        assert result.diagnostics == []

    def test_missing_executable(self, monkeypatch) -> None:
        run = FakeRun()
        monkeypatch.setattr(subprocess, "run", run)
        result = TerraformFormatProvider(which=lambda program: None).format_document(
            FormatRequest(file_path="main.tf", source_text="a = 1\n")
        )
        assert result.failed
        assert "terraform" in result.message
        assert run.calls == []

    def test_empty_buffer_is_not_sent(self, monkeypatch) -> None:
        run = FakeRun()
        monkeypatch.setattr(subprocess, "run", run)
        result = TerraformFormatProvider(which=found).format_document(FormatRequest(file_path="main.tf", source_text=""))
        assert result.ok
        assert run.calls == []

    def test_string_command(self) -> None:
        provider = TerraformFormatProvider(command="tofu fmt -")
        assert provider.command == ["tofu", "fmt", "-"]


class TestRegistry:
    """Tests for provider lookup."""

    def test_lookup_by_extension_and_language(self) -> None:
        registry = CodeFormattingRegistry()
        provider = TerraformFormatProvider()
        registry.register_provider(
            provider,
            language_ids=TERRAFORM_FORMAT_LANGUAGE_IDS,
            extensions=TERRAFORM_FORMAT_EXTENSIONS,
        )
        assert registry.provider_for(language_id="", file_path="vars.tfvars") is provider
        assert registry.provider_for(language_id="Terraform") is provider
        assert registry.provider_for(language_id="", file_path="main.py") is None

    def test_extensions_are_normalised(self) -> None:
        registry = CodeFormattingRegistry()
        provider = TerraformFormatProvider()
        registry.register_provider(provider, extensions=["TF"])
        assert registry.provider_for(language_id="", file_path="x.tf") is provider

    def test_later_registration_wins(self) -> None:
        registry = CodeFormattingRegistry()
        first, second = TerraformFormatProvider(), TerraformFormatProvider(command="tofu fmt -")
        registry.register_provider(first, extensions=[".tf"])
        registry.register_provider(second, language_ids=["terraform"], extensions=[".tf"])
        assert registry.provider_for(file_path="main.tf") is second
        assert registry.provider_for(language_id="hcl", file_path="main.tf") is second
