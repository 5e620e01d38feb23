"""Semantic YAML diff through the external yamldiff tool."""

import os

from k8sdiff.models import CommandResult, ManifestResult, RunReport


class DiffService:
    """Persists both manifest streams and compares them with yamldiff."""

    def __init__(self, command_runner, filesystem_service, logger, console, executable: str = "yamldiff"):
        self.command_runner = command_runner
        self.filesystem_service = filesystem_service
        self.logger = logger
        self.console = console
        self.executable = executable

    def write_manifest(self, result: ManifestResult, path: str):
        self.filesystem_service.write_text(path, result.content)

    def run_diff(self, base_file: str, head_file: str) -> CommandResult:
        self.console.print("[blue]Running yamldiff...[/blue]")
        self.logger.info("Running %s %s %s", self.executable, base_file, head_file)
        return self.command_runner.capture(
            [self.executable, base_file, head_file],
            cwd=os.path.dirname(base_file) or None,
        )

    def compute(self, base: ManifestResult, head: ManifestResult, base_file: str, head_file: str) -> CommandResult:
        self.write_manifest(base, base_file)
        self.write_manifest(head, head_file)
        return self.run_diff(base_file, head_file)


def build_report(base: ManifestResult, head: ManifestResult, diff: CommandResult) -> RunReport:
    combined_stderr = ""
    has_error = False

    if base.has_error:
        combined_stderr += f"Base ref error: {base.stderr}\n"
        has_error = True

    if head.has_error:
        combined_stderr += f"Head ref error: {head.stderr}\n"
        has_error = True

    if not diff.ok:
        combined_stderr += f"Yamldiff error: {diff.stderr}\n"
        has_error = True

    return RunReport(diff_output=diff.stdout, combined_stderr=combined_stderr, has_error=has_error)
