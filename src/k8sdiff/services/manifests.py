"""Manifest generation: plain YAML collection or an external render command."""

import os
from typing import List, Sequence, Union

from k8sdiff.constants import YAML_SUFFIXES
from k8sdiff.models import CommandResult, ManifestResult, Tool


class ManifestService:
    """Produces a single YAML stream for one working directory."""

    def __init__(self, command_runner, logger, console):
        self.command_runner = command_runner
        self.logger = logger
        self.console = console

    def find_yaml_files(self, directory: str) -> List[str]:
        """Lists ``*.yaml``/``*.yml`` files recursively, in directory traversal order."""
        found: List[str] = []
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    found.extend(self.find_yaml_files(entry.path))
                elif entry.is_file(follow_symlinks=False) and entry.name.lower().endswith(YAML_SUFFIXES):
                    found.append(entry.path)
        return found

    def collect_yaml_files(self, directory: str) -> str:
        combined = []
        for file_path in self.find_yaml_files(directory):
            with open(file_path, "r", encoding="utf-8") as file_obj:
                combined.append(f"---\n{file_obj.read()}\n")
        self.logger.debug("Collected %s YAML file(s) from %s", len(combined), directory)
        return "".join(combined)

    def run_prepare_commands(self, commands: Sequence[str], working_dir: str) -> ManifestResult:
        for command in commands:
            self.logger.info("Running prepare command: %s", command)
            result = self.command_runner.capture(command, cwd=working_dir)
            if not result.ok:
                return ManifestResult(
                    content="",
                    stderr=f"Prepare command failed ({command}): {result.stderr}\n",
                    has_error=True,
                )
        return ManifestResult.empty()

    def run_command(self, command: Union[str, Sequence[str]], working_dir: str) -> CommandResult:
        return self.command_runner.capture(command, cwd=working_dir)

    def generate(
        self,
        tool: Tool,
        command: str,
        working_dir: str,
        prepare_commands: Sequence[str] = (),
    ) -> ManifestResult:
        prepared = self.run_prepare_commands(prepare_commands, working_dir)
        if prepared.has_error:
            return prepared

        if tool is Tool.YAML and not command:
            try:
                content = self.collect_yaml_files(working_dir)
            except (OSError, UnicodeDecodeError) as exc:
                return ManifestResult(content="", stderr=str(exc), has_error=True)
            return ManifestResult(content=content, stderr="", has_error=False)

        self.logger.info("Rendering manifests: %s", command)
        result = self.run_command(command, working_dir)
        return ManifestResult(
            content=result.stdout,
            stderr=result.stderr,
            has_error=not result.ok,
        )
