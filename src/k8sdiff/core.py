import logging
import os
import tempfile
from typing import Any, Mapping, MutableMapping, Optional

import requests
from rich.console import Console

from .config import resolve_run_config
from .constants import (
    BASE_OUTPUT_FILENAME,
    BASE_REPO_DIRNAME,
    HEAD_OUTPUT_FILENAME,
    HEAD_REPO_DIRNAME,
    HELM_VERSION,
    YAMLDIFF_VERSION,
)
from .errors import K8sDiffError
from .models import ManifestResult, RunConfig, RunReport
from .services.actions import ActionsService
from .services.archive import ArchiveService
from .services.command_runner import CommandRunner
from .services.diff import DiffService, build_report
from .services.download import DownloadService
from .services.filesystem import FileSystemService
from .services.git import GitService
from .services.manifests import ManifestService
from .services.tools import ToolService

console = Console()
logger = logging.getLogger("k8sdiff")


def tree_subdir(tree_path: str, working_dir: str) -> str:
    """Joins ``working_dir`` below ``tree_path``; absolute working dirs stay inside the tree."""
    relative = working_dir.lstrip("/\\")
    return os.path.join(tree_path, relative or ".")


class K8sDiff:
    """Renders manifests for a base and a head ref and diffs them with yamldiff."""

    def __init__(
        self,
        inputs: Optional[Mapping[str, Any]] = None,
        helm_version: str = HELM_VERSION,
        yamldiff_version: str = YAMLDIFF_VERSION,
        retry_count: int = 0,
        retry_backoff_seconds: float = 2.0,
        download_timeout: float = 60.0,
        workspace_root: Optional[str] = None,
        environ: Optional[MutableMapping[str, str]] = None,
    ):
        self.inputs = dict(inputs or {})
        self.environ = environ if environ is not None else os.environ

        self.workspace_root = workspace_root or tempfile.gettempdir()
        self.base_repo_dir = os.path.join(self.workspace_root, BASE_REPO_DIRNAME)
        self.head_repo_dir = os.path.join(self.workspace_root, HEAD_REPO_DIRNAME)
        self.base_file = os.path.join(self.workspace_root, BASE_OUTPUT_FILENAME)
        self.head_file = os.path.join(self.workspace_root, HEAD_OUTPUT_FILENAME)
        self.config: Optional[RunConfig] = None

        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.command_runner = CommandRunner(logger=logger)
        self.actions_service = ActionsService(logger=logger, console=console, environ=self.environ)
        self.download_service = DownloadService(
            logger=logger,
            console=console,
            requests_module=requests,
            timeout=download_timeout,
            retry_count=retry_count,
            retry_backoff_seconds=retry_backoff_seconds,
        )
        self.tool_service = ToolService(
            command_runner=self.command_runner,
            download_service=self.download_service,
            archive_service=ArchiveService(),
            actions_service=self.actions_service,
            logger=logger,
            console=console,
            helm_version=helm_version,
            yamldiff_version=yamldiff_version,
            retry_count=retry_count,
            retry_backoff_seconds=retry_backoff_seconds,
        )
        self.git_service = GitService(
            command_runner=self.command_runner,
            filesystem_service=self.filesystem_service,
            logger=logger,
            console=console,
        )
        self.manifest_service = ManifestService(
            command_runner=self.command_runner,
            logger=logger,
            console=console,
        )
        self.diff_service = DiffService(
            command_runner=self.command_runner,
            filesystem_service=self.filesystem_service,
            logger=logger,
            console=console,
        )

    def resolve_config(self) -> RunConfig:
        return resolve_run_config(self.inputs, self.git_service, self.environ)

    def log_config(self, config: RunConfig):
        logger.info("Tool: %s", config.tool.value)
        logger.info("Command: %s", config.command)
        logger.info("Base ref: %s", config.base_ref)
        logger.info("Head ref: %s", config.head_ref)
        logger.info("Working dir: %s", config.working_dir)
        logger.info("Head working dir: %s", config.head_working_dir)
        if config.prepare_commands:
            logger.info("Prepare commands: %s command(s)", len(config.prepare_commands))

    def provision_tools(self):
        self.tool_service.ensure_tools(self.config.tool)

    def generate_base(self) -> ManifestResult:
        config = self.config
        revision = self.git_service.materialize(config.base_ref, self.base_repo_dir)

        console.print("[blue]Generating base manifests...[/blue]")
        working_dir = tree_subdir(revision.tree_path, config.working_dir)
        # The ref may predate the directory being diffed.
        if self.filesystem_service.is_missing_or_empty(working_dir):
            logger.info("Base ref is empty, assuming empty YAML")
            return ManifestResult.empty()

        return self.manifest_service.generate(
            config.tool,
            config.command,
            working_dir,
            config.prepare_commands,
        )

    def generate_head(self) -> ManifestResult:
        config = self.config
        revision = self.git_service.materialize(
            config.head_ref,
            self.head_repo_dir,
            current_commit=config.current_commit,
        )

        console.print("[blue]Generating head manifests...[/blue]")
        return self.manifest_service.generate(
            config.tool,
            config.command,
            tree_subdir(revision.tree_path, config.head_working_dir),
            config.prepare_commands,
        )

    def compute_report(self, base: ManifestResult, head: ManifestResult) -> RunReport:
        diff = self.diff_service.compute(base, head, self.base_file, self.head_file)
        return build_report(base, head, diff)

    def publish_report(self, report: RunReport):
        self.actions_service.set_output("diff-output", report.diff_output)
        self.actions_service.set_output("stderr", report.combined_stderr)
        self.actions_service.set_output("error", "true" if report.has_error else "false")

        if report.has_error:
            self.actions_service.warning("Some commands failed. Check stderr output for details.")

    def run(self) -> int:
        try:
            logger.info("Starting k8s-diff...")
            self.config = self.resolve_config()
            self.log_config(self.config)

            self.provision_tools()

            base_result = self.generate_base()
            head_result = self.generate_head()

            report = self.compute_report(base_result, head_result)
            self.publish_report(report)

            console.print("[green]K8s diff completed.[/green]")
            logger.info("K8s diff action completed successfully")
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except K8sDiffError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            self.actions_service.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            self.actions_service.error(str(exc))
            return 1
