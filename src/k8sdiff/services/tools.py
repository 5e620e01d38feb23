"""Provisioning of the external executables a run depends on."""

import os
import platform
import shutil
import sys
import tempfile
from typing import Optional, Tuple

from packaging.version import InvalidVersion, Version

from k8sdiff.constants import HELM_DOWNLOAD_URL, HELM_VERSION, YAMLDIFF_MODULE, YAMLDIFF_VERSION
from k8sdiff.errors import K8sDiffError
from k8sdiff.errors_catalog import actionable_error
from k8sdiff.models import Tool


def normalize_version(value: str, tool: str) -> str:
    """Returns ``value`` as a ``v``-prefixed release version."""
    try:
        parsed = Version(value.strip())
    except InvalidVersion as exc:
        raise K8sDiffError(actionable_error("invalid_tool_version", tool=tool, version=value)) from exc
    return f"v{parsed}"


def host_platform() -> Tuple[str, str]:
    system = "darwin" if sys.platform == "darwin" else "linux"
    arch = "arm64" if platform.machine().lower() in ("arm64", "aarch64") else "amd64"
    return system, arch


def default_tool_cache_root() -> str:
    runner_cache = os.environ.get("RUNNER_TOOL_CACHE")
    if runner_cache:
        return runner_cache
    return os.path.join(os.path.expanduser("~"), ".cache", "k8s-diff", "tools")


class ToolService:
    """Makes sure helm and yamldiff are available on PATH, installing them on demand."""

    def __init__(
        self,
        command_runner,
        download_service,
        archive_service,
        actions_service,
        logger,
        console,
        helm_version: str = HELM_VERSION,
        yamldiff_version: str = YAMLDIFF_VERSION,
        cache_root: Optional[str] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
    ):
        self.command_runner = command_runner
        self.download_service = download_service
        self.archive_service = archive_service
        self.actions_service = actions_service
        self.logger = logger
        self.console = console
        self.helm_version = normalize_version(helm_version, "helm")
        self.yamldiff_version = normalize_version(yamldiff_version, "yamldiff")
        self.cache_root = cache_root or default_tool_cache_root()
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

    def is_tool_installed(self, name: str) -> bool:
        try:
            return shutil.which(name) is not None
        except Exception as exc:
            self.logger.debug("Could not check for %s: %s", name, exc)
            return False

    def ensure_tools(self, tool: Tool):
        if tool is Tool.HELM and not self.is_tool_installed("helm"):
            self.install_helm()

        if not self.is_tool_installed("yamldiff"):
            self.install_yamldiff()

    def _helm_cache_dir(self, arch: str) -> str:
        return os.path.join(self.cache_root, "helm", self.helm_version.lstrip("v"), arch)

    def install_helm(self) -> str:
        """Installs helm into the tool cache and returns the directory added to PATH."""
        system, arch = host_platform()
        cache_dir = self._helm_cache_dir(arch)
        marker = f"{cache_dir}.complete"
        bin_dir = os.path.join(cache_dir, f"{system}-{arch}")

        if os.path.exists(marker) and os.path.isfile(os.path.join(bin_dir, "helm")):
            self.logger.info("Using cached helm %s from %s", self.helm_version, cache_dir)
            self.actions_service.add_path(bin_dir)
            return bin_dir

        self.console.print(f"[blue]Installing helm {self.helm_version}...[/blue]")
        url = HELM_DOWNLOAD_URL.format(version=self.helm_version, platform=system, arch=arch)

        try:
            expected_sha256 = self._helm_checksum(url)
            with tempfile.TemporaryDirectory(prefix="k8sdiff-helm-") as tmp_dir:
                archive_path = os.path.join(tmp_dir, os.path.basename(url))
                self.download_service.download_file(
                    url,
                    archive_path,
                    description=f"Downloading helm {self.helm_version}...",
                    expected_sha256=expected_sha256,
                )
                shutil.rmtree(cache_dir, ignore_errors=True)
                self.archive_service.safe_extract_tar(archive_path, cache_dir)
        except K8sDiffError as exc:
            raise K8sDiffError(
                f"{actionable_error('helm_install_failed', version=self.helm_version, platform=system, arch=arch)}"
                f"\n{exc}"
            ) from exc

        with open(marker, "w", encoding="utf-8") as file_obj:
            file_obj.write("")

        self.actions_service.add_path(bin_dir)
        self.console.print("[green]helm installed.[/green]")
        return bin_dir

    def _helm_checksum(self, url: str) -> str:
        # Published as "<sha256>  <filename>".
        content = self.download_service.fetch_text(f"{url}.sha256sum").strip()
        checksum = content.split()[0].lower() if content else ""
        if len(checksum) != 64:
            raise K8sDiffError(f"Unexpected checksum file content for {url}")
        return checksum

    def install_yamldiff(self) -> Optional[str]:
        """Installs yamldiff with ``go install`` and returns the Go bin dir added to PATH, if any."""
        self.console.print(f"[blue]Installing yamldiff {self.yamldiff_version}...[/blue]")
        try:
            self.command_runner.run(
                ["go", "install", f"{YAMLDIFF_MODULE}@{self.yamldiff_version}"],
                check=True,
                capture_output=True,
                retry_count=self.retry_count,
                retry_backoff_seconds=self.retry_backoff_seconds,
            )
        except K8sDiffError as exc:
            raise K8sDiffError(
                f"{actionable_error('yamldiff_install_failed', version=self.yamldiff_version)}\n{exc}"
            ) from exc

        result = self.command_runner.run(["go", "env", "GOPATH"], check=True, capture_output=True)
        go_path = (result.stdout or "").strip()
        if not go_path:
            return None

        go_bin = os.path.join(go_path, "bin")
        self.actions_service.add_path(go_bin)
        self.logger.info("Added Go binary path to PATH: %s", go_bin)
        return go_bin
