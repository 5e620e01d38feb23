"""Download service with progress reporting, retries and checksum validation."""

import hashlib
import os
import time
from typing import Optional
from urllib.parse import urlparse

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from k8sdiff.errors import K8sDiffError


class DownloadService:
    """Fetches release archives over HTTPS."""

    def __init__(
        self,
        logger,
        console,
        requests_module,
        timeout: float = 60.0,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
    ):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

    def download_file(
        self,
        url: str,
        dest_path: str,
        description: str = "Downloading...",
        expected_sha256: Optional[str] = None,
    ):
        if urlparse(url).scheme.lower() != "https":
            raise K8sDiffError(f"Refusing to download {description} over insecure URL: {url}")

        max_attempts = max(1, self.retry_count + 1)
        for attempt in range(1, max_attempts + 1):
            try:
                self._download_once(url, dest_path, description, expected_sha256)
                return
            except self.requests.RequestException as exc:
                if attempt < max_attempts:
                    self.logger.warning(
                        "Download of %s failed on attempt %s/%s, retrying in %.1fs: %s",
                        description,
                        attempt,
                        max_attempts,
                        self.retry_backoff_seconds,
                        exc,
                    )
                    time.sleep(self.retry_backoff_seconds)
                    continue
                raise K8sDiffError(f"Download failed for {description}: {exc}") from exc

    def _download_once(self, url: str, dest_path: str, description: str, expected_sha256: Optional[str]):
        self.logger.info("Downloading %s to %s", url, dest_path)
        hasher = hashlib.sha256() if expected_sha256 else None

        with self.requests.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("Content-Length", 0))

            os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                "•",
                TimeElapsedColumn(),
                console=self.console,
            ) as progress:
                task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                with open(dest_path, "wb") as file_obj:
                    for chunk in response.iter_content(chunk_size=8192):
                        if not chunk:
                            continue
                        file_obj.write(chunk)
                        if hasher:
                            hasher.update(chunk)
                        progress.update(task, advance=len(chunk))

        if hasher:
            downloaded_sha = hasher.hexdigest()
            if downloaded_sha != expected_sha256:
                try:
                    os.remove(dest_path)
                except OSError:
                    pass
                raise K8sDiffError(
                    f"Checksum mismatch for {description}. Expected {expected_sha256}, "
                    f"but got {downloaded_sha}."
                )

    def fetch_text(self, url: str) -> str:
        try:
            response = self.requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise K8sDiffError(f"Could not fetch {url}: {exc}") from exc
        return response.text
