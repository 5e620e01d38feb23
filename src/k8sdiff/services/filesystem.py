"""Filesystem helpers for k8s-diff."""

import logging
import os
import shutil

from rich.console import Console


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def cleanup_dir(self, path: str):
        if os.path.exists(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except Exception as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)

    def is_missing_or_empty(self, path: str) -> bool:
        if not os.path.isdir(path):
            return True
        return not os.listdir(path)

    def write_text(self, path: str, content: str):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(content)
        self.logger.debug("Wrote %s bytes to %s", len(content), path)
