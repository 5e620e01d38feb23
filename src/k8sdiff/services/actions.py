"""GitHub Actions workflow commands: outputs, PATH additions and annotations."""

import os
import uuid
from typing import MutableMapping, Optional


class ActionsService:
    """Publishes results to the automation host.

    Outside of a workflow run (no ``GITHUB_OUTPUT``/``GITHUB_PATH`` files) outputs are
    printed to the console and PATH changes only affect the current process.
    """

    def __init__(self, logger, console, environ: Optional[MutableMapping[str, str]] = None):
        self.logger = logger
        self.console = console
        self.environ = environ if environ is not None else os.environ

    @property
    def in_actions(self) -> bool:
        return self.environ.get("GITHUB_ACTIONS", "").lower() == "true"

    def _append(self, env_name: str, text: str) -> bool:
        path = self.environ.get(env_name)
        if not path:
            return False
        with open(path, "a", encoding="utf-8") as file_obj:
            file_obj.write(text)
        return True

    def set_output(self, name: str, value: str):
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        written = self._append("GITHUB_OUTPUT", f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        if not written:
            self.console.print(f"{name}={value}", markup=False, highlight=False)
        self.logger.debug("Set output %s (%s chars)", name, len(value))

    def add_path(self, directory: str):
        current = self.environ.get("PATH", "")
        self.environ["PATH"] = f"{directory}{os.pathsep}{current}" if current else directory
        self._append("GITHUB_PATH", f"{directory}\n")
        self.logger.debug("Added %s to PATH", directory)

    def warning(self, message: str):
        if self.in_actions:
            self.logger.debug(message)
            print(f"::warning::{_escape(message)}", flush=True)
        else:
            self.logger.warning(message)

    def error(self, message: str):
        if self.in_actions:
            self.logger.debug(message)
            print(f"::error::{_escape(message)}", flush=True)
        else:
            self.logger.error(message)


def _escape(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
