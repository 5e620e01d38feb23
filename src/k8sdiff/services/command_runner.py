"""Subprocess execution service for k8s-diff."""

import os
import shlex
import subprocess
import time
from typing import Iterable, List, Optional, Sequence, Union

from k8sdiff.errors import K8sDiffError
from k8sdiff.models import CommandResult


def split_command(command: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
        retry_on_returncodes: Optional[Iterable[int]] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        if cwd and not os.path.isdir(cwd):
            raise K8sDiffError(f"Working directory not found: {cwd}")

        effective_timeout = timeout if timeout is not None else self.default_timeout
        max_attempts = max(1, retry_count + 1)
        retry_codes = set(retry_on_returncodes or [])

        for attempt in range(1, max_attempts + 1):
            try:
                result = subprocess.run(
                    cmd,
                    text=True,
                    capture_output=capture_output,
                    cwd=cwd,
                    timeout=effective_timeout,
                )
            except FileNotFoundError as exc:
                raise K8sDiffError(
                    f"Required command not found: {cmd[0]}. Please install it and try again."
                ) from exc
            except subprocess.TimeoutExpired as exc:
                if attempt < max_attempts:
                    self.logger.warning(
                        "Command timed out on attempt %s/%s. Retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        retry_backoff_seconds,
                        cmd_str,
                    )
                    time.sleep(retry_backoff_seconds)
                    continue
                raise K8sDiffError(
                    f"Command timed out after {effective_timeout}s: {cmd_str}"
                ) from exc
            except Exception as exc:
                raise K8sDiffError(f"Failed to execute command: {cmd_str}. {exc}") from exc

            if capture_output and result.stdout:
                self.logger.debug("Command output: %s", result.stdout.strip())

            if result.returncode == 0:
                return result

            stderr = (result.stderr or "").strip() if capture_output else ""
            message = f"Command failed ({result.returncode}): {cmd_str}"
            if stderr:
                message = f"{message}\n{stderr}"

            can_retry = attempt < max_attempts and (
                not retry_codes or result.returncode in retry_codes
            )
            if can_retry:
                self.logger.warning(
                    "Command failed on attempt %s/%s and will be retried in %.1fs.\n%s",
                    attempt,
                    max_attempts,
                    retry_backoff_seconds,
                    message,
                )
                time.sleep(retry_backoff_seconds)
                continue

            if check:
                raise K8sDiffError(message)

            self.logger.debug(message)
            return result

        raise K8sDiffError(f"Command failed after retries: {cmd_str}")

    def capture(self, command: Union[str, Sequence[str]], cwd: Optional[str] = None) -> CommandResult:
        """Runs a command and returns its outcome. Never raises.

        A non-zero exit is reported through ``exit_code``; a failure to start the
        command (unknown executable, bad quoting, missing cwd) becomes a synthetic
        result with the failure message as stderr and exit code 1.
        """
        try:
            cmd = split_command(command)
            if not cmd:
                raise K8sDiffError("Empty command.")
            result = self.run(cmd, check=False, capture_output=True, cwd=cwd)
        except (K8sDiffError, ValueError, OSError) as exc:
            self.logger.debug("Command could not be run: %s", exc)
            return CommandResult(stdout="", stderr=str(exc), exit_code=1)

        return CommandResult(
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            exit_code=result.returncode,
        )
