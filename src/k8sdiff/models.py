"""Shared domain models for k8s-diff."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Tool(str, Enum):
    """Manifest generation strategy."""

    YAML = "yaml"
    HELM = "helm"
    KUSTOMIZE = "kustomize"

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


@dataclass(frozen=True)
class RunConfig:
    """Effective settings for one run, resolved once at start."""

    tool: Tool
    command: str
    prepare_commands: Tuple[str, ...]
    base_ref: str
    head_ref: str
    working_dir: str
    head_working_dir: str
    current_commit: Optional[str] = None


@dataclass(frozen=True)
class ResolvedRevision:
    ref: str
    commit_id: str
    tree_path: str
    reused_worktree: bool = False


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of an external process."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class ManifestResult:
    content: str
    stderr: str
    has_error: bool

    @classmethod
    def empty(cls) -> "ManifestResult":
        return cls(content="", stderr="", has_error=False)


@dataclass(frozen=True)
class RunReport:
    diff_output: str
    combined_stderr: str
    has_error: bool
