"""Run configuration resolution: explicit inputs, per-tool defaults and git fallbacks."""

from typing import Mapping, Optional, Tuple, Union

from .models import RunConfig, Tool

DEFAULT_WORKING_DIR = "./"


def _as_tool(tool: Union[Tool, str]) -> Optional[Tool]:
    if isinstance(tool, Tool):
        return tool
    try:
        return Tool(tool)
    except ValueError:
        return None


def default_command(tool: Union[Tool, str]) -> str:
    """Render command used when none is given explicitly. Unknown tools get none."""
    member = _as_tool(tool)
    if member is None:
        return ""
    if member is Tool.YAML:
        return ""
    if member is Tool.HELM:
        return "helm template ."
    if member is Tool.KUSTOMIZE:
        return "kustomize build ."
    raise AssertionError(f"No default command for tool: {member}")


def default_prepare_commands(tool: Union[Tool, str]) -> Tuple[str, ...]:
    member = _as_tool(tool)
    if member is None:
        return ()
    if member is Tool.YAML:
        return ()
    if member is Tool.HELM:
        return ("helm dependency update",)
    if member is Tool.KUSTOMIZE:
        return ()
    raise AssertionError(f"No default prepare commands for tool: {member}")


def parse_prepare_commands(value) -> Tuple[str, ...]:
    """Accepts a newline-separated string or a list of commands."""
    if not value:
        return ()
    if isinstance(value, str):
        lines = value.split("\n")
    else:
        lines = [str(item) for item in value]
    return tuple(line.strip() for line in lines if line.strip())


def resolve_run_config(inputs: Mapping[str, Optional[str]], git_service, environ: Mapping[str, str]) -> RunConfig:
    """Builds the effective RunConfig. Every lookup has a terminal fallback, so this never raises.

    ``inputs`` uses the action input names (``tool``, ``command``, ``base-ref``, ``head-ref``,
    ``working-dir``, ``head-working-dir``, ``prepare-commands``); absent or empty values
    fall through to the defaults.
    """
    tool = _as_tool(inputs.get("tool") or Tool.YAML.value) or Tool.YAML
    command = inputs.get("command") or default_command(tool)

    prepare_commands = parse_prepare_commands(inputs.get("prepare-commands"))
    if not prepare_commands:
        prepare_commands = default_prepare_commands(tool)

    base_ref = inputs.get("base-ref") or git_service.default_branch()

    current_commit = git_service.current_commit()
    head_ref = inputs.get("head-ref") or environ.get("GITHUB_SHA") or current_commit or "HEAD"

    working_dir = inputs.get("working-dir") or DEFAULT_WORKING_DIR
    head_working_dir = inputs.get("head-working-dir") or working_dir

    return RunConfig(
        tool=tool,
        command=command,
        prepare_commands=prepare_commands,
        base_ref=base_ref,
        head_ref=head_ref,
        working_dir=working_dir,
        head_working_dir=head_working_dir,
        current_commit=current_commit,
    )
