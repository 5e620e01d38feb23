import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILENAME, HELM_VERSION, YAMLDIFF_VERSION
from .core import K8sDiff, K8sDiffError
from .models import Tool
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--tool",
    required=False,
    type=click.Choice(Tool.names()),
    envvar="INPUT_TOOL",
    help="Manifest generation strategy (default: yaml).",
)
@click.option(
    "--command",
    required=False,
    envvar="INPUT_COMMAND",
    help="Render command override, e.g. 'helm template my-release .'.",
)
@click.option(
    "--base-ref",
    required=False,
    envvar="INPUT_BASE-REF",
    help="Base git ref (default: the repository default branch, else 'main').",
)
@click.option(
    "--head-ref",
    required=False,
    envvar="INPUT_HEAD-REF",
    help="Head git ref (default: $GITHUB_SHA, else the current commit).",
)
@click.option(
    "--working-dir",
    required=False,
    envvar="INPUT_WORKING-DIR",
    help="Directory with the manifests, relative to the repository root (default: ./).",
)
@click.option(
    "--head-working-dir",
    required=False,
    envvar="INPUT_HEAD-WORKING-DIR",
    help="Working directory for the head ref (default: --working-dir).",
)
@click.option(
    "--prepare-commands",
    required=False,
    envvar="INPUT_PREPARE-COMMANDS",
    help="Newline-separated commands to run before rendering.",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILENAME} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--helm-version",
    required=False,
    help=f"Helm release installed when helm is missing (default: {HELM_VERSION}).",
)
@click.option(
    "--yamldiff-version",
    required=False,
    help=f"yamldiff release installed when yamldiff is missing (default: {YAMLDIFF_VERSION}).",
)
@click.option(
    "--retry-count",
    required=False,
    type=int,
    default=None,
    help="Number of retries for tool downloads and installs.",
)
@click.option(
    "--retry-backoff-seconds",
    required=False,
    type=float,
    default=None,
    help="Backoff time in seconds between retries.",
)
@click.option(
    "--download-timeout",
    required=False,
    type=float,
    default=None,
    help="HTTP download timeout in seconds.",
)
@click.option(
    "--workspace-root",
    required=False,
    type=click.Path(file_okay=False),
    help="Directory for the base/head checkouts and YAML files (default: system temp dir).",
)
def main(
    tool,
    command,
    base_ref,
    head_ref,
    working_dir,
    head_working_dir,
    prepare_commands,
    config,
    verbose,
    log_file,
    helm_version,
    yamldiff_version,
    retry_count,
    retry_backoff_seconds,
    download_timeout,
    workspace_root,
):
    """Diff the Kubernetes manifests rendered from two git refs."""
    logger = logging.getLogger("k8sdiff")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILENAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except K8sDiffError as exc:
        raise click.ClickException(str(exc)) from exc

    tool = _resolve_option(tool, config_values, "tool")
    if tool is not None and tool not in Tool.names():
        raise click.ClickException(
            f"Invalid tool '{tool}' in config. Supported tools: {', '.join(Tool.names())}"
        )

    inputs = {
        "tool": tool,
        "command": _resolve_option(command, config_values, "command"),
        "base-ref": _resolve_option(base_ref, config_values, "base_ref"),
        "head-ref": _resolve_option(head_ref, config_values, "head_ref"),
        "working-dir": _resolve_option(working_dir, config_values, "working_dir"),
        "head-working-dir": _resolve_option(head_working_dir, config_values, "head_working_dir"),
        "prepare-commands": _resolve_option(prepare_commands, config_values, "prepare_commands"),
    }
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    helm_version = str(_resolve_option(helm_version, config_values, "helm_version", default=HELM_VERSION))
    yamldiff_version = str(
        _resolve_option(yamldiff_version, config_values, "yamldiff_version", default=YAMLDIFF_VERSION)
    )
    retry_count = int(_resolve_option(retry_count, config_values, "retry_count", default=1))
    retry_backoff_seconds = float(
        _resolve_option(
            retry_backoff_seconds,
            config_values,
            "retry_backoff_seconds",
            default=2.0,
        )
    )
    download_timeout = float(
        _resolve_option(download_timeout, config_values, "download_timeout", default=60.0)
    )
    workspace_root = _resolve_option(workspace_root, config_values, "workspace_root")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        differ = K8sDiff(
            inputs=inputs,
            helm_version=helm_version,
            yamldiff_version=yamldiff_version,
            retry_count=retry_count,
            retry_backoff_seconds=retry_backoff_seconds,
            download_timeout=download_timeout,
            workspace_root=workspace_root,
        )
    except K8sDiffError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(differ.run())


if __name__ == "__main__":
    main()
