"""Configuration loader for k8s-diff."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from k8sdiff.errors import K8sDiffError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "tool",
        "command",
        "base_ref",
        "head_ref",
        "working_dir",
        "head_working_dir",
        "prepare_commands",
        "verbose",
        "log_file",
        "helm_version",
        "yamldiff_version",
        "retry_count",
        "retry_backoff_seconds",
        "download_timeout",
        "workspace_root",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise K8sDiffError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise K8sDiffError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise K8sDiffError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise K8sDiffError(f"Unknown configuration keys: {unknown_list}")

        prepare_commands = parsed.get("prepare_commands")
        if prepare_commands is not None and not isinstance(prepare_commands, (str, list)):
            raise K8sDiffError("`prepare_commands` must be a string or a list of commands.")

        for key in ("helm_version", "yamldiff_version"):
            value = parsed.get(key)
            if value is not None and not isinstance(value, str):
                raise K8sDiffError(f"`{key}` must be a quoted string, e.g. '{key}: \"v1.2.3\"'.")

        return parsed
