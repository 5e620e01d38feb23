"""Actionable error catalog for k8s-diff."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "ref_not_found": {
        "what": "Could not resolve git ref `{ref}` (also tried `{remote}/{ref}`).",
        "next": "Fetch the ref before running (e.g. `actions/checkout` with `fetch-depth: 0`).",
    },
    "helm_install_failed": {
        "what": "Could not install helm {version} for {platform}-{arch}.",
        "next": "Install helm on the runner beforehand or check network access to get.helm.sh.",
    },
    "yamldiff_install_failed": {
        "what": "Could not install yamldiff {version} with `go install`.",
        "next": "Make sure Go is available on the runner (e.g. `actions/setup-go`).",
    },
    "unsafe_archive": {
        "what": "Unsafe archive entry detected: `{member}`.",
        "next": "Verify the download source; archive extraction was aborted.",
    },
    "invalid_tool_version": {
        "what": "Invalid {tool} version `{version}`.",
        "next": "Use a release version such as `v3.14.0`.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
