"""Pinned tool versions and fixed filesystem layout."""

HELM_VERSION = "v3.14.0"
HELM_DOWNLOAD_URL = "https://get.helm.sh/helm-{version}-{platform}-{arch}.tar.gz"

YAMLDIFF_VERSION = "v0.3.0"
YAMLDIFF_MODULE = "github.com/semihbkgr/yamldiff"

BASE_REPO_DIRNAME = "base-ref-repo"
HEAD_REPO_DIRNAME = "head-ref-repo"
BASE_OUTPUT_FILENAME = "base-ref.yaml"
HEAD_OUTPUT_FILENAME = "head-ref.yaml"

DEFAULT_CONFIG_FILENAME = ".k8sdiff.yml"
DEFAULT_BRANCH_FALLBACK = "main"
REMOTE_NAME = "origin"

YAML_SUFFIXES = (".yaml", ".yml")
