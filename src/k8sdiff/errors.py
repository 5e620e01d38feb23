"""Domain errors for k8s-diff."""


class K8sDiffError(RuntimeError):
    """Raised when the diff run cannot continue."""
