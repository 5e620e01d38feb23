"""
k8s-diff - Structural diff of Kubernetes manifests rendered from two git refs
"""

__version__ = "0.1.0"

from .core import K8sDiff, K8sDiffError

__all__ = ["K8sDiff", "K8sDiffError"]
