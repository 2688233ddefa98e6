"""Kubernetes API access."""

from .store import AlertChannelStore, KubernetesAlertChannelStore, load_kube_config

__all__ = ["AlertChannelStore", "KubernetesAlertChannelStore", "load_kube_config"]
