"""Kubernetes operator that manages Checkly alert channels."""

__version__ = "0.1.0"
