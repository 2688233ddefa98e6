"""Checkly API access."""

from .base import AlertChannelAPI
from .client import ChecklyClient

__all__ = ["AlertChannelAPI", "ChecklyClient"]
