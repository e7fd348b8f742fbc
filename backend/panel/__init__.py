"""Hosting-panel integration: file API client and the remote whitelist bridge."""

from .bridge import RemoteFileBridge
from .client import PanelClient, PanelConfig

__all__ = ["PanelClient", "PanelConfig", "RemoteFileBridge"]
