"""Data models for Mesh Commander."""

from __future__ import annotations

import enum


class Operation(enum.Enum):
    INSTALL = "install"
    UPGRADE = "upgrade"
    UNINSTALL = "uninstall"
    VERSION = "version"
    RESET_PROXY = "reset-proxy"
    DELETE_NAMESPACE = "delete-namespace"
    PATCH_WEBHOOK = "patch-webhook"
