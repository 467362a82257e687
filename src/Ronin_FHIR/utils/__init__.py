"""Shared utilities."""

from __future__ import annotations

from .logging import bind_tenant, configure_logging, get_logger, get_tenant, reset_tenant

__all__ = ["bind_tenant", "configure_logging", "get_logger", "get_tenant", "reset_tenant"]
