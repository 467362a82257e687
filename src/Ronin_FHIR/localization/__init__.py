"""Tenant localization of references and ids."""

from __future__ import annotations

from .localizer import RELATIVE_REFERENCE, Localizer, localize
from .traversal import iter_mappings, transform_tree

__all__ = ["RELATIVE_REFERENCE", "Localizer", "iter_mappings", "localize", "transform_tree"]
