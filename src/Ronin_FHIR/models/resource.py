"""Helpers for working with resources represented as FHIR JSON mappings."""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any

Resource = dict[str, Any]


def copy_resource(resource: Mapping[str, Any]) -> Resource:
    """Return a deep, mutable copy the caller exclusively owns."""
    return copy.deepcopy(dict(resource))


def resource_type(resource: Mapping[str, Any]) -> str:
    value = resource.get("resourceType")
    return value if isinstance(value, str) else "Resource"


def list_field(resource: Mapping[str, Any], name: str) -> list[Any]:
    """Return a list-valued element, treating absence as an empty list."""
    value = resource.get(name)
    if isinstance(value, list):
        return value
    return []


def append_extensions(
    resource: Mapping[str, Any], extensions: Sequence[Mapping[str, Any] | None]
) -> Resource:
    """Return ``resource`` with ``extensions`` appended after the existing ones."""
    additions = [dict(item) for item in extensions if item]
    updated = dict(resource)
    if additions:
        updated["extension"] = [*list_field(resource, "extension"), *additions]
    return updated


__all__ = ["Resource", "append_extensions", "copy_resource", "list_field", "resource_type"]
