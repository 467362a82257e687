"""Tenant localization of resource ids and references.

Key Responsibilities:
    - Prefix relative ``Type/id`` references with the tenant mnemonic
    - Assert the referenced type (with the data authority extension) on
      references that do not declare one
    - Prefix the resource's own ``id``

Collaborators:
    - Upstream: :class:`Ronin_FHIR.profiles.base.BaseProfile` after normalization
    - Downstream: :func:`Ronin_FHIR.localization.traversal.transform_tree`

Side Effects:
    - None; returns new containers and leaves the input untouched

Thread Safety:
    - Thread-safe; the localizer holds only immutable configuration
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

import structlog

from Ronin_FHIR.models.constants import DEFAULT_DATA_AUTHORITY, data_authority_extension
from Ronin_FHIR.models.tenant import TenantContext

from .traversal import Path, transform_tree

logger = structlog.get_logger(__name__)

RELATIVE_REFERENCE = re.compile(
    r"^(?P<type>[A-Z][A-Za-z]+)/(?P<id>[A-Za-z0-9\-.]{1,64})(?P<history>/_history/[A-Za-z0-9\-.]{1,64})?$"
)


class Localizer:
    """Rewrite references and ids so they are unique across tenants.

    Args:
        assert_type: Set ``type`` on localized references that lack one.
        data_authority: Code written into the data authority extension.
    """

    def __init__(
        self, *, assert_type: bool = True, data_authority: str = DEFAULT_DATA_AUTHORITY
    ) -> None:
        self.assert_type = assert_type
        self.data_authority = data_authority

    def localize(self, resource: Mapping[str, Any], tenant: TenantContext) -> dict[str, Any]:
        """Return a localized copy of ``resource``.

        Localizing an already localized resource returns an equal resource.
        """

        def visit(node: Mapping[str, Any], path: Path) -> Mapping[str, Any]:
            if isinstance(node.get("reference"), str):
                return self.localize_reference(node, tenant)
            return node

        localized = transform_tree(resource, visit, skip_keys=frozenset({"id", "meta"}))
        localized = dict(localized)
        raw_id = localized.get("id")
        if isinstance(raw_id, str) and raw_id:
            localized["id"] = self.localize_id(raw_id, tenant)
        return localized

    def localize_id(self, value: str, tenant: TenantContext) -> str:
        if tenant.is_prefixed(value):
            return value
        return tenant.prefix(value)

    def localize_reference(
        self, reference: Mapping[str, Any], tenant: TenantContext
    ) -> Mapping[str, Any]:
        """Localize one Reference mapping; unparseable references are returned as-is."""
        literal = reference.get("reference")
        if not isinstance(literal, str):
            return reference
        match = RELATIVE_REFERENCE.match(literal)
        if match is None:
            return reference
        resource_type = match.group("type")
        raw_id = match.group("id")
        history = match.group("history") or ""

        updated = dict(reference)
        if not tenant.is_prefixed(raw_id):
            updated["reference"] = f"{resource_type}/{tenant.prefix(raw_id)}{history}"
        if self.assert_type and not reference.get("type"):
            updated["type"] = resource_type
            existing = reference.get("_type")
            type_element = dict(existing) if isinstance(existing, Mapping) else {}
            extensions = type_element.get("extension")
            type_element["extension"] = [
                *(extensions if isinstance(extensions, list) else []),
                data_authority_extension(self.data_authority).to_fhir(),
            ]
            updated["_type"] = type_element
        if updated == reference:
            return reference
        logger.debug(
            "localization.reference",
            source=literal,
            target=updated["reference"],
            tenant=tenant.mnemonic,
        )
        return updated


def localize(resource: Mapping[str, Any], tenant: TenantContext) -> dict[str, Any]:
    """Localize ``resource`` with a default :class:`Localizer`."""
    return Localizer().localize(resource, tenant)


__all__ = ["RELATIVE_REFERENCE", "Localizer", "localize"]
