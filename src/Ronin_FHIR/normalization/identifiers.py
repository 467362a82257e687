"""Identifier normalization for Ronin resources.

Key Responsibilities:
    - Append the tenant, FHIR id and data authority identifiers
    - Resolve a vendor identifier list to a canonical business identifier
      (for example the MRN) through an injected resolver

Collaborators:
    - Upstream: resource profiles during ``transform_internal``
    - Downstream: :class:`IdentifierResolver` implementations

Side Effects:
    - None; identifiers are only ever appended to a copy

Thread Safety:
    - Thread-safe as long as the injected resolver is read-only
"""

from __future__ import annotations

# ==============================================================================
# IMPORTS
# ==============================================================================
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import structlog

from Ronin_FHIR.models.constants import (
    DATA_AUTHORITY_IDENTIFIER_TYPE,
    DEFAULT_DATA_AUTHORITY,
    FHIR_ID_IDENTIFIER_TYPE,
    MRN_IDENTIFIER_TYPE,
    TENANT_IDENTIFIER_TYPE,
    RoninCodeSystem,
)
from Ronin_FHIR.models.datatypes import Identifier, parse_identifiers
from Ronin_FHIR.models.resource import list_field
from Ronin_FHIR.models.tenant import TenantContext

logger = structlog.get_logger(__name__)

# ==============================================================================
# ERRORS AND PROTOCOLS
# ==============================================================================


class VendorIdentifierNotFound(LookupError):
    """Raised when no identifier in the input qualifies for resolution."""

    def __init__(self, message: str, *, tenant: str | None = None) -> None:
        super().__init__(message)
        self.tenant = tenant


class IdentifierResolver(Protocol):
    """Resolve a tenant's identifiers to the canonical business identifier."""

    def resolve(self, tenant: TenantContext, identifiers: Sequence[Identifier]) -> Identifier:
        """Return the resolved identifier or raise :class:`VendorIdentifierNotFound`."""
        ...


# ==============================================================================
# RESOLVERS
# ==============================================================================


class MrnIdentifierResolver:
    """Pick the tenant's MRN and re-issue it under the Ronin MRN system.

    The tenant's ``mrn_system`` wins over ``default_system``. When neither is
    configured an identifier typed ``MR`` is accepted.
    """

    def __init__(self, default_system: str | None = None) -> None:
        self.default_system = default_system

    def resolve(self, tenant: TenantContext, identifiers: Sequence[Identifier]) -> Identifier:
        system = tenant.mrn_system or self.default_system
        candidates = [item for item in identifiers if item.value]
        if system:
            match = next((item for item in candidates if item.system == system), None)
        else:
            match = next((item for item in candidates if _is_typed_mrn(item)), None)
        if match is None:
            raise VendorIdentifierNotFound(
                f"No MRN identifier found for tenant '{tenant.mnemonic}'", tenant=tenant.mnemonic
            )
        return Identifier(
            use="usual",
            type=MRN_IDENTIFIER_TYPE,
            system=RoninCodeSystem.MRN.value,
            value=match.value,
        )


def _is_typed_mrn(identifier: Identifier) -> bool:
    if identifier.type is None:
        return False
    return any(coding.code == "MR" for coding in identifier.type.coding)


# ==============================================================================
# NORMALIZER
# ==============================================================================


class IdentifierNormalizer:
    """Append Ronin identifiers to a resource copy."""

    def __init__(self, *, data_authority: str = DEFAULT_DATA_AUTHORITY) -> None:
        self.data_authority = data_authority

    def build_ronin_identifiers(
        self, tenant: TenantContext, raw_id: str | None, *, include_data_authority: bool = False
    ) -> list[Identifier]:
        """Return tenant, FHIR id and optionally data authority identifiers, in that order."""
        identifiers = [
            Identifier(
                type=TENANT_IDENTIFIER_TYPE,
                system=RoninCodeSystem.TENANT.value,
                value=tenant.mnemonic,
            ),
            Identifier(
                type=FHIR_ID_IDENTIFIER_TYPE,
                system=RoninCodeSystem.FHIR_ID.value,
                value=raw_id,
            ),
        ]
        if include_data_authority:
            identifiers.append(
                Identifier(
                    type=DATA_AUTHORITY_IDENTIFIER_TYPE,
                    system=RoninCodeSystem.DATA_AUTHORITY_ID.value,
                    value=self.data_authority,
                )
            )
        return identifiers

    def normalize_identifiers(
        self,
        resource: Mapping[str, Any],
        tenant: TenantContext,
        raw_id: str | None,
        *,
        include_data_authority: bool = False,
    ) -> dict[str, Any]:
        """Return ``resource`` with the Ronin identifiers appended.

        Existing identifiers are kept, unchanged and in order, ahead of the
        synthesized ones. Duplicates are not removed.
        """
        synthesized = self.build_ronin_identifiers(
            tenant, raw_id, include_data_authority=include_data_authority
        )
        return _append_identifiers(resource, synthesized)

    def normalize_business_identifier(
        self,
        resource: Mapping[str, Any],
        tenant: TenantContext,
        resolver: IdentifierResolver,
    ) -> dict[str, Any]:
        """Append the identifier chosen by ``resolver``.

        Raises:
            VendorIdentifierNotFound: when the resolver finds no qualifying
                identifier; the resource cannot be transformed.
        """
        existing = parse_identifiers(resource.get("identifier"))
        resolved = resolver.resolve(tenant, existing)
        logger.debug(
            "normalization.identifier.resolved",
            tenant=tenant.mnemonic,
            system=resolved.system,
        )
        return _append_identifiers(resource, [resolved])


def _append_identifiers(
    resource: Mapping[str, Any], identifiers: Sequence[Identifier]
) -> dict[str, Any]:
    updated = dict(resource)
    updated["identifier"] = [
        *list_field(resource, "identifier"),
        *(identifier.to_fhir() for identifier in identifiers),
    ]
    return updated


__all__ = [
    "IdentifierNormalizer",
    "IdentifierResolver",
    "MrnIdentifierResolver",
    "VendorIdentifierNotFound",
]
