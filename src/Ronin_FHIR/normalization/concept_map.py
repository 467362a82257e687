"""Tenant concept map normalization of coded elements.

Key Responsibilities:
    - Look up a tenant's source CodeableConcept (or code) in a concept map
      registry keyed by field, e.g. ``Condition.code``
    - Build the provenance extension that preserves the tenant source value
    - Record a ``NOV_CONMAP_LOOKUP`` ERROR on every miss without substituting
      any value

Collaborators:
    - Upstream: resource profiles during ``transform_internal``
    - Downstream: :class:`ConceptMapRegistry` implementations such as
      :class:`Ronin_FHIR.normalization.registry.StaticConceptMapRegistry`

Side Effects:
    - None beyond appending issues to the supplied accumulator

Thread Safety:
    - Thread-safe as long as the registry is read-only
"""

from __future__ import annotations

# ==============================================================================
# IMPORTS
# ==============================================================================
import dataclasses
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from Ronin_FHIR.models.constants import RoninCodeSystem
from Ronin_FHIR.models.datatypes import (
    CodeableConcept,
    Coding,
    Extension,
    parse_codeable_concept,
)
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import (
    concept_map_invalid_value_set_error,
    failed_concept_map_lookup_error,
)
from Ronin_FHIR.validation.location import LocationContext

logger = structlog.get_logger(__name__)

# ==============================================================================
# DATA MODELS
# ==============================================================================


@dataclass(slots=True, frozen=True)
class Mapped:
    """A successful lookup.

    Attributes:
        value: Normalized CodeableConcept replacing the tenant source value.
        extension: Provenance extension holding the tenant source value. The
            normalizer fills it in when the registry leaves it empty.
        metadata: Registry entries that produced the mapping.
    """

    value: CodeableConcept
    extension: Extension | None = None
    metadata: tuple[Mapping[str, Any], ...] = ()


@dataclass(slots=True, frozen=True)
class Unmapped:
    """No mapping exists for the source value."""

    source: CodeableConcept
    metadata: tuple[Mapping[str, Any], ...] = ()


MappingResult = Mapped | Unmapped


class ConceptMapRegistry(Protocol):
    """Read-only source of tenant concept maps and required value sets."""

    def get_mapping(
        self,
        tenant: TenantContext,
        field_key: str,
        source: CodeableConcept,
        owning_resource: Mapping[str, Any],
    ) -> MappingResult | None:
        """Return the mapping for ``source`` or ``None``/``Unmapped`` on a miss."""
        ...

    def get_required_value_set(self, field_key: str, profile_url: str) -> list[Coding]:
        """Return the codings a field must use under ``profile_url``."""
        ...


# ==============================================================================
# NORMALIZER
# ==============================================================================


def provenance_extension(url: str, source: CodeableConcept | Coding) -> Extension:
    """Extension preserving the tenant source value of a normalized element."""
    key = "valueCoding" if isinstance(source, Coding) else "valueCodeableConcept"
    return Extension.model_validate({"url": url, key: source.to_fhir()})


def tenant_code_system(tenant: TenantContext, field_key: str) -> str:
    """Code system URI used for a tenant's source values of a code field.

    ``Appointment.status`` for tenant ``test`` becomes
    ``http://projectronin.io/fhir/CodeSystem/test/AppointmentStatus``.
    """
    resource_name, _, field_name = field_key.partition(".")
    name = resource_name + field_name[:1].upper() + field_name[1:]
    return RoninCodeSystem.tenant_code_system(tenant.mnemonic, name)


class ConceptMapNormalizer:
    """Fail-closed concept mapping on top of a :class:`ConceptMapRegistry`."""

    def __init__(self, registry: ConceptMapRegistry) -> None:
        self.registry = registry

    def normalize(
        self,
        tenant: TenantContext,
        field_key: str,
        source: CodeableConcept,
        owning_resource: Mapping[str, Any],
        extension_url: str,
    ) -> MappingResult:
        """Look up ``source`` and attach the provenance extension when mapped."""
        result = self.registry.get_mapping(tenant, field_key, source, owning_resource)
        if result is None:
            return Unmapped(source=source)
        if isinstance(result, Mapped) and result.extension is None:
            return dataclasses.replace(
                result, extension=provenance_extension(extension_url, source)
            )
        return result

    def map_codeable_concept(
        self,
        tenant: TenantContext,
        field_key: str,
        source: Any,
        owning_resource: Mapping[str, Any],
        extension_url: str,
        location: LocationContext,
        parent_context: LocationContext,
        validation: Validation,
    ) -> Mapped | None:
        """Map a CodeableConcept element, recording ``NOV_CONMAP_LOOKUP`` on a miss.

        Returns ``None`` when the element is absent or unmapped; the caller
        must then leave the tenant source value in place.
        """
        concept = parse_codeable_concept(source)
        if concept is None:
            return None
        result = self.normalize(tenant, field_key, concept, owning_resource, extension_url)
        if isinstance(result, Mapped):
            return result
        source_codes = ", ".join(coding.code for coding in concept.coding if coding.code)
        validation.add(
            failed_concept_map_lookup_error(
                location,
                source_codes,
                f"any {field_key} concept map for tenant '{tenant.mnemonic}'",
                result.metadata,
            ),
            parent_context,
        )
        logger.info(
            "normalization.concept_map.miss",
            field=field_key,
            tenant=tenant.mnemonic,
            source=source_codes,
        )
        return None

    def map_code(
        self,
        tenant: TenantContext,
        field_key: str,
        value: str | None,
        owning_resource: Mapping[str, Any],
        extension_url: str,
        allowed_codes: Collection[str],
        location: LocationContext,
        parent_context: LocationContext,
        validation: Validation,
    ) -> tuple[str, Extension] | None:
        """Map a ``code`` element bound to a fixed set of FHIR codes.

        The source value is looked up as a Coding in the tenant's code system.
        A registry miss whose value is already one of ``allowed_codes`` passes
        through unchanged with a provenance extension; any other miss records
        ``NOV_CONMAP_LOOKUP``. A mapped target outside ``allowed_codes``
        records ``INV_CONMAP_VALUE_SET``.
        """
        if not isinstance(value, str) or not value:
            return None
        system = tenant_code_system(tenant, field_key)
        source_coding = Coding(system=system, code=value)
        extension = provenance_extension(extension_url, source_coding)
        result = self.registry.get_mapping(
            tenant, field_key, CodeableConcept(coding=[source_coding]), owning_resource
        )
        if isinstance(result, Mapped):
            target = next((coding.code for coding in result.value.coding if coding.code), None)
            if not validation.check_true(
                target in allowed_codes,
                concept_map_invalid_value_set_error(
                    location, system, value, target, result.metadata
                ),
                parent_context,
            ):
                return None
            return target, extension
        if value in allowed_codes:
            return value, extension
        validation.add(
            failed_concept_map_lookup_error(
                location, value, system, result.metadata if result else ()
            ),
            parent_context,
        )
        return None

    def required_value_set(self, field_key: str, profile_url: str) -> Sequence[Coding]:
        return self.registry.get_required_value_set(field_key, profile_url)


__all__ = [
    "ConceptMapNormalizer",
    "ConceptMapRegistry",
    "Mapped",
    "MappingResult",
    "Unmapped",
    "provenance_extension",
    "tenant_code_system",
]
