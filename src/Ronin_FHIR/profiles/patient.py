"""Ronin Patient profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import (
    DATA_ABSENT_REASON_EXTENSION,
    MRN_IDENTIFIER_TYPE,
    RoninCodeSystem,
    RoninProfile,
)
from Ronin_FHIR.models.datatypes import parse_identifiers
from Ronin_FHIR.models.resource import Resource
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.normalization.identifiers import MrnIdentifierResolver
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition, required_field_error
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

_IDENTIFIER = LocationContext("Patient", "identifier")

REQUIRED_MRN = IssueDefinition("RONIN_PAT_001", "MRN identifier is required", _IDENTIFIER)
WRONG_MRN_TYPE = IssueDefinition(
    "RONIN_PAT_002", "MRN identifier type defined without proper CodeableConcept", _IDENTIFIER
)
REQUIRED_MRN_VALUE = IssueDefinition("RONIN_PAT_003", "MRN identifier value is required", _IDENTIFIER)
REQUIRED_NAME = IssueDefinition(
    "USCORE_PAT_001", "At least one name must be provided", LocationContext("Patient", "name")
)


class RoninPatient(BaseProfile):
    """Patient with tenant, FHIR id, data authority and MRN identifiers.

    The MRN comes from the injected resolver; when none qualifies the patient
    cannot be transformed.
    """

    resource_type: ClassVar[str] = "Patient"
    profile: ClassVar[str] = RoninProfile.PATIENT.value
    requires_data_authority: ClassVar[bool] = True
    unresolved_identity_error: ClassVar[IssueDefinition] = REQUIRED_MRN

    def transform_internal(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource | None, Validation]:
        resolver = self.identifier_resolver or MrnIdentifierResolver(self.settings.mrn_system)
        transformed, validation = super().transform_internal(resource, parent_context, tenant)
        if transformed is None:
            return None, validation
        transformed = self.identifiers.normalize_business_identifier(transformed, tenant, resolver)
        return transformed, validation

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        validation.check_not_none(
            resource.get("gender"), required_field_error(LocationContext("Patient", "gender")), parent_context
        )
        names = resource.get("name")
        if not validation.check_not_none(names, REQUIRED_NAME, parent_context):
            return
        for index, name in enumerate(names if isinstance(names, list) else []):
            validation.check_true(
                _has_name_parts(name),
                IssueDefinition(
                    "USCORE_PAT_002",
                    "Either Patient.name.given and/or Patient.name.family SHALL be present "
                    "or a Data Absent Reason Extension SHALL be present.",
                    LocationContext("Patient", "name").at(index),
                ),
                parent_context,
            )

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        super().validate_ronin(resource, parent_context, validation)
        identifiers = parse_identifiers(resource.get("identifier"))
        mrn = next((item for item in identifiers if item.system == RoninCodeSystem.MRN.value), None)
        if not validation.check_not_none(mrn, REQUIRED_MRN, parent_context):
            return
        type_keys = mrn.type.coding_keys() if mrn.type else frozenset()
        validation.check_true(
            bool(type_keys) and MRN_IDENTIFIER_TYPE.coding_keys() <= type_keys,
            WRONG_MRN_TYPE,
            parent_context,
        )
        validation.check_not_none(mrn.value, REQUIRED_MRN_VALUE, parent_context)


def _has_name_parts(name: Any) -> bool:
    if not isinstance(name, Mapping):
        return False
    if name.get("family") or name.get("given"):
        return True
    extensions = name.get("extension") or []
    return any(
        isinstance(item, Mapping) and item.get("url") == DATA_ABSENT_REASON_EXTENSION
        for item in extensions
    )


__all__ = ["RoninPatient"]
