"""Ronin Appointment profile.

``Appointment.status`` is a code bound to a fixed FHIR value set. Tenants send
their own status values, which are mapped through the tenant's
``Appointment.status`` concept map and kept in a provenance extension.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import RoninExtension, RoninProfile
from Ronin_FHIR.models.dynamic import DynamicValueType
from Ronin_FHIR.models.resource import Resource, append_extensions, list_field
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation import rules
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition, invalid_value_set_error
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

_STATUS = LocationContext("Appointment", "status")
_STATUS_EXTENSION = RoninExtension.TENANT_SOURCE_APPOINTMENT_STATUS.value

APPOINTMENT_STATUSES = (
    "proposed",
    "pending",
    "booked",
    "arrived",
    "fulfilled",
    "cancelled",
    "noshow",
    "entered-in-error",
    "checked-in",
    "waitlist",
)
UNSCHEDULED_STATUSES = ("proposed", "cancelled", "waitlist")

REQUIRED_EXTENSION = IssueDefinition(
    "RONIN_APPT_001", "Appointment extension list may not be empty", _STATUS
)
INVALID_STATUS_EXTENSION = IssueDefinition(
    "RONIN_APPT_002", "Tenant source appointment status extension is missing or invalid", _STATUS
)
START_END_REQUIRED = IssueDefinition(
    "R4_APPT_002",
    "Start and end can only be missing for appointments with the following statuses: "
    + ", ".join(UNSCHEDULED_STATUSES),
    LocationContext("Appointment"),
)


class RoninAppointment(BaseProfile):
    resource_type: ClassVar[str] = "Appointment"
    profile: ClassVar[str] = RoninProfile.APPOINTMENT.value

    def concept_map(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource, Validation]:
        validation = Validation()
        status = resource.get("status")
        result = self.require_concept_maps().map_code(
            tenant,
            "Appointment.status",
            status if isinstance(status, str) else None,
            resource,
            _STATUS_EXTENSION,
            APPOINTMENT_STATUSES,
            _STATUS,
            parent_context,
            validation,
        )
        if result is None:
            return resource, validation
        code, extension = result
        updated = append_extensions(resource, [extension.to_fhir()])
        updated["status"] = code
        return updated, validation

    def validate_base(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        status = resource.get("status")
        validation.check_in_value_set(
            status, APPOINTMENT_STATUSES, invalid_value_set_error(_STATUS, status), parent_context
        )
        if not (resource.get("start") and resource.get("end")):
            validation.check_true(
                status in UNSCHEDULED_STATUSES, START_END_REQUIRED, parent_context
            )

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        super().validate_ronin(resource, parent_context, validation)
        extensions = resource.get("extension")
        if validation.check_not_none(extensions, REQUIRED_EXTENSION, parent_context):
            rules.require_tenant_source_extension(
                extensions,
                _STATUS_EXTENSION,
                DynamicValueType.CODING,
                INVALID_STATUS_EXTENSION,
                parent_context,
                validation,
            )
        for index, participant in enumerate(list_field(resource, "participant")):
            if not isinstance(participant, Mapping):
                continue
            rules.require_data_authority_extension(
                participant.get("actor"),
                parent_context.append("participant", index).append("actor"),
                validation,
            )


__all__ = ["APPOINTMENT_STATUSES", "RoninAppointment"]
