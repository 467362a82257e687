"""Ronin Procedure profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import RoninExtension, RoninProfile
from Ronin_FHIR.models.dynamic import DynamicValueType, resolve_dynamic_values
from Ronin_FHIR.models.resource import Resource, append_extensions
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation import rules
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

_CODE_EXTENSION = RoninExtension.TENANT_SOURCE_PROCEDURE_CODE.value
_CATEGORY_EXTENSION = RoninExtension.TENANT_SOURCE_PROCEDURE_CATEGORY.value
_EXTENSION = LocationContext("Procedure", "extension")

PERFORMED_STATUSES = frozenset({"completed", "in-progress"})
PERFORMED_TYPES = (DynamicValueType.DATE_TIME, DynamicValueType.PERIOD)

REQUIRED_CODE_EXTENSION = IssueDefinition(
    "RONIN_PROC_001", "Tenant source procedure code extension is missing or invalid", _EXTENSION
)
INVALID_CATEGORY_EXTENSION = IssueDefinition(
    "RONIN_PROC_002", "Tenant source procedure category extension is invalid", _EXTENSION
)
REQUIRED_PERFORMED = IssueDefinition(
    "USCORE_PROC_001",
    "Performed SHALL be present if the status is 'completed' or 'in-progress'",
    LocationContext("Procedure", "performed"),
)
REQUIRED_CODE = IssueDefinition(
    "USCORE_PROC_002", "Procedure code is missing or invalid", LocationContext("Procedure", "code")
)


class RoninProcedure(BaseProfile):
    resource_type: ClassVar[str] = "Procedure"
    profile: ClassVar[str] = RoninProfile.PROCEDURE.value

    def concept_map(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource, Validation]:
        validation = Validation()
        code, code_extension = self.map_concept(
            resource.get("code"),
            "Procedure.code",
            _CODE_EXTENSION,
            LocationContext("Procedure", "code"),
            resource,
            parent_context,
            tenant,
            validation,
        )
        category, category_extension = self.map_concept(
            resource.get("category"),
            "Procedure.category",
            _CATEGORY_EXTENSION,
            LocationContext("Procedure", "category"),
            resource,
            parent_context,
            tenant,
            validation,
        )
        updated = append_extensions(resource, [code_extension, category_extension])
        if code is not None:
            updated["code"] = code
        if category is not None:
            updated["category"] = category
        return updated, validation

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        performed = resolve_dynamic_values(resource, "performed")
        if resource.get("status") in PERFORMED_STATUSES:
            validation.check_true(bool(performed), REQUIRED_PERFORMED, parent_context)
        rules.check_dynamic_value_type(
            resource, "performed", PERFORMED_TYPES, parent_context, validation
        )
        validation.check_not_none(resource.get("code"), REQUIRED_CODE, parent_context)
        rules.validate_reference(
            resource.get("subject"),
            ["Patient"],
            parent_context.append("subject"),
            validation,
            resource.get("contained"),
        )

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        super().validate_ronin(resource, parent_context, validation)
        extensions = resource.get("extension")
        rules.require_tenant_source_extension(
            extensions,
            _CODE_EXTENSION,
            DynamicValueType.CODEABLE_CONCEPT,
            REQUIRED_CODE_EXTENSION,
            parent_context,
            validation,
        )
        validation.check_true(
            len(rules.find_extensions(extensions, _CATEGORY_EXTENSION)) <= 1,
            INVALID_CATEGORY_EXTENSION,
            parent_context,
        )
        subject = parent_context.append("subject")
        rules.validate_ronin_reference_type(resource.get("subject"), ["Patient"], subject, validation)
        rules.require_data_authority_extension(resource.get("subject"), subject, validation)


__all__ = ["RoninProcedure"]
