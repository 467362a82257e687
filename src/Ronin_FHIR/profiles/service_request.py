"""Ronin ServiceRequest profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import RoninExtension, RoninProfile
from Ronin_FHIR.models.dynamic import DynamicValueType
from Ronin_FHIR.models.resource import Resource, append_extensions, list_field
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation import rules
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition, required_field_error
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

_EXTENSION = LocationContext("ServiceRequest", "extension")
_CATEGORY = LocationContext("ServiceRequest", "category")
_CODE = LocationContext("ServiceRequest", "code")
_CATEGORY_EXTENSION = RoninExtension.TENANT_SOURCE_SERVICE_REQUEST_CATEGORY.value
_CODE_EXTENSION = RoninExtension.TENANT_SOURCE_SERVICE_REQUEST_CODE.value

MINIMUM_EXTENSIONS = IssueDefinition(
    "RONIN_SERVREQ_001", "Service Request must have at least two extensions", _EXTENSION
)
INVALID_CATEGORY_EXTENSION = IssueDefinition(
    "RONIN_SERVREQ_002",
    "Service Request extension Tenant Source Service Request Category is invalid",
    _EXTENSION,
)
INVALID_CODE_EXTENSION = IssueDefinition(
    "RONIN_SERVREQ_003",
    "Service Request extension Tenant Source Service Request Code is invalid",
    _EXTENSION,
)
INVALID_CATEGORY_SIZE = IssueDefinition(
    "RONIN_SERVREQ_004", "Service Request requires exactly 1 Category element", _CATEGORY
)


class RoninServiceRequest(BaseProfile):
    resource_type: ClassVar[str] = "ServiceRequest"
    profile: ClassVar[str] = RoninProfile.SERVICE_REQUEST.value

    def concept_map(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource, Validation]:
        """Map the first category and the code."""
        validation = Validation()
        categories = list_field(resource, "category")
        category, category_extension = self.map_concept(
            categories[0] if categories else None,
            "ServiceRequest.category",
            _CATEGORY_EXTENSION,
            _CATEGORY,
            resource,
            parent_context,
            tenant,
            validation,
        )
        code, code_extension = self.map_concept(
            resource.get("code"),
            "ServiceRequest.code",
            _CODE_EXTENSION,
            _CODE,
            resource,
            parent_context,
            tenant,
            validation,
        )
        updated = append_extensions(resource, [category_extension, code_extension])
        if categories:
            updated["category"] = [category, *categories[1:]]
        if code is not None:
            updated["code"] = code
        return updated, validation

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        rules.validate_reference(
            resource.get("subject"),
            ["Patient"],
            parent_context.append("subject"),
            validation,
            resource.get("contained"),
        )
        if validation.check_not_none(resource.get("code"), required_field_error(_CODE), parent_context):
            rules.require_codeable_concept("code", resource.get("code"), parent_context, validation)

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        super().validate_ronin(resource, parent_context, validation)
        extensions = resource.get("extension")
        validation.check_true(
            len(list_field(resource, "extension")) >= 2, MINIMUM_EXTENSIONS, parent_context
        )

        categories = list_field(resource, "category")
        if validation.check_not_none(categories, required_field_error(_CATEGORY), parent_context):
            validation.check_true(len(categories) == 1, INVALID_CATEGORY_SIZE, parent_context)
            rules.require_codeable_concept("category", categories[0], parent_context, validation)
        rules.require_tenant_source_extension(
            extensions,
            _CATEGORY_EXTENSION,
            DynamicValueType.CODEABLE_CONCEPT,
            INVALID_CATEGORY_EXTENSION,
            parent_context,
            validation,
        )
        rules.require_tenant_source_extension(
            extensions,
            _CODE_EXTENSION,
            DynamicValueType.CODEABLE_CONCEPT,
            INVALID_CODE_EXTENSION,
            parent_context,
            validation,
            exactly_one=True,
        )

        subject = parent_context.append("subject")
        rules.validate_ronin_reference_type(resource.get("subject"), ["Patient"], subject, validation)
        rules.require_data_authority_extension(resource.get("subject"), subject, validation)


__all__ = ["RoninServiceRequest"]
