"""Ronin CarePlan profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import RoninExtension, RoninProfile
from Ronin_FHIR.models.resource import Resource, append_extensions, list_field
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation import rules
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

_CATEGORY_EXTENSION = RoninExtension.TENANT_SOURCE_CARE_PLAN_CATEGORY.value

CATEGORY_EXTENSION_COUNT = IssueDefinition(
    "RONIN_CAREPLAN_001",
    "CarePlan category list size must match the tenantSourceCarePlanCategory extension list size",
    LocationContext("CarePlan"),
)
ACTIVITY_REFERENCE_AND_DETAIL = IssueDefinition(
    "R4_CRPLN_001", "Provide a reference or detail, not both", LocationContext("")
)
ACTIVITY_REFERENCE_OR_DETAIL = IssueDefinition(
    "R4_CRPLN_002", "Activity must provide a reference or detail", LocationContext("")
)


class RoninCarePlan(BaseProfile):
    resource_type: ClassVar[str] = "CarePlan"
    profile: ClassVar[str] = RoninProfile.CARE_PLAN.value

    def concept_map(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource, Validation]:
        """Map every category; unmapped categories stay as the tenant sent them."""
        validation = Validation()
        categories = list_field(resource, "category")
        if not categories:
            return resource, validation
        mapped_categories = []
        extensions = []
        for category in categories:
            mapped, extension = self.map_concept(
                category,
                "CarePlan.category",
                _CATEGORY_EXTENSION,
                LocationContext("CarePlan", "category"),
                resource,
                parent_context,
                tenant,
                validation,
            )
            mapped_categories.append(mapped)
            extensions.append(extension)
        updated = append_extensions(resource, extensions)
        updated["category"] = mapped_categories
        return updated, validation

    def validate_base(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        rules.validate_reference(
            resource.get("subject"),
            ["Patient", "Group"],
            parent_context.append("subject"),
            validation,
            resource.get("contained"),
        )
        for index, activity in enumerate(list_field(resource, "activity")):
            if not isinstance(activity, Mapping):
                continue
            context = parent_context.append("activity", index)
            has_reference = bool(activity.get("reference"))
            has_detail = bool(activity.get("detail"))
            validation.check_true(
                not (has_reference and has_detail), ACTIVITY_REFERENCE_AND_DETAIL, context
            )
            validation.check_true(has_reference or has_detail, ACTIVITY_REFERENCE_OR_DETAIL, context)

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        super().validate_ronin(resource, parent_context, validation)
        categories = list_field(resource, "category")
        if categories:
            extensions = rules.find_extensions(resource.get("extension"), _CATEGORY_EXTENSION)
            validation.check_true(
                len(extensions) == len(categories), CATEGORY_EXTENSION_COUNT, parent_context
            )
        subject = parent_context.append("subject")
        rules.validate_ronin_reference_type(resource.get("subject"), ["Patient"], subject, validation)
        rules.require_data_authority_extension(resource.get("subject"), subject, validation)


__all__ = ["RoninCarePlan"]
