"""Ronin Condition profiles.

Conditions are split by category: problem list items and health concerns on
one side, encounter diagnoses on the other. :class:`RoninConditions` picks the
qualifying profile for an incoming Condition.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import CodeSystem, RoninExtension, RoninProfile
from Ronin_FHIR.models.datatypes import Coding, parse_codeable_concept
from Ronin_FHIR.models.dynamic import DynamicValueType
from Ronin_FHIR.models.resource import Resource, append_extensions
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.normalization.concept_map import provenance_extension
from Ronin_FHIR.validation import rules
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition, required_field_error
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile
from .multiple import MultipleProfileResource

_CODE_FIELD = "Condition.code"
_CATEGORY_FIELD = "Condition.category"
_CATEGORY = LocationContext("Condition", "category")
_SOURCE_CODE_EXTENSION = RoninExtension.TENANT_SOURCE_CONDITION_CODE.value

REQUIRED_SOURCE_CODE_EXTENSION = IssueDefinition(
    "RONIN_CND_001",
    "Tenant source condition code extension is missing or invalid",
    LocationContext("Condition", "extension"),
)


class BaseRoninCondition(BaseProfile):
    """Shared Condition behaviour; subclasses set the qualifying categories."""

    resource_type: ClassVar[str] = "Condition"
    qualifying_categories: ClassVar[tuple[Coding, ...]] = ()
    category_error: ClassVar[IssueDefinition]

    def required_categories(self) -> Sequence[Coding]:
        """Category value set the registry requires for this profile, if any."""
        if self.concept_maps is None:
            return ()
        return self.concept_maps.required_value_set(_CATEGORY_FIELD, self.profile)

    def category_value_set(self) -> Sequence[Coding]:
        return self.required_categories() or self.qualifying_categories

    def qualifies(self, resource: Mapping[str, Any]) -> bool:
        return rules.qualifies_for_value_set(resource.get("category"), self.category_value_set())

    def concept_map(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource, Validation]:
        validation = Validation()
        code = resource.get("code")
        concept = parse_codeable_concept(code)
        if concept is None:
            return resource, validation
        if tenant.mnemonic in self.settings.tenants_without_condition_mapping:
            extension = provenance_extension(_SOURCE_CODE_EXTENSION, concept).to_fhir()
            return append_extensions(resource, [extension]), validation
        mapped, extension = self.map_concept(
            code,
            _CODE_FIELD,
            _SOURCE_CODE_EXTENSION,
            LocationContext("Condition", "code"),
            resource,
            parent_context,
            tenant,
            validation,
        )
        updated = append_extensions(resource, [extension])
        updated["code"] = mapped
        return updated, validation

    def validate_base(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        rules.validate_reference(
            resource.get("subject"),
            ["Patient"],
            parent_context.append("subject"),
            validation,
            resource.get("contained"),
        )
        rules.validate_reference(
            resource.get("encounter"),
            ["Encounter"],
            parent_context.append("encounter"),
            validation,
            resource.get("contained"),
        )

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        category = resource.get("category")
        if validation.check_not_none(
            category, required_field_error(_CATEGORY), parent_context
        ):
            validation.check_true(
                rules.qualifies_for_value_set(category, self.qualifying_categories),
                self.category_error,
                parent_context,
            )
            required = self.required_categories()
            if required:
                rules.check_value_set(category, required, _CATEGORY, parent_context, validation)
        validation.check_not_none(
            resource.get("code"),
            required_field_error(LocationContext("Condition", "code")),
            parent_context,
        )

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        super().validate_ronin(resource, parent_context, validation)
        rules.require_codeable_concept("code", resource.get("code"), parent_context, validation)
        rules.require_tenant_source_extension(
            resource.get("extension"),
            _SOURCE_CODE_EXTENSION,
            DynamicValueType.CODEABLE_CONCEPT,
            REQUIRED_SOURCE_CODE_EXTENSION,
            parent_context,
            validation,
            exactly_one=True,
        )
        subject = parent_context.append("subject")
        rules.validate_ronin_reference_type(resource.get("subject"), ["Patient"], subject, validation)
        rules.require_data_authority_extension(resource.get("subject"), subject, validation)


class RoninConditionProblemsAndHealthConcerns(BaseRoninCondition):
    profile: ClassVar[str] = RoninProfile.CONDITION_PROBLEMS_CONCERNS.value
    qualifying_categories: ClassVar[tuple[Coding, ...]] = (
        Coding(system=CodeSystem.CONDITION_CATEGORY.value, code="problem-list-item"),
        Coding(system=CodeSystem.CONDITION_CATEGORY_HEALTH_CONCERN.value, code="health-concern"),
    )
    category_error: ClassVar[IssueDefinition] = IssueDefinition(
        "USCORE_CNDPAHC_001",
        "One of the following condition categories required for US Core Condition Problem "
        "and Health Concerns profile: problem-list-item, health-concern",
        LocationContext("Condition", "category"),
    )


class RoninConditionEncounterDiagnosis(BaseRoninCondition):
    profile: ClassVar[str] = RoninProfile.CONDITION_ENCOUNTER_DIAGNOSIS.value
    qualifying_categories: ClassVar[tuple[Coding, ...]] = (
        Coding(system=CodeSystem.CONDITION_CATEGORY.value, code="encounter-diagnosis"),
    )
    category_error: ClassVar[IssueDefinition] = IssueDefinition(
        "USCORE_CND_ENC_DX_001",
        "One of the following condition categories required for US Core Condition "
        "Encounter Diagnosis profile: encounter-diagnosis",
        LocationContext("Condition", "category"),
    )


class RoninConditions(MultipleProfileResource):
    """Condition resource dispatching to the category specific profiles.

    Keyword arguments are passed to every Condition profile.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(
            [
                RoninConditionProblemsAndHealthConcerns(**kwargs),
                RoninConditionEncounterDiagnosis(**kwargs),
            ],
            name="RoninConditions",
        )


__all__ = [
    "BaseRoninCondition",
    "RoninConditionEncounterDiagnosis",
    "RoninConditionProblemsAndHealthConcerns",
    "RoninConditions",
]
