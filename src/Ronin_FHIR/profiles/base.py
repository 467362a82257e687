"""Transform orchestrator shared by every Ronin profile.

Key Responsibilities:
    - Gate resources through :meth:`BaseProfile.qualifies`
    - Run normalization, concept mapping, identifier normalization and
      localization on a private copy of the resource
    - Validate the rewritten resource through a layered
      :class:`Ronin_FHIR.validation.pipeline.ValidationPipeline`
    - Return ``(resource, Validation)`` or ``(None, Validation)`` when the
      resource has no stable identity

Collaborators:
    - Upstream: :class:`Ronin_FHIR.profiles.manager.TransformManager` and callers
      embedding the core
    - Downstream: :mod:`Ronin_FHIR.normalization`, :mod:`Ronin_FHIR.localization`,
      :mod:`Ronin_FHIR.validation`

Side Effects:
    - Binds the tenant to the logging context for the duration of a transform
    - Emits structured log events

Thread Safety:
    - Thread-safe; each call owns its resource copy and accumulator and the
      injected collaborators are read-only

Performance Characteristics:
    - Linear in resource size; every pass walks the tree once
"""

from __future__ import annotations

# ==============================================================================
# IMPORTS
# ==============================================================================
from abc import ABC
from collections.abc import Callable, Mapping, Sequence
from typing import Any, ClassVar

import structlog

from Ronin_FHIR.config.settings import TransformSettings, get_settings
from Ronin_FHIR.localization.localizer import Localizer
from Ronin_FHIR.models.constants import RoninProfile
from Ronin_FHIR.models.resource import Resource, copy_resource
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.normalization.concept_map import ConceptMapNormalizer, ConceptMapRegistry
from Ronin_FHIR.normalization.identifiers import (
    IdentifierNormalizer,
    IdentifierResolver,
    VendorIdentifierNotFound,
)
from Ronin_FHIR.normalization.registry import StaticConceptMapRegistry
from Ronin_FHIR.normalization.systems import Normalizer
from Ronin_FHIR.utils.logging import bind_tenant, reset_tenant
from Ronin_FHIR.validation import rules
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition, required_field_error
from Ronin_FHIR.validation.location import LocationContext
from Ronin_FHIR.validation.pipeline import Rule, ValidationPipeline, ValidationState
from Ronin_FHIR.validation.schema import StructuralValidator

logger = structlog.get_logger(__name__)

RuleMethod = Callable[[Mapping[str, Any], LocationContext, Validation], None]

_RONIN_PROFILES = frozenset(profile.value for profile in RoninProfile)


# ==============================================================================
# BASE PROFILE
# ==============================================================================


class BaseProfile(ABC):
    """Base class for Ronin resource profiles.

    Subclasses set :attr:`resource_type` and :attr:`profile` and override the
    hooks they need:

    * :meth:`qualifies` to gate resources
    * :meth:`concept_map` to normalize coded elements
    * :meth:`transform_internal` for identifiers and other rewrites
    * :meth:`validate_base`, :meth:`validate_overlay` and
      :meth:`validate_ronin` for the three profile layers

    Args:
        registry: Concept map registry; required by profiles that map codes. When
            omitted, the YAML file at ``concept_map_path`` is loaded if configured.
        identifier_resolver: Resolver for a business identifier such as the MRN.
        settings: Transform settings; defaults to the cached application settings.
        structural: Structural validator shared across profiles.
    """

    resource_type: ClassVar[str]
    profile: ClassVar[str]
    requires_data_authority: ClassVar[bool] = False
    unresolved_identity_error: ClassVar[IssueDefinition] = IssueDefinition(
        "RONIN_IDENT_001",
        "Business identifier could not be resolved",
        LocationContext("", "identifier"),
    )

    def __init__(
        self,
        *,
        registry: ConceptMapRegistry | None = None,
        identifier_resolver: IdentifierResolver | None = None,
        settings: TransformSettings | None = None,
        structural: StructuralValidator | None = None,
        normalizer: Normalizer | None = None,
        localizer: Localizer | None = None,
    ) -> None:
        self.settings = settings or get_settings().transform
        if registry is None and self.settings.concept_map_path is not None:
            registry = StaticConceptMapRegistry.from_path(self.settings.concept_map_path)
        self.concept_maps = ConceptMapNormalizer(registry) if registry is not None else None
        self.identifier_resolver = identifier_resolver
        self.identifiers = IdentifierNormalizer(data_authority=self.settings.data_authority_value)
        self.normalizer = normalizer or Normalizer()
        self.localizer = localizer or Localizer(data_authority=self.settings.data_authority_value)
        self.structural = structural or StructuralValidator()
        self.pipeline = ValidationPipeline(self.build_stages(), name=self.profile)

    # ------------------------------------------------------------------
    # Pipeline construction
    # ------------------------------------------------------------------
    def build_stages(self) -> dict[ValidationState, Sequence[Rule]]:
        """Rules per validation layer, in declaration order."""
        return {
            ValidationState.STRUCTURAL_CHECK: [self._structural_rule],
            ValidationState.BASE_PROFILE_CHECK: [_as_rule(self.validate_base)],
            ValidationState.OVERLAY_PROFILE_CHECK: [_as_rule(self.validate_overlay)],
            ValidationState.BUSINESS_RULES_CHECK: [_as_rule(self.validate_ronin)],
        }

    def _structural_rule(
        self, resource: Mapping[str, Any], parent_context: LocationContext
    ) -> Validation:
        return self.structural.validate(
            resource, parent_context, resource_type=self.resource_type
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------
    def qualifies(self, resource: Mapping[str, Any]) -> bool:
        """Whether ``resource`` is in scope for this profile."""
        return True

    def validate(
        self, resource: Mapping[str, Any], parent_context: LocationContext | None = None
    ) -> Validation:
        """Run every validation layer against ``resource``."""
        return self.pipeline.run(resource, parent_context or LocationContext(self.resource_type))

    def transform(
        self, resource: Mapping[str, Any], tenant: TenantContext
    ) -> tuple[Resource | None, Validation]:
        """Transform ``resource`` for ``tenant`` and validate the result.

        Returns:
            The transformed copy and the accumulated issues. The resource is
            ``None`` when it has no ``id``, when the business identifier cannot
            be resolved, or (with ``null_on_error``) when any ERROR was found.
        """
        token = bind_tenant(tenant.mnemonic)
        try:
            return self._transform(resource, tenant)
        finally:
            reset_tenant(token)

    def _transform(
        self, resource: Mapping[str, Any], tenant: TenantContext
    ) -> tuple[Resource | None, Validation]:
        context = LocationContext(self.resource_type)
        validation = Validation()
        raw_id = resource.get("id")
        log = logger.bind(resource_type=self.resource_type, resource_id=raw_id, profile=self.profile)

        if not validation.check_true(
            isinstance(raw_id, str) and bool(raw_id.strip()),
            required_field_error(LocationContext(self.resource_type, "id")),
        ):
            log.warning("profile.transform.unidentifiable")
            return None, validation

        working = self.normalizer.normalize(copy_resource(resource))
        working, mapping_validation = self.concept_map(working, context, tenant)
        validation.append(mapping_validation)

        try:
            transformed, internal_validation = self.transform_internal(working, context, tenant)
        except VendorIdentifierNotFound as exc:
            validation.add(self.unresolved_identity_error, context)
            log.warning("profile.transform.identifier_not_found", error=str(exc))
            return None, validation
        validation.append(internal_validation)
        if transformed is None:
            log.warning("profile.transform.rejected", issues=len(validation))
            return None, validation

        localized = self.localizer.localize(transformed, tenant)
        validation.append(self.validate(localized, context))

        if self.settings.null_on_error and validation.has_errors():
            log.warning("profile.transform.failed", errors=len(validation.errors()))
            return None, validation
        log.info(
            "profile.transform.completed",
            issues=len(validation),
            errors=len(validation.errors()),
        )
        return localized, validation

    # ------------------------------------------------------------------
    # Transform hooks
    # ------------------------------------------------------------------
    def concept_map(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource, Validation]:
        """Normalize coded elements; the default maps nothing."""
        return resource, Validation()

    def transform_internal(
        self, resource: Resource, parent_context: LocationContext, tenant: TenantContext
    ) -> tuple[Resource | None, Validation]:
        """Stamp the profile into ``meta`` and append the Ronin identifiers."""
        transformed = dict(resource)
        transformed["meta"] = self.transform_meta(resource.get("meta"))
        transformed = self.identifiers.normalize_identifiers(
            transformed,
            tenant,
            resource.get("id"),
            include_data_authority=self.requires_data_authority,
        )
        return transformed, Validation()

    def transform_meta(self, meta: Any) -> dict[str, Any]:
        """Return ``meta`` whose profiles are the Ronin ones plus this profile."""
        current = dict(meta) if isinstance(meta, Mapping) else {}
        existing = current.get("profile") if isinstance(current.get("profile"), list) else []
        profiles: list[str] = []
        for item in [*existing, self.profile]:
            if item in _RONIN_PROFILES and item not in profiles:
                profiles.append(item)
        current["profile"] = profiles
        return current

    def require_concept_maps(self) -> ConceptMapNormalizer:
        if self.concept_maps is None:
            raise ValueError(f"{type(self).__name__} requires a concept map registry")
        return self.concept_maps

    def map_concept(
        self,
        value: Any,
        field_key: str,
        extension_url: str,
        location: LocationContext,
        resource: Mapping[str, Any],
        parent_context: LocationContext,
        tenant: TenantContext,
        validation: Validation,
    ) -> tuple[Any, dict[str, Any] | None]:
        """Map one CodeableConcept value.

        Returns the normalized value and its provenance extension, or the
        untouched tenant value and ``None`` when unmapped or absent.
        """
        mapped = self.require_concept_maps().map_codeable_concept(
            tenant, field_key, value, resource, extension_url, location, parent_context, validation
        )
        if mapped is None or mapped.extension is None:
            return value, None
        return mapped.value.to_fhir(), mapped.extension.to_fhir()

    # ------------------------------------------------------------------
    # Validation hooks
    # ------------------------------------------------------------------
    def validate_base(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        """Base R4 profile rules beyond the structural schema."""

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        """Domain overlay (US Core) rules."""

    def validate_ronin(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        """Ronin rules common to every profile: meta, identifiers and contained resources."""
        rules.require_meta(resource.get("meta"), self.profile, parent_context, validation)
        rules.require_ronin_identifiers(
            resource.get("identifier"),
            parent_context,
            validation,
            data_authority=self.requires_data_authority,
        )
        rules.contained_resource_present(resource.get("contained"), parent_context, validation)


def _as_rule(method: RuleMethod) -> Rule:
    def rule(resource: Mapping[str, Any], parent_context: LocationContext) -> Validation:
        validation = Validation()
        method(resource, parent_context, validation)
        return validation

    rule.__name__ = getattr(method, "__name__", "rule")
    return rule


__all__ = ["BaseProfile"]
