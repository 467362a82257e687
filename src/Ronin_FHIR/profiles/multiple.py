"""Dispatch a resource type to one of several mutually exclusive profiles."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from Ronin_FHIR.models.resource import Resource
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import IssueDefinition, ValidationIssueSeverity
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

logger = structlog.get_logger(__name__)

NO_PROFILES = IssueDefinition("RONIN_PROFILE_001", "No profiles qualified", LocationContext(""))
MULTIPLE_PROFILES = IssueDefinition(
    "RONIN_PROFILE_002", "Multiple profiles qualified", LocationContext("")
)
DEFAULT_PROFILE_USED = IssueDefinition(
    "RONIN_PROFILE_003",
    "No profiles qualified, the default profile was used",
    LocationContext(""),
    severity=ValidationIssueSeverity.WARNING,
)


class MultipleProfileResource:
    """Select the single qualifying profile and delegate to it.

    When no profile qualifies the ``default_profile`` is used with a WARNING,
    or an ERROR is recorded when there is none. More than one qualifying
    profile is always an ERROR and nothing is delegated.
    """

    def __init__(
        self,
        profiles: Sequence[BaseProfile],
        *,
        default_profile: BaseProfile | None = None,
        name: str | None = None,
    ) -> None:
        if not profiles:
            raise ValueError("MultipleProfileResource requires at least one profile")
        types = {profile.resource_type for profile in profiles}
        if len(types) != 1:
            raise ValueError(f"Profiles must share one resource type, got {sorted(types)}")
        self.profiles = list(profiles)
        self.default_profile = default_profile
        self.resource_type = profiles[0].resource_type
        self.name = name or type(self).__name__

    def qualifies(self, resource: Mapping[str, Any]) -> bool:
        return any(profile.qualifies(resource) for profile in self.profiles)

    def select(
        self, resource: Mapping[str, Any], parent_context: LocationContext
    ) -> tuple[BaseProfile | None, Validation]:
        """Return the profile to delegate to and any selection issues."""
        validation = Validation()
        qualified = [profile for profile in self.profiles if profile.qualifies(resource)]
        if len(qualified) == 1:
            return qualified[0], validation
        if qualified:
            validation.add(MULTIPLE_PROFILES, parent_context)
            logger.warning(
                "profile.selection.ambiguous",
                resource_type=self.resource_type,
                profiles=[profile.profile for profile in qualified],
            )
            return None, validation
        if self.default_profile is not None:
            validation.add(DEFAULT_PROFILE_USED, parent_context)
            return self.default_profile, validation
        validation.add(NO_PROFILES, parent_context)
        logger.warning("profile.selection.none", resource_type=self.resource_type)
        return None, validation

    def validate(
        self, resource: Mapping[str, Any], parent_context: LocationContext | None = None
    ) -> Validation:
        context = parent_context or LocationContext(self.resource_type)
        profile, validation = self.select(resource, context)
        if profile is not None:
            validation.append(profile.validate(resource, context))
        return validation

    def transform(
        self, resource: Mapping[str, Any], tenant: TenantContext
    ) -> tuple[Resource | None, Validation]:
        profile, validation = self.select(resource, LocationContext(self.resource_type))
        if profile is None:
            return None, validation
        transformed, profile_validation = profile.transform(resource, tenant)
        validation.append(profile_validation)
        return transformed, validation


__all__ = [
    "DEFAULT_PROFILE_USED",
    "MULTIPLE_PROFILES",
    "NO_PROFILES",
    "MultipleProfileResource",
]
