"""Ronin Organization profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import RoninProfile
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import required_field_error
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile


class RoninOrganization(BaseProfile):
    resource_type: ClassVar[str] = "Organization"
    profile: ClassVar[str] = RoninProfile.ORGANIZATION.value

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        validation.check_not_none(
            resource.get("active"),
            required_field_error(LocationContext("Organization", "active")),
            parent_context,
        )
        validation.check_not_none(
            resource.get("name"),
            required_field_error(LocationContext("Organization", "name")),
            parent_context,
        )


__all__ = ["RoninOrganization"]
