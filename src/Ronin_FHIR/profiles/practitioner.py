"""Ronin Practitioner profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from Ronin_FHIR.models.constants import RoninProfile
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.issues import required_field_error
from Ronin_FHIR.validation.location import LocationContext

from .base import BaseProfile

_NAME = LocationContext("Practitioner", "name")


class RoninPractitioner(BaseProfile):
    resource_type: ClassVar[str] = "Practitioner"
    profile: ClassVar[str] = RoninProfile.PRACTITIONER.value

    def validate_overlay(
        self, resource: Mapping[str, Any], parent_context: LocationContext, validation: Validation
    ) -> None:
        names = resource.get("name")
        if not validation.check_not_none(names, required_field_error(_NAME), parent_context):
            return
        for index, name in enumerate(names if isinstance(names, list) else []):
            family = name.get("family") if isinstance(name, Mapping) else None
            validation.check_not_none(
                family, required_field_error(_NAME.at(index).append("family")), parent_context
            )


__all__ = ["RoninPractitioner"]
