"""Ronin FHIR validation and transformation core.

Key Responsibilities:
    - Validate FHIR R4 resources against layered Ronin profiles
    - Transform tenant resources: normalize codes and identifiers, apply
      tenant concept maps, localize ids and references

Collaborators:
    - Upstream: Ingestion services handing in tenant FHIR JSON
    - Downstream: Concept map registries and identifier resolvers injected
      into the profiles

Example:
    >>> from Ronin_FHIR import RoninPatient, TenantContext
    >>> transformed, validation = RoninPatient().transform(patient, TenantContext(mnemonic="test"))
    >>> validation.alert_if_errors()
"""

from __future__ import annotations

from .models.tenant import TenantContext
from .profiles import (
    MultipleProfileResource,
    RoninAppointment,
    RoninCarePlan,
    RoninConditionEncounterDiagnosis,
    RoninConditionProblemsAndHealthConcerns,
    RoninConditions,
    RoninOrganization,
    RoninPatient,
    RoninPractitioner,
    RoninProcedure,
    RoninServiceRequest,
    TransformManager,
)
from .validation import LocationContext, Validation, ValidationAlertError

__version__ = "0.1.0"

__all__ = [
    "LocationContext",
    "MultipleProfileResource",
    "RoninAppointment",
    "RoninCarePlan",
    "RoninConditionEncounterDiagnosis",
    "RoninConditionProblemsAndHealthConcerns",
    "RoninConditions",
    "RoninOrganization",
    "RoninPatient",
    "RoninPractitioner",
    "RoninProcedure",
    "RoninServiceRequest",
    "TenantContext",
    "TransformManager",
    "Validation",
    "ValidationAlertError",
    "__version__",
]
