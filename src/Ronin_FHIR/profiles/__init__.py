"""Ronin resource profiles and the transform entry points."""

from __future__ import annotations

from .appointment import RoninAppointment
from .base import BaseProfile
from .care_plan import RoninCarePlan
from .condition import (
    BaseRoninCondition,
    RoninConditionEncounterDiagnosis,
    RoninConditionProblemsAndHealthConcerns,
    RoninConditions,
)
from .manager import TransformManager
from .multiple import MultipleProfileResource
from .organization import RoninOrganization
from .patient import RoninPatient
from .practitioner import RoninPractitioner
from .procedure import RoninProcedure
from .service_request import RoninServiceRequest

__all__ = [
    "BaseProfile",
    "BaseRoninCondition",
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
    "TransformManager",
]
