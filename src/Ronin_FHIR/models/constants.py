"""Canonical URIs and coded values shared by the Ronin profiles."""

from __future__ import annotations

from enum import Enum

from .datatypes import CodeableConcept, Coding, Extension
from .dynamic import DynamicValueType


class CodeSystem(str, Enum):
    """External code systems referenced by validators and normalizers."""

    LOINC = "http://loinc.org"
    SNOMED_CT = "http://snomed.info/sct"
    RXNORM = "http://www.nlm.nih.gov/research/umls/rxnorm"
    CPT = "http://www.ama-assn.org/go/cpt"
    ICD_10_CM = "http://hl7.org/fhir/sid/icd-10-cm"
    ICD_9_CM = "http://hl7.org/fhir/sid/icd-9-cm"
    NDC = "http://hl7.org/fhir/sid/ndc"
    CVX = "http://hl7.org/fhir/sid/cvx"
    UCUM = "http://unitsofmeasure.org"
    NPI = "http://hl7.org/fhir/sid/us-npi"
    CONDITION_CATEGORY = "http://terminology.hl7.org/CodeSystem/condition-category"
    CONDITION_CATEGORY_HEALTH_CONCERN = "http://hl7.org/fhir/us/core/CodeSystem/condition-category"
    CAREPLAN_CATEGORY = "http://hl7.org/fhir/us/core/CodeSystem/careplan-category"
    DATA_ABSENT_REASON = "http://terminology.hl7.org/CodeSystem/data-absent-reason"
    IDENTIFIER_TYPE = "http://terminology.hl7.org/CodeSystem/v2-0203"
    ADMINISTRATIVE_GENDER = "http://hl7.org/fhir/administrative-gender"


class RoninCodeSystem(str, Enum):
    """Identifier systems minted by Ronin."""

    TENANT = "http://projectronin.com/id/tenantId"
    FHIR_ID = "http://projectronin.com/id/fhir"
    MRN = "http://projectronin.com/id/mrn"
    DATA_AUTHORITY_ID = "http://projectronin.com/id/dataAuthorityIdentifier"
    IDENTIFIER_TYPE = "http://projectronin.io/fhir/CodeSystem/RoninIdentifierType"

    @staticmethod
    def tenant_code_system(tenant: str, name: str) -> str:
        """Code system holding a tenant's source values for a coded field."""
        return f"http://projectronin.io/fhir/CodeSystem/{tenant}/{name}"


_EXTENSION_BASE = "http://projectronin.io/fhir/StructureDefinition/Extension"


class RoninExtension(str, Enum):
    """Extension URLs recognised on Ronin resources."""

    TENANT_SOURCE_APPOINTMENT_STATUS = f"{_EXTENSION_BASE}/tenant-sourceAppointmentStatus"
    TENANT_SOURCE_CARE_PLAN_CATEGORY = f"{_EXTENSION_BASE}/tenant-sourceCarePlanCategory"
    TENANT_SOURCE_CONDITION_CODE = f"{_EXTENSION_BASE}/tenant-sourceConditionCode"
    TENANT_SOURCE_PROCEDURE_CODE = f"{_EXTENSION_BASE}/tenant-sourceProcedureCode"
    TENANT_SOURCE_PROCEDURE_CATEGORY = f"{_EXTENSION_BASE}/tenant-sourceProcedureCategory"
    TENANT_SOURCE_SERVICE_REQUEST_CATEGORY = f"{_EXTENSION_BASE}/tenant-sourceServiceRequestCategory"
    TENANT_SOURCE_SERVICE_REQUEST_CODE = f"{_EXTENSION_BASE}/tenant-sourceServiceRequestCode"
    RONIN_DATA_AUTHORITY_EXTENSION = f"{_EXTENSION_BASE}/ronin-dataAuthorityIdentifier"

    @classmethod
    def is_ronin(cls, url: str | None) -> bool:
        return bool(url) and url.startswith("http://projectronin.io/fhir/")


DATA_ABSENT_REASON_EXTENSION = "http://hl7.org/fhir/StructureDefinition/data-absent-reason"

_PROFILE_BASE = "http://projectronin.io/fhir/StructureDefinition"


class RoninProfile(str, Enum):
    """Profile canonical URLs stamped into ``meta.profile``."""

    PATIENT = f"{_PROFILE_BASE}/ronin-patient"
    PRACTITIONER = f"{_PROFILE_BASE}/ronin-practitioner"
    ORGANIZATION = f"{_PROFILE_BASE}/ronin-organization"
    CONDITION_PROBLEMS_CONCERNS = f"{_PROFILE_BASE}/ronin-conditionProblemsHealthConcerns"
    CONDITION_ENCOUNTER_DIAGNOSIS = f"{_PROFILE_BASE}/ronin-conditionEncounterDiagnosis"
    CARE_PLAN = f"{_PROFILE_BASE}/ronin-carePlan"
    PROCEDURE = f"{_PROFILE_BASE}/ronin-procedure"
    APPOINTMENT = f"{_PROFILE_BASE}/ronin-appointment"
    SERVICE_REQUEST = f"{_PROFILE_BASE}/ronin-serviceRequest"


def _identifier_type(code: str, display: str, text: str, system: str) -> CodeableConcept:
    return CodeableConcept(
        coding=[Coding(system=system, code=code, display=display)],
        text=text,
    )


TENANT_IDENTIFIER_TYPE = _identifier_type(
    "TID", "Ronin-specified Tenant Identifier", "Tenant ID", RoninCodeSystem.IDENTIFIER_TYPE.value
)
FHIR_ID_IDENTIFIER_TYPE = _identifier_type(
    "FHIR ID", "FHIR Identifier", "FHIR Identifier", RoninCodeSystem.IDENTIFIER_TYPE.value
)
DATA_AUTHORITY_IDENTIFIER_TYPE = _identifier_type(
    "DAID", "Data Authority Identifier", "Data Authority Identifier",
    RoninCodeSystem.IDENTIFIER_TYPE.value,
)
MRN_IDENTIFIER_TYPE = _identifier_type(
    "MR", "Medical Record Number", "MRN", CodeSystem.IDENTIFIER_TYPE.value
)

DEFAULT_DATA_AUTHORITY = "EHR Data Authority"


def data_authority_extension(value: str = DEFAULT_DATA_AUTHORITY) -> Extension:
    """Extension placed on a reference's ``type`` asserting its data authority."""
    return Extension.model_validate(
        {
            "url": RoninExtension.RONIN_DATA_AUTHORITY_EXTENSION.value,
            "valueCoding": {
                "system": RoninCodeSystem.DATA_AUTHORITY_ID.value,
                "code": value,
            },
        }
    )


def is_data_authority_extension(extension: Extension, value: str | None = None) -> bool:
    if extension.url != RoninExtension.RONIN_DATA_AUTHORITY_EXTENSION.value:
        return False
    dynamic = extension.value
    if dynamic is None or dynamic.type is not DynamicValueType.CODING:
        return False
    coding = dynamic.value if isinstance(dynamic.value, dict) else {}
    if coding.get("system") != RoninCodeSystem.DATA_AUTHORITY_ID.value:
        return False
    return value is None or coding.get("code") == value


__all__ = [
    "DATA_ABSENT_REASON_EXTENSION",
    "DEFAULT_DATA_AUTHORITY",
    "DATA_AUTHORITY_IDENTIFIER_TYPE",
    "FHIR_ID_IDENTIFIER_TYPE",
    "MRN_IDENTIFIER_TYPE",
    "TENANT_IDENTIFIER_TYPE",
    "CodeSystem",
    "RoninCodeSystem",
    "RoninExtension",
    "RoninProfile",
    "data_authority_extension",
    "is_data_authority_extension",
]
