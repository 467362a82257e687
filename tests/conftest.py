from __future__ import annotations

import pytest

from Ronin_FHIR.config.settings import TransformSettings, get_settings
from Ronin_FHIR.models.constants import CodeSystem, RoninProfile
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.normalization.registry import StaticConceptMapRegistry

TENANT_CODES = "http://tenant.example.org/codes"
APPOINTMENT_STATUS_SYSTEM = "http://projectronin.io/fhir/CodeSystem/test/AppointmentStatus"


def _entry(code: str, target_system: str, target_code: str, display: str) -> dict:
    return {
        "source": [{"system": TENANT_CODES, "code": code}],
        "target": {
            "coding": [{"system": target_system, "code": target_code, "display": display}],
            "text": display,
        },
    }


REGISTRY_DATA = {
    "concept_maps": [
        {
            "tenant": "test",
            "field": "Condition.code",
            "metadata": {"conceptMapName": "test-condition-code", "version": "1"},
            "entries": [_entry("dx-1", CodeSystem.SNOMED_CT.value, "38341003", "Hypertension")],
        },
        {
            "tenant": "test",
            "field": "CarePlan.category",
            "entries": [
                _entry(
                    "plan-1",
                    CodeSystem.CAREPLAN_CATEGORY.value,
                    "assess-plan",
                    "Assessment and Plan of Treatment",
                )
            ],
        },
        {
            "tenant": "test",
            "field": "Procedure.code",
            "entries": [_entry("proc-1", CodeSystem.CPT.value, "99213", "Office visit")],
        },
        {
            "tenant": "test",
            "field": "Procedure.category",
            "entries": [_entry("cat-1", CodeSystem.SNOMED_CT.value, "387713003", "Surgical")],
        },
        {
            "tenant": "test",
            "field": "ServiceRequest.category",
            "entries": [_entry("sr-cat", CodeSystem.SNOMED_CT.value, "108252007", "Laboratory")],
        },
        {
            "tenant": "test",
            "field": "ServiceRequest.code",
            "entries": [_entry("sr-code", CodeSystem.LOINC.value, "2345-7", "Glucose")],
        },
        {
            "tenant": "test",
            "field": "Appointment.status",
            "entries": [
                {
                    "source": [{"system": APPOINTMENT_STATUS_SYSTEM, "code": "Scheduled"}],
                    "target": {
                        "coding": [{"system": "http://hl7.org/fhir/appointmentstatus", "code": "booked"}]
                    },
                },
                {
                    "source": [{"system": APPOINTMENT_STATUS_SYSTEM, "code": "Weird"}],
                    "target": {
                        "coding": [{"system": "http://hl7.org/fhir/appointmentstatus", "code": "bogus"}]
                    },
                },
            ],
        },
    ],
    "value_sets": [
        {
            "field": "Condition.category",
            "profile": RoninProfile.CONDITION_PROBLEMS_CONCERNS.value,
            "codings": [{"system": CodeSystem.CONDITION_CATEGORY.value, "code": "problem-list-item"}],
        }
    ],
}


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.delenv("RONIN_ENV", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(mnemonic="test")


@pytest.fixture
def registry() -> StaticConceptMapRegistry:
    return StaticConceptMapRegistry.from_mapping(REGISTRY_DATA)


@pytest.fixture
def transform_settings() -> TransformSettings:
    return TransformSettings()
