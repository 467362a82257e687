import pytest

from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.profiles.condition import (
    RoninConditionEncounterDiagnosis,
    RoninConditionProblemsAndHealthConcerns,
)
from Ronin_FHIR.profiles.multiple import MultipleProfileResource
from Ronin_FHIR.profiles.organization import RoninOrganization

CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/condition-category"


def _condition(category):
    return {
        "resourceType": "Condition",
        "id": "c1",
        "category": [{"coding": [{"system": CATEGORY_SYSTEM, "code": category}]}],
        "code": {"coding": [{"system": "http://tenant.example.org/codes", "code": "dx-1"}]},
        "subject": {"reference": "Patient/1"},
    }


def _problems(registry):
    return RoninConditionProblemsAndHealthConcerns(registry=registry, settings=TransformSettings())


def _diagnosis(registry):
    return RoninConditionEncounterDiagnosis(registry=registry, settings=TransformSettings())


def test_single_qualifying_profile_is_used(registry, tenant):
    resource = MultipleProfileResource([_problems(registry), _diagnosis(registry)])
    assert resource.qualifies(_condition("problem-list-item"))
    transformed, validation = resource.transform(_condition("problem-list-item"), tenant)
    assert validation.issues() == []
    assert transformed["id"] == "test-c1"


def test_multiple_qualifying_profiles_is_an_error(registry, tenant):
    resource = MultipleProfileResource([_problems(registry), _problems(registry)])
    transformed, validation = resource.transform(_condition("problem-list-item"), tenant)
    assert transformed is None
    assert [issue.render() for issue in validation] == [
        "ERROR RONIN_PROFILE_002: Multiple profiles qualified @ Condition"
    ]


def test_default_profile_is_used_with_warning(registry):
    resource = MultipleProfileResource([_problems(registry)], default_profile=_diagnosis(registry))
    validation = resource.validate(_condition("other"))
    assert validation.codes()[0] == "RONIN_PROFILE_003"
    assert validation.warnings()[0].description == "No profiles qualified, the default profile was used"
    assert "USCORE_CND_ENC_DX_001" in validation.codes()


def test_profiles_must_share_resource_type(registry):
    with pytest.raises(ValueError):
        MultipleProfileResource([])
    with pytest.raises(ValueError):
        MultipleProfileResource([_problems(registry), RoninOrganization(settings=TransformSettings())])
