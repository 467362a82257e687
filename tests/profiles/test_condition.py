from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.models.constants import CodeSystem, RoninCodeSystem, RoninExtension, RoninProfile
from Ronin_FHIR.profiles.condition import (
    RoninConditionEncounterDiagnosis,
    RoninConditionProblemsAndHealthConcerns,
    RoninConditions,
)

CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/condition-category"


def _condition(category="problem-list-item", code="dx-1"):
    return {
        "resourceType": "Condition",
        "id": "12345",
        "category": [{"coding": [{"system": CATEGORY_SYSTEM, "code": category}]}],
        "code": {"coding": [{"system": "http://tenant.example.org/codes", "code": code}]},
        "subject": {"reference": "Patient/1234"},
    }


def _profile(registry, **settings):
    return RoninConditionProblemsAndHealthConcerns(
        registry=registry, settings=TransformSettings(**settings)
    )


def test_transform_produces_valid_ronin_condition(registry, tenant):
    transformed, validation = _profile(registry).transform(_condition(), tenant)
    assert validation.issues() == []
    assert transformed["id"] == "test-12345"
    assert transformed["meta"]["profile"] == [RoninProfile.CONDITION_PROBLEMS_CONCERNS.value]
    assert transformed["code"]["coding"][0]["code"] == "38341003"
    assert transformed["subject"]["reference"] == "Patient/test-1234"
    assert transformed["subject"]["type"] == "Patient"
    source = transformed["extension"][0]
    assert source["url"] == RoninExtension.TENANT_SOURCE_CONDITION_CODE.value
    assert source["valueCodeableConcept"]["coding"][0]["code"] == "dx-1"
    systems = [identifier["system"] for identifier in transformed["identifier"]]
    assert systems == [RoninCodeSystem.TENANT.value, RoninCodeSystem.FHIR_ID.value]


def test_transform_does_not_mutate_input(registry, tenant):
    original = _condition()
    _profile(registry).transform(original, tenant)
    assert original == _condition()


def test_unmapped_code_fails_closed(registry, tenant):
    transformed, validation = _profile(registry).transform(_condition(code="zzz"), tenant)
    assert transformed is not None
    assert transformed["code"]["coding"][0]["code"] == "zzz"
    assert "NOV_CONMAP_LOOKUP" in validation.codes()
    assert "RONIN_CND_001" in validation.codes()


def test_tenants_without_mapping_keep_source_code(registry, tenant):
    profile = _profile(registry, tenants_without_condition_mapping="other, test")
    transformed, validation = profile.transform(_condition(code="zzz"), tenant)
    assert validation.issues() == []
    assert transformed["code"]["coding"][0]["code"] == "zzz"
    assert transformed["extension"][0]["valueCodeableConcept"]["coding"][0]["code"] == "zzz"


def test_empty_category_is_required(registry, tenant):
    transformed, _ = _profile(registry).transform(_condition(), tenant)
    transformed["category"] = []
    validation = _profile(registry).validate(transformed)
    assert [issue.render() for issue in validation] == [
        "ERROR REQ_FIELD: category is a required element @ Condition.category"
    ]


def test_subject_must_be_patient(registry, tenant):
    resource = _condition()
    resource["subject"] = {"reference": "Condition/1234", "type": "Condition"}
    _, validation = _profile(registry).transform(resource, tenant)
    ronin_type = [issue for issue in validation if issue.code == "RONIN_INV_REF_TYPE"]
    assert len(ronin_type) == 1
    assert ronin_type[0].description == "The referenced resource type was not Patient"
    assert str(ronin_type[0].location) == "Condition.subject"
    assert "INV_REF_TYPE" in validation.codes()


def test_empty_identifier_list_reports_tenant_identifier(registry, tenant):
    transformed, _ = _profile(registry).transform(_condition(), tenant)
    transformed["identifier"] = []
    validation = _profile(registry).validate(transformed)
    tenant_errors = [issue for issue in validation if issue.code.startswith("RONIN_TNNT_ID")]
    assert [issue.render() for issue in tenant_errors] == [
        "ERROR RONIN_TNNT_ID_001: Tenant identifier is required @ Condition.identifier"
    ]


def test_qualification_by_category():
    problems = RoninConditionProblemsAndHealthConcerns(settings=TransformSettings())
    diagnosis = RoninConditionEncounterDiagnosis(settings=TransformSettings())
    assert problems.qualifies(_condition())
    assert not diagnosis.qualifies(_condition())
    assert diagnosis.qualifies(_condition(category="encounter-diagnosis"))


def test_wrong_category_reports_profile_error(registry, tenant):
    transformed, _ = _profile(registry).transform(_condition(), tenant)
    transformed["category"][0]["coding"][0]["code"] = "encounter-diagnosis"
    validation = _profile(registry).validate(transformed)
    assert validation.codes() == ["USCORE_CNDPAHC_001", "INV_VALUE_SET"]


def test_registry_value_set_narrows_categories(registry, tenant):
    health_concern = _condition()
    health_concern["category"] = [
        {"coding": [{"system": CodeSystem.CONDITION_CATEGORY_HEALTH_CONCERN.value, "code": "health-concern"}]}
    ]
    assert RoninConditionProblemsAndHealthConcerns(settings=TransformSettings()).qualifies(health_concern)
    assert not _profile(registry).qualifies(health_concern)

    transformed, _ = _profile(registry).transform(_condition(), tenant)
    transformed["category"] = health_concern["category"]
    validation = _profile(registry).validate(transformed)
    assert [issue.render() for issue in validation] == [
        "ERROR INV_VALUE_SET: '"
        + CodeSystem.CONDITION_CATEGORY_HEALTH_CONCERN.value
        + "|health-concern' is outside of required value set @ Condition.category"
    ]


def test_conditions_dispatch_on_category(registry, tenant):
    conditions = RoninConditions(registry=registry, settings=TransformSettings())
    transformed, validation = conditions.transform(_condition(category="encounter-diagnosis"), tenant)
    assert validation.issues() == []
    assert transformed["meta"]["profile"] == [RoninProfile.CONDITION_ENCOUNTER_DIAGNOSIS.value]

    transformed, validation = conditions.transform(_condition(category="other"), tenant)
    assert transformed is None
    assert validation.codes() == ["RONIN_PROFILE_001"]
