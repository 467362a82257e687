from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.models.constants import RoninExtension
from Ronin_FHIR.profiles.care_plan import RoninCarePlan


def _care_plan(category_code="plan-1"):
    return {
        "resourceType": "CarePlan",
        "id": "cp1",
        "status": "active",
        "intent": "plan",
        "category": [{"coding": [{"system": "http://tenant.example.org/codes", "code": category_code}]}],
        "subject": {"reference": "Patient/1"},
        "activity": [
            {"reference": {"reference": "ServiceRequest/sr1"}},
            {
                "detail": {
                    "status": "scheduled",
                    "performer": [{"reference": "Practitioner/pr1"}],
                }
            },
        ],
    }


def _profile(registry):
    return RoninCarePlan(registry=registry, settings=TransformSettings())


def test_transform_maps_categories_and_localizes_activities(registry, tenant):
    transformed, validation = _profile(registry).transform(_care_plan(), tenant)
    assert validation.issues() == []
    assert transformed["category"][0]["coding"][0]["code"] == "assess-plan"
    assert transformed["extension"][0]["url"] == RoninExtension.TENANT_SOURCE_CARE_PLAN_CATEGORY.value
    assert transformed["activity"][0]["reference"]["reference"] == "ServiceRequest/test-sr1"
    performer = transformed["activity"][1]["detail"]["performer"][0]
    assert performer["reference"] == "Practitioner/test-pr1"


def test_unmapped_category_is_kept_and_reported(registry, tenant):
    transformed, validation = _profile(registry).transform(_care_plan("unknown"), tenant)
    assert transformed["category"][0]["coding"][0]["code"] == "unknown"
    assert validation.codes() == ["NOV_CONMAP_LOOKUP", "RONIN_CAREPLAN_001"]
    assert str(validation.issues()[1].location) == "CarePlan"


def test_activity_reference_or_detail(registry, tenant):
    transformed, _ = _profile(registry).transform(_care_plan(), tenant)
    transformed["activity"] = [
        {"reference": {"reference": "ServiceRequest/test-1"}, "detail": {"status": "scheduled"}},
        {"progress": [{"text": "nothing"}]},
    ]
    validation = _profile(registry).validate(transformed)
    assert [issue.render() for issue in validation] == [
        "ERROR R4_CRPLN_001: Provide a reference or detail, not both @ CarePlan.activity[0]",
        "ERROR R4_CRPLN_002: Activity must provide a reference or detail @ CarePlan.activity[1]",
    ]
