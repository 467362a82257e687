from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.profiles.service_request import RoninServiceRequest

TENANT_CODES = "http://tenant.example.org/codes"


def _service_request(**overrides):
    resource = {
        "resourceType": "ServiceRequest",
        "id": "s1",
        "status": "active",
        "intent": "order",
        "category": [{"coding": [{"system": TENANT_CODES, "code": "sr-cat"}]}],
        "code": {"coding": [{"system": TENANT_CODES, "code": "sr-code"}]},
        "subject": {"reference": "Patient/1"},
    }
    resource.update(overrides)
    return resource


def _profile(registry):
    return RoninServiceRequest(registry=registry, settings=TransformSettings())


def test_transform_maps_category_and_code(registry, tenant):
    transformed, validation = _profile(registry).transform(_service_request(), tenant)
    assert validation.issues() == []
    assert transformed["category"][0]["coding"][0]["code"] == "108252007"
    assert transformed["code"]["coding"][0]["code"] == "2345-7"
    assert len(transformed["extension"]) == 2


def test_empty_category_is_required(registry, tenant):
    _, validation = _profile(registry).transform(_service_request(category=[]), tenant)
    assert "ERROR REQ_FIELD: category is a required element @ ServiceRequest.category" in [
        issue.render() for issue in validation
    ]
    assert "RONIN_SERVREQ_004" not in validation.codes()
    assert "RONIN_SERVREQ_001" in validation.codes()
    assert "RONIN_SERVREQ_002" in validation.codes()


def test_exactly_one_category(registry, tenant):
    second = {"coding": [{"system": "http://snomed.info/sct", "code": "1"}]}
    resource = _service_request()
    resource["category"].append(second)
    transformed, validation = _profile(registry).transform(resource, tenant)
    assert transformed["category"][1] == second
    assert validation.codes() == ["RONIN_SERVREQ_004"]


def test_code_extension_must_be_unique(registry, tenant):
    transformed, _ = _profile(registry).transform(_service_request(), tenant)
    transformed["extension"].append(dict(transformed["extension"][1]))
    validation = _profile(registry).validate(transformed)
    assert validation.codes() == ["RONIN_SERVREQ_003"]
