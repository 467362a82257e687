from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.models.constants import RoninCodeSystem
from Ronin_FHIR.normalization.identifiers import MrnIdentifierResolver
from Ronin_FHIR.profiles.patient import RoninPatient

MRN_SYSTEM = "http://hospital.example.org/mrn"


def _patient():
    return {
        "resourceType": "Patient",
        "id": "12345",
        "identifier": [{"system": MRN_SYSTEM, "value": "A1"}],
        "name": [{"family": "Doe", "given": ["Jane"]}],
        "gender": "female",
        "birthDate": "1970-01-01",
        "managingOrganization": {"reference": "Organization/1"},
    }


def _profile(**kwargs):
    return RoninPatient(settings=TransformSettings(mrn_system=MRN_SYSTEM), **kwargs)


def test_transform_adds_identity(tenant):
    transformed, validation = _profile().transform(_patient(), tenant)
    assert validation.issues() == []
    systems = [identifier["system"] for identifier in transformed["identifier"]]
    assert systems == [
        MRN_SYSTEM,
        RoninCodeSystem.TENANT.value,
        RoninCodeSystem.FHIR_ID.value,
        RoninCodeSystem.DATA_AUTHORITY_ID.value,
        RoninCodeSystem.MRN.value,
    ]
    assert transformed["identifier"][-1]["value"] == "A1"
    assert transformed["managingOrganization"]["reference"] == "Organization/test-1"


def test_unresolvable_mrn_returns_none(tenant):
    resource = _patient()
    resource["identifier"] = [{"system": "http://other", "value": "X"}]
    transformed, validation = _profile().transform(resource, tenant)
    assert transformed is None
    assert [issue.render() for issue in validation] == [
        "ERROR RONIN_PAT_001: MRN identifier is required @ Patient.identifier"
    ]


def test_injected_resolver_wins(tenant):
    resource = _patient()
    resource["identifier"] = [{"system": "http://custom/mrn", "value": "C3"}]
    transformed, validation = _profile(
        identifier_resolver=MrnIdentifierResolver("http://custom/mrn")
    ).transform(resource, tenant)
    assert validation.issues() == []
    assert transformed["identifier"][-1]["value"] == "C3"


def test_missing_id_returns_none(tenant):
    resource = _patient()
    del resource["id"]
    transformed, validation = _profile().transform(resource, tenant)
    assert transformed is None
    assert [issue.render() for issue in validation] == [
        "ERROR REQ_FIELD: id is a required element @ Patient.id"
    ]


def test_name_and_gender_rules(tenant):
    transformed, _ = _profile().transform(_patient(), tenant)
    transformed["name"] = [
        {"text": "Jane"},
        {
            "extension": [
                {
                    "url": "http://hl7.org/fhir/StructureDefinition/data-absent-reason",
                    "valueCode": "unknown",
                }
            ]
        },
    ]
    del transformed["gender"]
    validation = _profile().validate(transformed)
    assert validation.codes() == ["REQ_FIELD", "USCORE_PAT_002"]
    assert str(validation.issues()[1].location) == "Patient.name[0]"

    transformed["name"] = []
    assert "USCORE_PAT_001" in _profile().validate(transformed).codes()


def test_mrn_rules(tenant):
    transformed, _ = _profile().transform(_patient(), tenant)
    mrn = transformed["identifier"][-1]
    mrn["type"] = {"text": "MRN"}
    del mrn["value"]
    validation = _profile().validate(transformed)
    assert validation.codes() == ["RONIN_PAT_002", "RONIN_PAT_003"]
