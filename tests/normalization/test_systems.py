from Ronin_FHIR.models.constants import CodeSystem
from Ronin_FHIR.normalization.systems import Normalizer, normalize_system


def test_normalize_system_accepts_bare_and_urn_oids():
    table = {"2.16.840.1.113883.6.1": CodeSystem.LOINC.value}
    assert normalize_system("urn:oid:2.16.840.1.113883.6.1", table) == CodeSystem.LOINC.value
    assert normalize_system("2.16.840.1.113883.6.1", table) == CodeSystem.LOINC.value
    assert normalize_system("http://other", table) == "http://other"
    assert normalize_system(None, table) is None


def test_codings_and_identifiers_are_normalized():
    resource = {
        "resourceType": "Condition",
        "code": {"coding": [{"system": "urn:oid:2.16.840.1.113883.6.96", "code": "1"}]},
        "identifier": [{"system": "urn:oid:2.16.840.1.113883.4.6", "value": "123"}],
    }
    normalized = Normalizer().normalize(resource)
    assert normalized["code"]["coding"][0]["system"] == CodeSystem.SNOMED_CT.value
    assert normalized["identifier"][0]["system"] == CodeSystem.NPI.value
    assert resource["code"]["coding"][0]["system"] == "urn:oid:2.16.840.1.113883.6.96"


def test_codeable_concept_text_from_single_display():
    resource = {
        "resourceType": "Condition",
        "code": {"coding": [{"system": "a", "code": "1", "display": "One"}]},
        "category": [
            {
                "coding": [
                    {"system": "a", "code": "1", "display": "One"},
                    {"system": "a", "code": "2", "display": "Two", "userSelected": True},
                ]
            },
            {"coding": [{"code": "1", "display": "One"}, {"code": "2", "display": "Two"}]},
        ],
    }
    normalized = Normalizer().normalize(resource)
    assert normalized["code"]["text"] == "One"
    assert normalized["category"][0]["text"] == "Two"
    assert "text" not in normalized["category"][1]


def test_empty_extensions_are_dropped_and_contained_untouched():
    ronin_url = "http://projectronin.io/fhir/StructureDefinition/Extension/tenant-sourceConditionCode"
    resource = {
        "resourceType": "Condition",
        "extension": [
            {"url": "http://example.org/empty"},
            {"valueString": "no url"},
            {"url": "http://example.org/kept", "valueString": "x"},
            {"url": ronin_url},
        ],
        "subject": {"extension": [{"url": "http://example.org/empty"}]},
        "contained": [{"resourceType": "Patient", "extension": [{"url": "http://example.org/empty"}]}],
    }
    normalized = Normalizer().normalize(resource)
    assert [item["url"] for item in normalized["extension"]] == ["http://example.org/kept", ronin_url]
    assert normalized["subject"] == {}
    assert normalized["contained"] == resource["contained"]
