from Ronin_FHIR.models.constants import RoninExtension
from Ronin_FHIR.normalization.concept_map import ConceptMapNormalizer, tenant_code_system
from Ronin_FHIR.validation.accumulator import Validation
from Ronin_FHIR.validation.location import LocationContext

CONDITION = LocationContext("Condition")
CODE = LocationContext("Condition", "code")
SOURCE_URL = RoninExtension.TENANT_SOURCE_CONDITION_CODE.value
STATUSES = ("proposed", "booked", "cancelled")


def _concept(code):
    return {"coding": [{"system": "http://tenant.example.org/codes", "code": code}]}


def test_mapped_concept_carries_provenance(registry, tenant):
    normalizer = ConceptMapNormalizer(registry)
    result = Validation()
    mapped = normalizer.map_codeable_concept(
        tenant, "Condition.code", _concept("dx-1"), {}, SOURCE_URL, CODE, CONDITION, result
    )
    assert len(result) == 0
    assert mapped.value.coding[0].code == "38341003"
    extension = mapped.extension.to_fhir()
    assert extension == {"url": SOURCE_URL, "valueCodeableConcept": _concept("dx-1")}


def test_unmapped_concept_fails_closed(registry, tenant):
    normalizer = ConceptMapNormalizer(registry)
    result = Validation()
    mapped = normalizer.map_codeable_concept(
        tenant, "Condition.code", _concept("zzz"), {}, SOURCE_URL, CODE, CONDITION, result
    )
    assert mapped is None
    assert [issue.render() for issue in result] == [
        "ERROR NOV_CONMAP_LOOKUP: Tenant source value 'zzz' has no target defined in "
        "any Condition.code concept map for tenant 'test' @ Condition.code"
    ]
    assert result.issues()[0].metadata == ({"conceptMapName": "test-condition-code", "version": "1"},)


def test_absent_concept_is_not_looked_up(registry, tenant):
    result = Validation()
    mapped = ConceptMapNormalizer(registry).map_codeable_concept(
        tenant, "Condition.code", None, {}, SOURCE_URL, CODE, CONDITION, result
    )
    assert mapped is None
    assert len(result) == 0


def test_tenant_code_system(tenant):
    assert (
        tenant_code_system(tenant, "Appointment.status")
        == "http://projectronin.io/fhir/CodeSystem/test/AppointmentStatus"
    )


def test_map_code(registry, tenant):
    normalizer = ConceptMapNormalizer(registry)
    url = RoninExtension.TENANT_SOURCE_APPOINTMENT_STATUS.value
    status = LocationContext("Appointment", "status")
    parent = LocationContext("Appointment")

    result = Validation()
    code, extension = normalizer.map_code(
        tenant, "Appointment.status", "Scheduled", {}, url, STATUSES, status, parent, result
    )
    assert code == "booked"
    assert extension.to_fhir()["valueCoding"] == {
        "system": "http://projectronin.io/fhir/CodeSystem/test/AppointmentStatus",
        "code": "Scheduled",
    }
    code, _ = normalizer.map_code(
        tenant, "Appointment.status", "cancelled", {}, url, STATUSES, status, parent, result
    )
    assert code == "cancelled"
    assert len(result) == 0

    assert normalizer.map_code(
        tenant, "Appointment.status", "Weird", {}, url, STATUSES, status, parent, result
    ) is None
    assert normalizer.map_code(
        tenant, "Appointment.status", "Unknown", {}, url, STATUSES, status, parent, result
    ) is None
    assert result.codes() == ["INV_CONMAP_VALUE_SET", "NOV_CONMAP_LOOKUP"]
