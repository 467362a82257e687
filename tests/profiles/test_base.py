import pytest

from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.profiles.appointment import RoninAppointment
from Ronin_FHIR.profiles.organization import RoninOrganization
from Ronin_FHIR.utils.logging import get_tenant
from Ronin_FHIR.validation.pipeline import ValidationState


def _organization(**overrides):
    resource = {"resourceType": "Organization", "id": "o1", "active": True, "name": "Clinic"}
    resource.update(overrides)
    return resource


def test_layers_run_without_short_circuit(tenant):
    profile = RoninOrganization(settings=TransformSettings())
    resource = {"resourceType": "Organization", "active": "yes"}
    validation = profile.validate(resource)
    assert validation.codes() == [
        "R4_INV_PRIM",
        "REQ_FIELD",
        "REQ_FIELD",
        "RONIN_TNNT_ID_001",
        "RONIN_FHIR_ID_001",
    ]
    assert [str(issue.location) for issue in validation][:3] == [
        "Organization.active",
        "Organization.name",
        "Organization.meta",
    ]


def test_pipeline_has_all_layers():
    profile = RoninOrganization(settings=TransformSettings())
    for state in (
        ValidationState.STRUCTURAL_CHECK,
        ValidationState.BASE_PROFILE_CHECK,
        ValidationState.OVERLAY_PROFILE_CHECK,
        ValidationState.BUSINESS_RULES_CHECK,
    ):
        assert len(profile.pipeline.rules(state)) == 1


def test_null_on_error(tenant):
    profile = RoninOrganization(settings=TransformSettings(null_on_error=True))
    transformed, validation = profile.transform(_organization(name=None), tenant)
    assert transformed is None
    assert validation.has_errors()
    transformed, _ = profile.transform(_organization(), tenant)
    assert transformed is not None


def test_transform_output_is_idempotent_under_localization(tenant):
    profile = RoninOrganization(settings=TransformSettings())
    transformed, _ = profile.transform(_organization(partOf={"reference": "Organization/2"}), tenant)
    assert profile.localizer.localize(transformed, tenant) == transformed
    assert transformed["partOf"]["reference"] == "Organization/test-2"


def test_tenant_is_unbound_after_transform(tenant):
    RoninOrganization(settings=TransformSettings()).transform(_organization(), tenant)
    assert get_tenant() is None


def test_concept_mapping_profiles_require_registry(tenant):
    profile = RoninAppointment(settings=TransformSettings())
    with pytest.raises(ValueError):
        profile.transform({"resourceType": "Appointment", "id": "a1", "status": "booked"}, tenant)


def test_registry_loaded_from_configured_path(tmp_path, tenant):
    path = tmp_path / "maps.yaml"
    path.write_text(
        "concept_maps:\n"
        "  - tenant: test\n"
        "    field: Appointment.status\n"
        "    entries:\n"
        "      - source: [{system: \"http://projectronin.io/fhir/CodeSystem/test/AppointmentStatus\", code: Held}]\n"
        "        target: {coding: [{system: \"http://hl7.org/fhir/appointmentstatus\", code: booked}]}\n",
        encoding="utf-8",
    )
    profile = RoninAppointment(settings=TransformSettings(concept_map_path=path))
    transformed, _ = profile.transform(
        {"resourceType": "Appointment", "id": "a1", "status": "Held"}, tenant
    )
    assert transformed["status"] == "booked"


def test_wrongly_typed_identifier_is_reported_not_raised():
    profile = RoninOrganization(settings=TransformSettings())
    resource = _organization(identifier=[{"system": "http://example.org/ids", "value": 123}])
    validation = profile.validate(resource)
    assert validation.codes()[0] == "R4_INV_PRIM"
    assert str(validation.issues()[0].location) == "Organization.identifier[0].value"
    assert "RONIN_TNNT_ID_001" in validation.codes()


def test_transform_keeps_going_past_wrongly_typed_identifier(tenant):
    profile = RoninOrganization(settings=TransformSettings())
    transformed, validation = profile.transform(
        _organization(identifier=[{"system": "http://example.org/ids", "value": 123}]), tenant
    )
    assert transformed is not None
    assert transformed["identifier"][0] == {"system": "http://example.org/ids", "value": 123}
    assert validation.codes() == ["R4_INV_PRIM"]


@pytest.mark.parametrize("raw_id", [12345, "", "   ", {"value": "1"}])
def test_non_string_id_is_unidentifiable(tenant, raw_id):
    profile = RoninOrganization(settings=TransformSettings())
    transformed, validation = profile.transform(_organization(id=raw_id), tenant)
    assert transformed is None
    assert validation.codes() == ["REQ_FIELD"]
    assert str(validation.issues()[0].location) == "Organization.id"
