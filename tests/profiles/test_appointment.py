from Ronin_FHIR.config.settings import TransformSettings
from Ronin_FHIR.models.constants import RoninExtension
from Ronin_FHIR.profiles.appointment import RoninAppointment


def _appointment(**overrides):
    resource = {
        "resourceType": "Appointment",
        "id": "a1",
        "status": "Scheduled",
        "start": "2023-01-01T10:00:00Z",
        "end": "2023-01-01T10:30:00Z",
        "participant": [{"actor": {"reference": "Patient/1"}, "status": "accepted"}],
    }
    resource.update(overrides)
    return resource


def _profile(registry):
    return RoninAppointment(registry=registry, settings=TransformSettings())


def test_status_is_mapped_with_source_extension(registry, tenant):
    transformed, validation = _profile(registry).transform(_appointment(), tenant)
    assert validation.issues() == []
    assert transformed["status"] == "booked"
    extension = transformed["extension"][0]
    assert extension["url"] == RoninExtension.TENANT_SOURCE_APPOINTMENT_STATUS.value
    assert extension["valueCoding"]["code"] == "Scheduled"


def test_start_and_end_only_optional_for_unscheduled(registry, tenant):
    resource = _appointment()
    del resource["start"]
    _, validation = _profile(registry).transform(resource, tenant)
    assert validation.codes() == ["R4_APPT_002"]

    resource["status"] = "cancelled"
    _, validation = _profile(registry).transform(resource, tenant)
    assert validation.issues() == []


def test_mapping_outside_value_set(registry, tenant):
    transformed, validation = _profile(registry).transform(_appointment(status="Weird"), tenant)
    assert transformed["status"] == "Weird"
    assert validation.codes() == ["INV_CONMAP_VALUE_SET", "INV_VALUE_SET", "RONIN_APPT_001"]


def test_participant_actor_needs_data_authority(registry, tenant):
    transformed, _ = _profile(registry).transform(_appointment(), tenant)
    del transformed["participant"][0]["actor"]["_type"]
    validation = _profile(registry).validate(transformed)
    assert [str(issue.location) for issue in validation] == [
        "Appointment.participant[0].actor.type.extension"
    ]
