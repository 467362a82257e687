import pytest

from Ronin_FHIR.validation.accumulator import (
    MULTIPLE_ERRORS_BANNER,
    Validation,
    ValidationAlertError,
)
from Ronin_FHIR.validation.issues import (
    IssueDefinition,
    ValidationIssueSeverity,
    required_field_error,
)
from Ronin_FHIR.validation.location import LocationContext

_WARNING = IssueDefinition(
    "TEST_WARN",
    "Advisory only",
    LocationContext("", "contained"),
    severity=ValidationIssueSeverity.WARNING,
)


def test_check_not_none_treats_empty_values_as_absent():
    result = Validation()
    assert result.check_not_none("x", required_field_error(LocationContext("Patient", "id"))) is True
    assert result.check_not_none("", required_field_error(LocationContext("Patient", "id"))) is False
    assert result.check_not_none([], required_field_error(LocationContext("Patient", "name"))) is False
    assert result.codes() == ["REQ_FIELD", "REQ_FIELD"]


def test_issues_bind_below_parent_context():
    result = Validation()
    result.add(required_field_error(LocationContext("", "gender")), LocationContext("Patient"))
    issue = result.issues()[0]
    assert str(issue.location) == "Patient.gender"
    assert issue.render() == "ERROR REQ_FIELD: gender is a required element @ Patient.gender"


def test_check_in_ignores_missing_values():
    result = Validation()
    definition = IssueDefinition("INV", "bad", LocationContext("Patient", "gender"))
    assert result.check_in_value_set(None, {"male"}, definition)
    assert not result.check_in_value_set("robot", {"male"}, definition)
    assert result.codes() == ["INV"]


def test_warnings_do_not_raise():
    result = Validation()
    result.add(_WARNING, LocationContext("Patient"))
    assert result.has_issues()
    assert not result.has_errors()
    result.alert_if_errors()


def test_alert_if_errors_lists_errors_in_order():
    result = Validation()
    result.add(required_field_error(LocationContext("Patient", "gender")))
    result.add(_WARNING, LocationContext("Patient"))
    result.add(required_field_error(LocationContext("Patient", "name")))
    with pytest.raises(ValidationAlertError) as exc:
        result.alert_if_errors(MULTIPLE_ERRORS_BANNER)
    message = str(exc.value)
    assert message.startswith("Encountered multiple validation errors:\n")
    assert message.splitlines()[1:] == [
        "ERROR REQ_FIELD: gender is a required element @ Patient.gender",
        "ERROR REQ_FIELD: name is a required element @ Patient.name",
    ]
    assert len(exc.value.issues) == 2


def test_merge_preserves_order():
    first = Validation()
    first.add(required_field_error(LocationContext("Patient", "a")))
    second = Validation()
    second.add(required_field_error(LocationContext("Patient", "b")))
    combined = Validation().merge(first).merge(second)
    assert [str(issue.location) for issue in combined] == ["Patient.a", "Patient.b"]
    assert len(first) == 1
