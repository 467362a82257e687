"""Validation rules shared by the Ronin profiles.

Every function appends to the supplied :class:`Validation` and never raises
for data problems. Locations are built relative to ``parent_context`` which is
normally ``LocationContext(<resourceType>)``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog

from Ronin_FHIR.models.constants import (
    DATA_AUTHORITY_IDENTIFIER_TYPE,
    FHIR_ID_IDENTIFIER_TYPE,
    TENANT_IDENTIFIER_TYPE,
    RoninCodeSystem,
    is_data_authority_extension,
)
from Ronin_FHIR.models.datatypes import (
    CodeableConcept,
    Coding,
    Extension,
    Identifier,
    parse_codeable_concept,
    parse_extensions,
    parse_identifiers,
    parse_reference,
)
from Ronin_FHIR.models.dynamic import DynamicValueType, resolve_dynamic_values

from .accumulator import Validation
from .issues import (
    IssueDefinition,
    ValidationIssueSeverity,
    invalid_dynamic_value_error,
    invalid_reference_type_error,
    invalid_value_set_error,
    required_field_error,
    ronin_invalid_reference_type_error,
)
from .location import LocationContext

logger = structlog.get_logger(__name__)

_IDENTIFIER = LocationContext("", "identifier")


def _identity_errors(prefix: str, label: str) -> tuple[IssueDefinition, IssueDefinition, IssueDefinition]:
    required = "required" if prefix == "RONIN_DAUTH_ID" else "is required"
    return (
        IssueDefinition(f"{prefix}_001", f"{label} identifier {required}", _IDENTIFIER),
        IssueDefinition(
            f"{prefix}_002",
            f"{label} identifier provided without proper CodeableConcept defined",
            _IDENTIFIER,
        ),
        IssueDefinition(f"{prefix}_003", f"{label} identifier value is required", _IDENTIFIER),
    )


TENANT_IDENTIFIER_ERRORS = _identity_errors("RONIN_TNNT_ID", "Tenant")
FHIR_IDENTIFIER_ERRORS = _identity_errors("RONIN_FHIR_ID", "FHIR")
DATA_AUTHORITY_IDENTIFIER_ERRORS = _identity_errors("RONIN_DAUTH_ID", "Data Authority")

REQUIRED_REFERENCE_TYPE = IssueDefinition(
    "RONIN_REQ_REF_TYPE_001",
    "Attribute Type is required for the reference",
    LocationContext("", "type"),
)
REQUIRED_DATA_AUTHORITY_EXTENSION = IssueDefinition(
    "RONIN_DAUTH_EX_001",
    "Data Authority extension identifier is required for reference",
    LocationContext("", "type.extension"),
)
CONTAINED_RESOURCE_PRESENT = IssueDefinition(
    "RONIN_CONTAINED_RESOURCE",
    "There is a Contained Resource present",
    LocationContext("", "contained"),
    severity=ValidationIssueSeverity.WARNING,
)


# ==============================================================================
# IDENTITY
# ==============================================================================


def _require_identifier(
    identifiers: Sequence[Identifier],
    system: str,
    expected_type: CodeableConcept,
    errors: tuple[IssueDefinition, IssueDefinition, IssueDefinition],
    parent_context: LocationContext,
    validation: Validation,
) -> None:
    found = next((item for item in identifiers if item.system == system), None)
    missing, wrong_type, missing_value = errors
    if not validation.check_not_none(found, missing, parent_context):
        return
    type_keys = found.type.coding_keys() if found.type else frozenset()
    validation.check_true(
        bool(type_keys) and expected_type.coding_keys() <= type_keys, wrong_type, parent_context
    )
    validation.check_not_none(found.value, missing_value, parent_context)


def require_ronin_identifiers(
    identifiers: Any,
    parent_context: LocationContext,
    validation: Validation,
    *,
    data_authority: bool = False,
) -> None:
    """Require the tenant and FHIR id identifiers, and optionally the data authority one."""
    parsed = parse_identifiers(identifiers)
    _require_identifier(
        parsed,
        RoninCodeSystem.TENANT.value,
        TENANT_IDENTIFIER_TYPE,
        TENANT_IDENTIFIER_ERRORS,
        parent_context,
        validation,
    )
    _require_identifier(
        parsed,
        RoninCodeSystem.FHIR_ID.value,
        FHIR_ID_IDENTIFIER_TYPE,
        FHIR_IDENTIFIER_ERRORS,
        parent_context,
        validation,
    )
    if data_authority:
        _require_identifier(
            parsed,
            RoninCodeSystem.DATA_AUTHORITY_ID.value,
            DATA_AUTHORITY_IDENTIFIER_TYPE,
            DATA_AUTHORITY_IDENTIFIER_ERRORS,
            parent_context,
            validation,
        )


def require_meta(
    meta: Any, profile: str, parent_context: LocationContext, validation: Validation
) -> None:
    """Require ``meta`` and that it declares ``profile``."""
    if not validation.check_not_none(
        meta, required_field_error(LocationContext("", "meta")), parent_context
    ):
        return
    profiles = meta.get("profile") if isinstance(meta, Mapping) else None
    validation.check_true(
        isinstance(profiles, list) and profile in profiles,
        IssueDefinition(
            "RONIN_META_001",
            f"No profiles found for expected type `{profile}`",
            LocationContext("", "meta.profile"),
        ),
        parent_context,
    )


# ==============================================================================
# CODED VALUES
# ==============================================================================


def require_codeable_concept(
    field_name: str, concept: Any, parent_context: LocationContext, validation: Validation
) -> None:
    """Every coding needs a system and code; at most one may be user selected."""
    parsed = parse_codeable_concept(concept)
    if parsed is None:
        return
    location = LocationContext("", field_name)
    if not validation.check_not_none(
        parsed.coding, required_field_error(location.append("coding")), parent_context
    ):
        return
    validation.check_true(
        all(_blank_free(coding.system) and _blank_free(coding.code) for coding in parsed.coding),
        IssueDefinition(
            "RONIN_NOV_CODING_001", "Coding list entry missing the required fields", location
        ),
        parent_context,
    )
    validation.check_true(
        sum(1 for coding in parsed.coding if coding.user_selected) <= 1,
        IssueDefinition(
            "RONIN_INV_CODING_SEL_001",
            "More than one coding entry has userSelected true",
            location,
        ),
        parent_context,
    )


def _blank_free(value: str | None) -> bool:
    return bool(value and value.strip())


def coding_in_value_set(coding: Coding | None, value_set: Sequence[Coding]) -> bool:
    if coding is None:
        return False
    return not value_set or any(item.key() == coding.key() for item in value_set)


def qualifies_for_value_set(concepts: Any, value_set: Sequence[Coding]) -> bool:
    """True when ``value_set`` is empty or any coding of any concept is in it."""
    if not value_set:
        return True
    if isinstance(concepts, Mapping):
        concepts = [concepts]
    if not isinstance(concepts, list):
        return False
    for concept in concepts:
        parsed = parse_codeable_concept(concept)
        if parsed and any(coding_in_value_set(coding, value_set) for coding in parsed.coding):
            return True
    return False


def check_value_set(
    concepts: Any,
    value_set: Sequence[Coding],
    location: LocationContext,
    parent_context: LocationContext,
    validation: Validation,
) -> bool:
    """Record ``INV_VALUE_SET`` when present concepts miss a required value set."""
    if concepts is None or concepts == []:
        return True
    items = [concepts] if isinstance(concepts, Mapping) else concepts
    rendered = ", ".join(
        f"{coding.system or 'null'}|{coding.code or 'null'}"
        for concept in items
        if (parsed := parse_codeable_concept(concept)) is not None
        for coding in parsed.coding
    )
    return validation.check_true(
        qualifies_for_value_set(concepts, value_set),
        invalid_value_set_error(location, rendered),
        parent_context,
    )


def check_dynamic_value_type(
    data: Mapping[str, Any],
    prefix: str,
    allowed: Iterable[DynamicValueType],
    parent_context: LocationContext,
    validation: Validation,
) -> None:
    """Restrict the ``<prefix>[x]`` element of ``data`` to ``allowed`` types."""
    allowed_types = list(allowed)
    for value in resolve_dynamic_values(data, prefix):
        validation.check_true(
            value.type in allowed_types,
            invalid_dynamic_value_error(
                LocationContext("", prefix), [item.value for item in allowed_types]
            ),
            parent_context,
        )


# ==============================================================================
# EXTENSIONS
# ==============================================================================


def find_extensions(
    extensions: Any, url: str, value_type: DynamicValueType | None = None
) -> list[Extension]:
    """Return extensions with ``url`` (and a ``value[x]`` of ``value_type``)."""
    found = []
    for extension in parse_extensions(extensions):
        if extension.url != url:
            continue
        if value_type is not None and (extension.value is None or extension.value.type is not value_type):
            continue
        found.append(extension)
    return found


def require_tenant_source_extension(
    extensions: Any,
    url: str,
    value_type: DynamicValueType,
    definition: IssueDefinition,
    parent_context: LocationContext,
    validation: Validation,
    *,
    exactly_one: bool = False,
) -> bool:
    """Check the tenant source extension for ``url`` carries a ``value_type`` value."""
    matches = find_extensions(extensions, url, value_type)
    condition = len(matches) == 1 if exactly_one else bool(matches)
    return validation.check_true(condition, definition, parent_context)


# ==============================================================================
# REFERENCES
# ==============================================================================


def reference_is_for_type(reference: Mapping[str, Any], resource_type: str) -> bool:
    """True when the reference's ``type`` or literal path names ``resource_type``."""
    if reference.get("type") == resource_type:
        return True
    literal = reference.get("reference")
    if not isinstance(literal, str):
        return False
    segments = literal.split("/")
    if "_history" in segments:
        segments = segments[: segments.index("_history")]
    return len(segments) >= 2 and segments[-2] == resource_type


def validate_reference(
    reference: Any,
    allowed_types: Sequence[str],
    context: LocationContext,
    validation: Validation,
    contained: Any = None,
) -> None:
    """Base profile check: the literal reference must target an allowed type.

    Local ``#id`` references are resolved against ``contained``.
    """
    if not isinstance(reference, Mapping):
        return
    literal = reference.get("reference")
    wrong_type = invalid_reference_type_error(
        LocationContext("", "reference"), allowed_types
    )
    if isinstance(literal, str) and literal.startswith("#"):
        target = validate_contained_reference(literal, context, validation, contained)
        validation.check_true(
            target is not None and target.get("resourceType") in allowed_types,
            wrong_type,
            context,
        )
        return
    validation.check_true(
        any(reference_is_for_type(reference, item) for item in allowed_types), wrong_type, context
    )


def validate_contained_reference(
    literal: str, context: LocationContext, validation: Validation, contained: Any = None
) -> Mapping[str, Any] | None:
    """Resolve a local ``#id`` reference against ``contained``.

    Records ``RONIN_REQ_REF_1`` when the resource has no contained resources
    and returns the matching contained resource, if any.
    """
    contained_resources = contained if isinstance(contained, list) else []
    validation.check_true(
        bool(contained_resources),
        IssueDefinition(
            "RONIN_REQ_REF_1",
            "Contained resource is required if a local reference is provided",
            context,
        ),
        LocationContext(context.element),
    )
    local_id = literal[1:]
    return next(
        (
            item
            for item in contained_resources
            if isinstance(item, Mapping) and item.get("id") == local_id
        ),
        None,
    )


def validate_reference_list(
    references: Any,
    allowed_types: Sequence[str],
    context: LocationContext,
    validation: Validation,
    contained: Any = None,
) -> None:
    if not isinstance(references, list):
        return
    for index, reference in enumerate(references):
        validate_reference(reference, allowed_types, context.at(index), validation, contained)


def validate_ronin_reference_type(
    reference: Any,
    allowed_types: Sequence[str],
    context: LocationContext,
    validation: Validation,
) -> None:
    """Ronin check on the reference's asserted ``type``.

    A missing ``type`` yields ``RONIN_REQ_REF_TYPE_001`` only; a ``type`` outside
    ``allowed_types`` yields ``RONIN_INV_REF_TYPE``.
    """
    if not isinstance(reference, Mapping) or not reference.get("reference"):
        return
    if str(reference.get("reference")).startswith("#"):
        return
    if not validation.check_not_none(reference.get("type"), REQUIRED_REFERENCE_TYPE, context):
        return
    validation.check_true(
        reference.get("type") in allowed_types,
        ronin_invalid_reference_type_error(LocationContext(""), allowed_types),
        context,
    )


def require_data_authority_extension(
    reference: Any, context: LocationContext, validation: Validation
) -> None:
    """A typed, populated reference must carry the data authority extension."""
    parsed = parse_reference(reference)
    if parsed is None or parsed.type is None or not parsed.reference:
        return
    if parsed.reference.startswith("#"):
        return
    validation.check_true(
        any(is_data_authority_extension(item) for item in parsed.type_extensions),
        REQUIRED_DATA_AUTHORITY_EXTENSION,
        context,
    )


# ==============================================================================
# ADVISORY
# ==============================================================================


def contained_resource_present(
    contained: Any, parent_context: LocationContext, validation: Validation
) -> None:
    """WARNING when contained resources are present; never blocks."""
    if not validation.check_true(not contained, CONTAINED_RESOURCE_PRESENT, parent_context):
        logger.warning("validation.contained_resource", location=str(parent_context))


__all__ = [
    "CONTAINED_RESOURCE_PRESENT",
    "DATA_AUTHORITY_IDENTIFIER_ERRORS",
    "FHIR_IDENTIFIER_ERRORS",
    "REQUIRED_DATA_AUTHORITY_EXTENSION",
    "REQUIRED_REFERENCE_TYPE",
    "TENANT_IDENTIFIER_ERRORS",
    "check_dynamic_value_type",
    "check_value_set",
    "coding_in_value_set",
    "contained_resource_present",
    "find_extensions",
    "qualifies_for_value_set",
    "reference_is_for_type",
    "require_codeable_concept",
    "require_data_authority_extension",
    "require_meta",
    "require_ronin_identifiers",
    "require_tenant_source_extension",
    "validate_contained_reference",
    "validate_reference",
    "validate_reference_list",
    "validate_ronin_reference_type",
]
