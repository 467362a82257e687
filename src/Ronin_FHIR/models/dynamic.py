"""Tagged variant for FHIR choice (``[x]``) elements.

FHIR JSON encodes a choice element such as ``onset[x]`` as exactly one key
with a type suffix, for example ``onsetDateTime`` or ``onsetPeriod``. This
module resolves such keys into a :class:`DynamicValue` whose ``type``
discriminant is what validators check.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class DynamicValueType(str, Enum):
    """Type suffixes permitted on FHIR R4 choice elements."""

    BASE_64_BINARY = "Base64Binary"
    BOOLEAN = "Boolean"
    CANONICAL = "Canonical"
    CODE = "Code"
    DATE = "Date"
    DATE_TIME = "DateTime"
    DECIMAL = "Decimal"
    ID = "Id"
    INSTANT = "Instant"
    INTEGER = "Integer"
    MARKDOWN = "Markdown"
    OID = "Oid"
    POSITIVE_INT = "PositiveInt"
    STRING = "String"
    TIME = "Time"
    UNSIGNED_INT = "UnsignedInt"
    URI = "Uri"
    URL = "Url"
    UUID = "Uuid"
    ADDRESS = "Address"
    AGE = "Age"
    ANNOTATION = "Annotation"
    ATTACHMENT = "Attachment"
    CODEABLE_CONCEPT = "CodeableConcept"
    CODING = "Coding"
    CONTACT_POINT = "ContactPoint"
    COUNT = "Count"
    DISTANCE = "Distance"
    DURATION = "Duration"
    HUMAN_NAME = "HumanName"
    IDENTIFIER = "Identifier"
    MONEY = "Money"
    PERIOD = "Period"
    QUANTITY = "Quantity"
    RANGE = "Range"
    RATIO = "Ratio"
    REFERENCE = "Reference"
    SAMPLED_DATA = "SampledData"
    SIGNATURE = "Signature"
    TIMING = "Timing"


@dataclass(slots=True, frozen=True)
class DynamicValue:
    """A resolved choice element value with its explicit type."""

    type: DynamicValueType
    value: Any

    def key(self, prefix: str) -> str:
        """Return the FHIR JSON key for this value under ``prefix``."""
        return f"{prefix}{self.type.value}"


_BY_SUFFIX = {member.value: member for member in DynamicValueType}


def resolve_dynamic_values(data: Mapping[str, Any], prefix: str) -> list[DynamicValue]:
    """Return every ``<prefix><Type>`` entry present in ``data``.

    More than one entry means the payload is ambiguous; callers that only need
    one value should use :func:`resolve_dynamic`.
    """
    values: list[DynamicValue] = []
    for key, value in data.items():
        if not key.startswith(prefix) or value is None:
            continue
        value_type = _BY_SUFFIX.get(key[len(prefix):])
        if value_type is not None:
            values.append(DynamicValue(type=value_type, value=value))
    return values


def resolve_dynamic(data: Mapping[str, Any], prefix: str) -> DynamicValue | None:
    """Return the first ``<prefix><Type>`` value present in ``data``."""
    values = resolve_dynamic_values(data, prefix)
    return values[0] if values else None


__all__ = ["DynamicValue", "DynamicValueType", "resolve_dynamic", "resolve_dynamic_values"]
