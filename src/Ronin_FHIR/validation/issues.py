"""Validation issue types and the catalog of shared issue definitions.

Key Responsibilities:
    - Define the severity taxonomy and the immutable :class:`ValidationIssue`
    - Provide :class:`IssueDefinition` templates that are bound to a parent
      location when a rule fires
    - Expose factories for the issue families reused across profiles

Collaborators:
    - Upstream: Rules in :mod:`Ronin_FHIR.validation.rules` and the profiles
    - Downstream: :class:`Ronin_FHIR.validation.accumulator.Validation`

Side Effects:
    - None; all values are frozen dataclasses

Thread Safety:
    - Thread-safe; definitions are module level constants or built per call
"""

from __future__ import annotations

# ==============================================================================
# IMPORTS
# ==============================================================================
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .location import LocationContext

# ==============================================================================
# DATA MODELS
# ==============================================================================


class ValidationIssueSeverity(str, Enum):
    """Severity of a validation finding; only ERROR blocks a transform."""

    ERROR = "ERROR"
    WARNING = "WARNING"


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    """A single finding produced by one validator call.

    Attributes:
        code: Stable issue code, e.g. ``REQ_FIELD`` or ``RONIN_TNNT_ID_001``.
        severity: ERROR or WARNING.
        description: Human readable message.
        location: Path of the offending element.
        metadata: Optional provenance for concept map related issues.
    """

    code: str
    severity: ValidationIssueSeverity
    description: str
    location: LocationContext
    metadata: tuple[Mapping[str, Any], ...] = field(default=(), compare=False)

    @property
    def is_error(self) -> bool:
        return self.severity is ValidationIssueSeverity.ERROR

    def render(self) -> str:
        """Render as ``<SEVERITY> <CODE>: <description> @ <location>``."""
        return f"{self.severity.value} {self.code}: {self.description} @ {self.location}"

    def __str__(self) -> str:
        return self.render()


@dataclass(slots=True, frozen=True)
class IssueDefinition:
    """Issue template whose location is relative to the element being checked."""

    code: str
    description: str
    location: LocationContext
    severity: ValidationIssueSeverity = ValidationIssueSeverity.ERROR
    metadata: tuple[Mapping[str, Any], ...] = field(default=(), compare=False)

    def at(self, parent_context: LocationContext | None = None) -> ValidationIssue:
        """Bind the template below ``parent_context``."""
        location = (
            parent_context.append_context(self.location) if parent_context else self.location
        )
        return ValidationIssue(
            code=self.code,
            severity=self.severity,
            description=self.description,
            location=location,
            metadata=self.metadata,
        )


# ==============================================================================
# ISSUE FACTORIES
# ==============================================================================


def required_field_error(location: LocationContext) -> IssueDefinition:
    """``REQ_FIELD``: the element named by ``location.field`` is absent."""
    return IssueDefinition(
        code="REQ_FIELD",
        description=f"{_leaf(location)} is a required element",
        location=location,
    )


def invalid_value_set_error(location: LocationContext, value: str | None) -> IssueDefinition:
    return IssueDefinition(
        code="INV_VALUE_SET",
        description=f"'{value}' is outside of required value set",
        location=location,
    )


def invalid_reference_type_error(
    location: LocationContext, allowed_types: Iterable[str]
) -> IssueDefinition:
    """Base profile check on the literal reference string."""
    return IssueDefinition(
        code="INV_REF_TYPE",
        description=f"reference can only be one of the following: {', '.join(allowed_types)}",
        location=location,
    )


def invalid_dynamic_value_error(
    location: LocationContext, allowed_types: Iterable[str]
) -> IssueDefinition:
    return IssueDefinition(
        code="INV_DYN_VAL",
        description=(
            f"{_leaf(location)} can only be one of the following: {', '.join(allowed_types)}"
        ),
        location=location,
    )


def ronin_invalid_reference_type_error(
    location: LocationContext, allowed_types: Iterable[str]
) -> IssueDefinition:
    """``RONIN_INV_REF_TYPE``: the reference's asserted ``type`` is not allowed."""
    allowed = list(allowed_types)
    if len(allowed) == 1:
        description = f"The referenced resource type was not {allowed[0]}"
    else:
        description = f"The referenced resource type was not one of {', '.join(allowed)}"
    return IssueDefinition(code="RONIN_INV_REF_TYPE", description=description, location=location)


def failed_concept_map_lookup_error(
    location: LocationContext,
    source_value: str,
    concept_map_name: str,
    metadata: Iterable[Mapping[str, Any]] = (),
) -> IssueDefinition:
    """``NOV_CONMAP_LOOKUP``: no concept map target for a tenant source value."""
    return IssueDefinition(
        code="NOV_CONMAP_LOOKUP",
        description=f"Tenant source value '{source_value}' has no target defined in {concept_map_name}",
        location=location,
        metadata=tuple(metadata),
    )


def concept_map_invalid_value_set_error(
    location: LocationContext,
    concept_map_name: str,
    source_value: str,
    target_value: str | None,
    metadata: Iterable[Mapping[str, Any]] = (),
) -> IssueDefinition:
    """``INV_CONMAP_VALUE_SET``: a mapped target is not a legal code for the field."""
    return IssueDefinition(
        code="INV_CONMAP_VALUE_SET",
        description=(
            f"{concept_map_name} mapped '{source_value}' to '{target_value}' "
            "which is outside of required value set"
        ),
        location=location,
        metadata=tuple(metadata),
    )


def _leaf(location: LocationContext) -> str:
    path = location.field or location.element
    return path.rsplit(".", 1)[-1]


# ==============================================================================
# EXPORTS
# ==============================================================================

__all__ = [
    "IssueDefinition",
    "ValidationIssue",
    "ValidationIssueSeverity",
    "concept_map_invalid_value_set_error",
    "failed_concept_map_lookup_error",
    "invalid_dynamic_value_error",
    "invalid_reference_type_error",
    "invalid_value_set_error",
    "required_field_error",
    "ronin_invalid_reference_type_error",
]
