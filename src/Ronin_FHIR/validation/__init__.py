"""Validation engine: locations, issues, accumulator, rules and pipeline."""

from __future__ import annotations

from .accumulator import (
    MULTIPLE_ERRORS_BANNER,
    SINGLE_ERROR_BANNER,
    Validation,
    ValidationAlertError,
)
from .issues import IssueDefinition, ValidationIssue, ValidationIssueSeverity
from .location import LocationContext
from .pipeline import ValidationPipeline, ValidationState
from .schema import StructuralValidator

__all__ = [
    "MULTIPLE_ERRORS_BANNER",
    "SINGLE_ERROR_BANNER",
    "IssueDefinition",
    "LocationContext",
    "StructuralValidator",
    "Validation",
    "ValidationAlertError",
    "ValidationIssue",
    "ValidationIssueSeverity",
    "ValidationPipeline",
    "ValidationState",
]
