"""Issue accumulator shared by every validator in a single call.

Rules append issues instead of raising. Only the outermost caller decides
whether ERROR-severity issues become an exception through
:meth:`Validation.alert_if_errors`.

Example:
    >>> validation = Validation()
    >>> validation.check_not_none(resource.get("id"), required_field_error(id_location), parent)
    >>> validation.alert_if_errors()
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Iterator, Sequence
from typing import Any

from .issues import IssueDefinition, ValidationIssue, ValidationIssueSeverity
from .location import LocationContext

SINGLE_ERROR_BANNER = "Encountered validation error(s):\n"
MULTIPLE_ERRORS_BANNER = "Encountered multiple validation errors:\n"


class ValidationAlertError(ValueError):
    """Raised by :meth:`Validation.alert_if_errors` when ERROR issues exist."""

    def __init__(self, message: str, issues: Sequence[ValidationIssue]) -> None:
        super().__init__(message)
        self.issues = list(issues)


class Validation:
    """Ordered collection of :class:`ValidationIssue` values."""

    __slots__ = ("_issues",)

    def __init__(self, issues: Iterable[ValidationIssue] | None = None) -> None:
        self._issues: list[ValidationIssue] = list(issues or ())

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------
    def append(self, item: ValidationIssue | Validation) -> Validation:
        """Append an issue, or concatenate every issue of another accumulator."""
        if isinstance(item, Validation):
            self._issues.extend(item._issues)
        else:
            self._issues.append(item)
        return self

    def merge(self, other: Validation) -> Validation:
        return self.append(other)

    def add(
        self, definition: IssueDefinition, parent_context: LocationContext | None = None
    ) -> Validation:
        """Bind ``definition`` below ``parent_context`` and append it."""
        self._issues.append(definition.at(parent_context))
        return self

    # ------------------------------------------------------------------
    # Checks used by rules
    # ------------------------------------------------------------------
    def check_true(
        self,
        condition: bool,
        definition: IssueDefinition,
        parent_context: LocationContext | None = None,
    ) -> bool:
        """Record ``definition`` when ``condition`` is false; return ``condition``."""
        if not condition:
            self.add(definition, parent_context)
        return condition

    def check_not_none(
        self,
        value: Any,
        definition: IssueDefinition,
        parent_context: LocationContext | None = None,
    ) -> bool:
        """Record ``definition`` when ``value`` is absent.

        Empty strings and empty lists count as absent, matching FHIR JSON where
        empty elements are not allowed.
        """
        return self.check_true(_present(value), definition, parent_context)

    def check_none(
        self,
        value: Any,
        definition: IssueDefinition,
        parent_context: LocationContext | None = None,
    ) -> bool:
        return self.check_true(not _present(value), definition, parent_context)

    def check_in_value_set(
        self,
        value: Any,
        allowed: Collection[Any],
        definition: IssueDefinition,
        parent_context: LocationContext | None = None,
    ) -> bool:
        """Record ``definition`` when a present ``value`` is not in ``allowed``."""
        if value is None:
            return True
        return self.check_true(value in allowed, definition, parent_context)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def issues(self) -> list[ValidationIssue]:
        return list(self._issues)

    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self._issues if issue.is_error]

    def warnings(self) -> list[ValidationIssue]:
        return [
            issue for issue in self._issues if issue.severity is ValidationIssueSeverity.WARNING
        ]

    def has_errors(self) -> bool:
        return any(issue.is_error for issue in self._issues)

    def has_issues(self) -> bool:
        return bool(self._issues)

    def codes(self) -> list[str]:
        return [issue.code for issue in self._issues]

    def alert_if_errors(self, banner: str = SINGLE_ERROR_BANNER) -> None:
        """Raise :class:`ValidationAlertError` if any ERROR issue was recorded.

        The message is ``banner`` followed by the newline-joined rendering of
        every ERROR issue in insertion order. WARNING issues never raise.
        """
        errors = self.errors()
        if not errors:
            return
        message = banner + "\n".join(issue.render() for issue in errors)
        raise ValidationAlertError(message, errors)

    def __iter__(self) -> Iterator[ValidationIssue]:
        return iter(list(self._issues))

    def __len__(self) -> int:
        return len(self._issues)

    def __repr__(self) -> str:
        return f"Validation(issues={self._issues!r})"


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return bool(value)
    return True


__all__ = [
    "MULTIPLE_ERRORS_BANNER",
    "SINGLE_ERROR_BANNER",
    "Validation",
    "ValidationAlertError",
]
