"""Immutable element paths used to tag validation issues."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class LocationContext:
    """Path to an element, rendered as ``Patient.identifier[2].value``.

    ``element`` names the owning type (usually the resource type) and ``field``
    is the dotted, optionally indexed, path below it. Contexts are only used to
    build messages and never influence control flow.
    """

    element: str
    field: str = ""

    def append(self, field: str, index: int | None = None) -> LocationContext:
        """Return a child context for ``field`` (and ``index`` within it)."""
        segment = field if index is None else f"{field}[{index}]"
        return LocationContext(self.element, _join(self.field, segment))

    def at(self, index: int) -> LocationContext:
        """Return this context indexed into a list, e.g. ``identifier[0]``."""
        if not self.field:
            return LocationContext(f"{self.element}[{index}]")
        return LocationContext(self.element, f"{self.field}[{index}]")

    def append_context(self, other: LocationContext) -> LocationContext:
        """Nest ``other`` below this context.

        The parent's element wins when set; ``other.element`` only names the
        type the child location was declared against.
        """
        element = self.element or other.element
        return LocationContext(element, _join(self.field, other.field))

    def __str__(self) -> str:
        return _join(self.element, self.field)


def _join(head: str, tail: str) -> str:
    if head and tail:
        return f"{head}.{tail}"
    return head or tail


__all__ = ["LocationContext"]
