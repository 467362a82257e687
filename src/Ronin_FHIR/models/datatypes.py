"""FHIR R4 complex datatypes used by the transformation core.

Resources themselves stay plain JSON mappings. The handful of datatypes that
the validators and normalizers reason about are parsed into frozen pydantic
models on demand and dumped back to FHIR JSON with :func:`to_fhir`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .dynamic import DynamicValue, resolve_dynamic


class FHIRBaseModel(BaseModel):
    """Base model for datatypes; unknown FHIR elements are preserved."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    def to_fhir(self) -> dict[str, Any]:
        """Return the FHIR JSON representation without empty elements."""
        return to_fhir(self)


class Coding(FHIRBaseModel):
    """A reference to a code defined by a terminology system."""

    system: str | None = None
    version: str | None = None
    code: str | None = None
    display: str | None = None
    user_selected: bool | None = Field(default=None, alias="userSelected")

    def key(self) -> tuple[str | None, str | None]:
        """Identity used for concept map and value set comparisons."""
        return (self.system, self.code)


class CodeableConcept(FHIRBaseModel):
    """A set of codings plus an optional human readable text."""

    coding: list[Coding] = Field(default_factory=list)
    text: str | None = None

    def coding_keys(self) -> frozenset[tuple[str | None, str | None]]:
        return frozenset(coding.key() for coding in self.coding)


class Extension(FHIRBaseModel):
    """Extension carrying either a ``value[x]`` or nested extensions."""

    url: str | None = None
    extension: list[Extension] = Field(default_factory=list)

    @property
    def value(self) -> DynamicValue | None:
        return resolve_dynamic(self.model_extra or {}, "value")


class Element(FHIRBaseModel):
    """Primitive element metadata (the ``_field`` companion in FHIR JSON)."""

    id: str | None = None
    extension: list[Extension] = Field(default_factory=list)


class Identifier(FHIRBaseModel):
    """Business identifier for a resource."""

    use: str | None = None
    type: CodeableConcept | None = None
    system: str | None = None
    value: str | None = None


class Reference(FHIRBaseModel):
    """Relative, contained or display-only reference to another resource."""

    reference: str | None = None
    type: str | None = None
    type_element: Element | None = Field(default=None, alias="_type")
    identifier: Identifier | None = None
    display: str | None = None

    @property
    def type_extensions(self) -> list[Extension]:
        return list(self.type_element.extension) if self.type_element else []


def to_fhir(model: BaseModel) -> dict[str, Any]:
    """Dump a datatype to FHIR JSON, dropping ``None`` values and empty lists."""
    return _prune(model.model_dump(mode="json", by_alias=True, exclude_none=True))


def _prune(value: Any) -> Any:
    if isinstance(value, dict):
        pruned = {}
        for key, item in value.items():
            item = _prune(item)
            if item in ([], {}):
                continue
            pruned[key] = item
        return pruned
    if isinstance(value, list):
        return [_prune(item) for item in value]
    return value


_Model = TypeVar("_Model", bound=FHIRBaseModel)


def _parse(model: type[_Model], data: Any) -> _Model | None:
    # Wrongly typed primitives are reported by the structural layer.
    if not isinstance(data, Mapping):
        return None
    try:
        return model.model_validate(data)
    except ValidationError:
        return None


def _parse_list(model: type[_Model], data: Any) -> list[_Model]:
    if not isinstance(data, Sequence) or isinstance(data, (str, bytes)):
        return []
    return [parsed for item in data if (parsed := _parse(model, item)) is not None]


def parse_codeable_concept(data: Any) -> CodeableConcept | None:
    """Parse a CodeableConcept mapping, returning ``None`` for anything else."""
    return _parse(CodeableConcept, data)


def parse_identifiers(data: Any) -> list[Identifier]:
    """Parse an identifier list, skipping entries that are not valid Identifiers."""
    return _parse_list(Identifier, data)


def parse_extensions(data: Any) -> list[Extension]:
    return _parse_list(Extension, data)


def parse_reference(data: Any) -> Reference | None:
    return _parse(Reference, data)


__all__ = [
    "CodeableConcept",
    "Coding",
    "Element",
    "Extension",
    "FHIRBaseModel",
    "Identifier",
    "Reference",
    "parse_codeable_concept",
    "parse_extensions",
    "parse_identifiers",
    "parse_reference",
    "to_fhir",
]
