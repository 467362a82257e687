"""YAML-backed concept map and value set registry.

File layout::

    concept_maps:
      - tenant: test
        field: Condition.code
        metadata: {conceptMapName: test-condition, conceptMapUuid: 1234, version: "3"}
        entries:
          - source: [{system: http://tenant/codes, code: abc}]
            target:
              coding: [{system: http://snomed.info/sct, code: "1234", display: Example}]
              text: Example
    value_sets:
      - field: Condition.category
        profile: http://projectronin.io/fhir/StructureDefinition/ronin-conditionProblemsHealthConcerns
        codings: [{system: http://terminology.hl7.org/CodeSystem/condition-category, code: problem-list-item}]
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from Ronin_FHIR.models.datatypes import CodeableConcept, Coding
from Ronin_FHIR.models.tenant import TenantContext

from .concept_map import Mapped, MappingResult, Unmapped

SourceKey = frozenset[tuple[str | None, str | None]]


class ConceptMapRegistryError(ValueError):
    """Raised when registry configuration is malformed."""


@dataclass(slots=True, frozen=True)
class ConceptMapTable:
    """All entries of one tenant concept map for a single field."""

    tenant: str
    field_key: str
    entries: dict[SourceKey, CodeableConcept] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConceptMapTable:
        try:
            tenant = str(data["tenant"])
            field_key = str(data["field"])
        except KeyError as exc:
            raise ConceptMapRegistryError(f"Concept map is missing '{exc.args[0]}'") from exc
        entries: dict[SourceKey, CodeableConcept] = {}
        for entry in data.get("entries", []):
            try:
                source = [Coding.model_validate(item) for item in entry["source"]]
                target = CodeableConcept.model_validate(entry["target"])
            except (KeyError, TypeError, ValidationError) as exc:
                raise ConceptMapRegistryError(
                    f"Invalid entry in concept map {tenant}/{field_key}: {exc}"
                ) from exc
            key = frozenset(coding.key() for coding in source)
            if key in entries:
                raise ConceptMapRegistryError(
                    f"Duplicate source codes in concept map {tenant}/{field_key}"
                )
            entries[key] = target
        return cls(
            tenant=tenant,
            field_key=field_key,
            entries=entries,
            metadata=dict(data.get("metadata", {})),
        )


@dataclass(slots=True)
class StaticConceptMapRegistry:
    """In-memory registry; matching is on the unordered set of system+code pairs."""

    tables: dict[tuple[str, str], ConceptMapTable] = field(default_factory=dict)
    value_sets: dict[tuple[str, str], list[Coding]] = field(default_factory=dict)

    def get_mapping(
        self,
        tenant: TenantContext,
        field_key: str,
        source: CodeableConcept,
        owning_resource: Mapping[str, Any],
    ) -> MappingResult | None:
        table = self.tables.get((tenant.mnemonic, field_key))
        if table is None:
            return None
        metadata = (table.metadata,) if table.metadata else ()
        target = table.entries.get(source.coding_keys())
        if target is None:
            return Unmapped(source=source, metadata=metadata)
        return Mapped(value=target, metadata=metadata)

    def get_required_value_set(self, field_key: str, profile_url: str) -> list[Coding]:
        return list(self.value_sets.get((field_key, profile_url), []))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> StaticConceptMapRegistry:
        tables: dict[tuple[str, str], ConceptMapTable] = {}
        for item in data.get("concept_maps", []) or []:
            table = ConceptMapTable.from_mapping(item)
            tables[(table.tenant, table.field_key)] = table
        value_sets: dict[tuple[str, str], list[Coding]] = {}
        for item in data.get("value_sets", []) or []:
            try:
                key = (str(item["field"]), str(item["profile"]))
                codings = [Coding.model_validate(coding) for coding in item.get("codings", [])]
            except (KeyError, TypeError, ValidationError) as exc:
                raise ConceptMapRegistryError(f"Invalid value set entry: {exc}") from exc
            value_sets[key] = codings
        return cls(tables=tables, value_sets=value_sets)

    @classmethod
    def from_path(cls, path: str | Path) -> StaticConceptMapRegistry:
        content = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(content) or {}
        if not isinstance(data, Mapping):
            raise ConceptMapRegistryError(f"Concept map file {path} must contain a mapping")
        return cls.from_mapping(data)


__all__ = ["ConceptMapRegistryError", "ConceptMapTable", "StaticConceptMapRegistry"]
