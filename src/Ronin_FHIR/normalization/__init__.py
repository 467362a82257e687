"""Identifier, code system and concept map normalization."""

from __future__ import annotations

from .concept_map import (
    ConceptMapNormalizer,
    ConceptMapRegistry,
    Mapped,
    MappingResult,
    Unmapped,
    provenance_extension,
)
from .identifiers import (
    IdentifierNormalizer,
    IdentifierResolver,
    MrnIdentifierResolver,
    VendorIdentifierNotFound,
)
from .registry import ConceptMapRegistryError, StaticConceptMapRegistry
from .systems import Normalizer

__all__ = [
    "ConceptMapNormalizer",
    "ConceptMapRegistry",
    "ConceptMapRegistryError",
    "IdentifierNormalizer",
    "IdentifierResolver",
    "Mapped",
    "MappingResult",
    "MrnIdentifierResolver",
    "Normalizer",
    "StaticConceptMapRegistry",
    "Unmapped",
    "VendorIdentifierNotFound",
    "provenance_extension",
]
