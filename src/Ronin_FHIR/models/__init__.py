"""Datatype models, constants and tenant descriptors."""

from __future__ import annotations

from .constants import CodeSystem, RoninCodeSystem, RoninExtension, RoninProfile
from .datatypes import (
    CodeableConcept,
    Coding,
    Element,
    Extension,
    Identifier,
    Reference,
    to_fhir,
)
from .dynamic import DynamicValue, DynamicValueType, resolve_dynamic
from .resource import Resource, copy_resource, resource_type
from .tenant import TenantContext

__all__ = [
    "CodeSystem",
    "CodeableConcept",
    "Coding",
    "DynamicValue",
    "DynamicValueType",
    "Element",
    "Extension",
    "Identifier",
    "Reference",
    "Resource",
    "RoninCodeSystem",
    "RoninExtension",
    "RoninProfile",
    "TenantContext",
    "copy_resource",
    "resolve_dynamic",
    "resource_type",
    "to_fhir",
]
