"""Normalization of code systems, identifier systems, texts and extensions.

Runs before any resource-specific transform so that concept maps and value
sets only ever see canonical system URIs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from Ronin_FHIR.localization.traversal import Path, transform_tree
from Ronin_FHIR.models.constants import CodeSystem, RoninExtension
from Ronin_FHIR.models.dynamic import resolve_dynamic

logger = structlog.get_logger(__name__)

CODING_SYSTEM_OIDS: dict[str, str] = {
    "2.16.840.1.113883.6.1": CodeSystem.LOINC.value,
    "2.16.840.1.113883.6.96": CodeSystem.SNOMED_CT.value,
    "2.16.840.1.113883.6.88": CodeSystem.RXNORM.value,
    "2.16.840.1.113883.6.12": CodeSystem.CPT.value,
    "2.16.840.1.113883.6.90": CodeSystem.ICD_10_CM.value,
    "2.16.840.1.113883.6.103": CodeSystem.ICD_9_CM.value,
    "2.16.840.1.113883.6.69": CodeSystem.NDC.value,
    "2.16.840.1.113883.12.292": CodeSystem.CVX.value,
    "2.16.840.1.113883.6.8": CodeSystem.UCUM.value,
}

IDENTIFIER_SYSTEM_OIDS: dict[str, str] = {
    "2.16.840.1.113883.4.6": CodeSystem.NPI.value,
}


def normalize_system(system: Any, table: Mapping[str, str]) -> Any:
    """Map an OID (bare or ``urn:oid:`` prefixed) to its canonical URI.

    Anything that is not a non-empty string is returned unchanged.
    """
    if not isinstance(system, str) or not system:
        return system
    oid = system[len("urn:oid:"):] if system.startswith("urn:oid:") else system
    return table.get(oid, system)


class Normalizer:
    """Tenant independent clean-up applied to a resource copy.

    * Coding and Identifier systems expressed as OIDs become canonical URIs.
    * A CodeableConcept without ``text`` takes the display of its single
      coding (or its single user selected coding).
    * Extensions without a url, or without both a value and nested
      extensions, are dropped unless they are Ronin extensions.
    * ``contained`` resources are left untouched.
    """

    def normalize(self, resource: Mapping[str, Any]) -> dict[str, Any]:
        return dict(transform_tree(resource, self._visit, skip_keys=frozenset({"contained"})))

    def _visit(self, node: Mapping[str, Any], path: Path) -> Mapping[str, Any]:
        updated = dict(node)
        if "system" in node and _is_coding(path):
            updated["system"] = normalize_system(node["system"], CODING_SYSTEM_OIDS)
        if "system" in node and _is_identifier(path):
            updated["system"] = normalize_system(node["system"], IDENTIFIER_SYSTEM_OIDS)
        if isinstance(node.get("coding"), list) and not node.get("text"):
            text = _selected_display(node["coding"])
            if text:
                updated["text"] = text
        for key in ("extension", "modifierExtension"):
            if isinstance(node.get(key), list):
                kept = [item for item in node[key] if _keep_extension(item)]
                if len(kept) != len(node[key]):
                    logger.info("normalization.extension_filtered", dropped=len(node[key]) - len(kept))
                    if kept:
                        updated[key] = kept
                    else:
                        updated.pop(key)
        return node if updated == dict(node) else updated


def _last_keys(path: Path) -> tuple[Any, Any]:
    parent = path[-2] if len(path) >= 2 else None
    last = path[-1] if path else None
    return parent, last


def _is_coding(path: Path) -> bool:
    parent, last = _last_keys(path)
    return (parent == "coding" and isinstance(last, int)) or last == "valueCoding"


def _is_identifier(path: Path) -> bool:
    parent, last = _last_keys(path)
    return (parent == "identifier" and isinstance(last, int)) or last in {
        "identifier",
        "valueIdentifier",
    }


def _selected_display(codings: list[Any]) -> str | None:
    entries = [item for item in codings if isinstance(item, Mapping)]
    selected = [item for item in entries if item.get("userSelected") is True]
    candidate = None
    if len(selected) == 1:
        candidate = selected[0]
    elif len(entries) == 1:
        candidate = entries[0]
    if candidate is None:
        return None
    display = candidate.get("display")
    return display if isinstance(display, str) and display else None


def _keep_extension(extension: Any) -> bool:
    if not isinstance(extension, Mapping):
        return False
    url = extension.get("url")
    if RoninExtension.is_ronin(url):
        return True
    if not url:
        return False
    return resolve_dynamic(extension, "value") is not None or bool(extension.get("extension"))


__all__ = ["CODING_SYSTEM_OIDS", "IDENTIFIER_SYSTEM_OIDS", "Normalizer", "normalize_system"]
