"""
TYPE CLASSIFIER - Strict mapping of raw xsi:type strings onto the ArchiMate 3.2 taxonomy

Membership tests are exact on the normalized name. Substring matching is never
used here: "BusinessActor" must not match "BusinessActorRole"-like strings.
"""
import re
from typing import Dict, List, Optional, Tuple

from ainstein_config import ELEMENT_TYPES, RELATIONSHIP_TYPES

_QUOTES = re.compile(r"[\"']")


def _build_type_index() -> Dict[str, Tuple[str, str, str]]:
    """lowercase name -> (canonical name, layer, aspect)"""
    index = {}
    for layer, aspects in ELEMENT_TYPES.items():
        for aspect, names in aspects.items():
            for name in names:
                index[name.lower()] = (name, layer, aspect)
    return index


TYPE_INDEX = _build_type_index()
RELATIONSHIP_INDEX = {name.lower(): name for name in RELATIONSHIP_TYPES}


def normalize_type(raw: Optional[str]) -> str:
    """Strip namespace prefixes, quotes and whitespace; lowercase."""
    if not raw:
        return ""
    value = raw.strip().lower()
    value = value.replace("xsi:type=", "")
    value = _QUOTES.sub("", value)
    value = value.replace("archimate:", "")
    return value.strip()


def canonical_type(raw: Optional[str]) -> Optional[str]:
    """Canonical element type name, or None when the type is not in the taxonomy"""
    entry = TYPE_INDEX.get(normalize_type(raw))
    return entry[0] if entry else None


def canonical_relationship_type(raw: Optional[str]) -> Optional[str]:
    """Canonical relationship type; accepts both "Composition" and "CompositionRelationship"."""
    normalized = normalize_type(raw)
    if not normalized:
        return None
    if not normalized.endswith("relationship"):
        normalized += "relationship"
    return RELATIONSHIP_INDEX.get(normalized)


def is_exact_type(element, canonical_name: str) -> bool:
    """Exact, namespace- and case-tolerant type test for an element or a raw type string."""
    raw = element if isinstance(element, str) else getattr(element, "type", "")
    return normalize_type(raw) == normalize_type(canonical_name)


def is_valid_element_type(raw: Optional[str]) -> bool:
    return normalize_type(raw) in TYPE_INDEX


def is_relationship_type(raw: Optional[str]) -> bool:
    return normalize_type(raw) in RELATIONSHIP_INDEX


def type_layer(raw: Optional[str]) -> Optional[str]:
    """Architecture layer implied by the type (not by the folder it was found in)"""
    entry = TYPE_INDEX.get(normalize_type(raw))
    return entry[1] if entry else None


def type_aspect(raw: Optional[str]) -> Optional[str]:
    entry = TYPE_INDEX.get(normalize_type(raw))
    return entry[2] if entry else None


def display_type(raw: Optional[str]) -> str:
    """Readable type name for rendering: canonical when known, prefix-stripped otherwise."""
    known = canonical_type(raw) or canonical_relationship_type(raw)
    if known:
        return known
    if not raw:
        return "Unknown"
    return raw.split(":", 1)[1] if ":" in raw else raw


def types_in(layer: str, aspect: Optional[str] = None) -> List[str]:
    """Canonical names of a layer, optionally narrowed to one aspect"""
    aspects = ELEMENT_TYPES.get(layer, {})
    if aspect is not None:
        return list(aspects.get(aspect, []))
    names = []
    for group in aspects.values():
        names.extend(group)
    return names
