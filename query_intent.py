"""
QUERY INTENT - Keyword classification of a free-text question

A pure string classifier with no access to the model graph. Flags are
independent of one another: one query can ask for a count and a list at once.
"""
import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Tuple

from ainstein_config import ELEMENT_TYPE_PHRASES, EXECUTION_PHRASES, IMPACT_PHRASES, INTENT_FLAG_PHRASES


class ElementType(str, Enum):
    ACTOR = "actor"
    PROCESS = "process"
    FUNCTION = "function"
    SERVICE = "service"
    IMPACT = "impact"
    EXECUTION = "execution"
    ALL = "all"


@dataclass
class QueryIntent:
    element_type: ElementType = ElementType.ALL
    wants_list: bool = False
    wants_count: bool = False
    wants_relationships: bool = False
    wants_details: bool = False
    wants_impact_analysis: bool = False

    @property
    def count_only(self) -> bool:
        return self.wants_count and not self.wants_list

    def to_dict(self) -> dict:
        d = asdict(self)
        d["element_type"] = self.element_type.value
        return d


def _phrase_pattern(phrases: List[str]) -> re.Pattern:
    """Whole-word match of any phrase, allowing a plural or verb suffix"""
    alternatives = "|".join(re.escape(p) for p in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})(?:s|es|ing|ed)?\b")


_FLAG_PATTERNS: Dict[str, re.Pattern] = {flag: _phrase_pattern(phrases) for flag, phrases in INTENT_FLAG_PHRASES.items()}
_IMPACT_PATTERN = _phrase_pattern(IMPACT_PHRASES + EXECUTION_PHRASES)
_TYPE_PATTERNS: List[Tuple[ElementType, re.Pattern]] = [
    (ElementType(name), _phrase_pattern(phrases)) for name, phrases in ELEMENT_TYPE_PHRASES
]


def detect_element_type(query: str) -> ElementType:
    text = query.lower()
    for element_type, pattern in _TYPE_PATTERNS:
        if pattern.search(text):
            return element_type
    return ElementType.ALL


def analyze_query_intent(query: str) -> QueryIntent:
    text = query.lower()
    flags = {flag: bool(pattern.search(text)) for flag, pattern in _FLAG_PATTERNS.items()}
    return QueryIntent(
        element_type=detect_element_type(text),
        wants_impact_analysis=bool(_IMPACT_PATTERN.search(text)),
        **flags,
    )
