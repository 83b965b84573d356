"""
ORGANIZATIONAL ANALYZER - Business actor structure derived from Composition/Assignment links

Actors are categorized only by the relationships between them. Names are never
inspected: an actor called "Finance" is a department only if some other actor
is composed of it.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from ainstein_config import ORGANIZATIONAL_RELATIONSHIP_TYPES
from archimate_core import Element, Relationship
from archimate_types import canonical_relationship_type, is_exact_type

logger = logging.getLogger(__name__)


@dataclass
class ActorLink:
    """A relationship whose two endpoints are both business actors"""
    source: Element
    target: Element
    relationship: Relationship


@dataclass
class OrganizationalStructure:
    composition_relationships: List[ActorLink] = field(default_factory=list)
    assignment_relationships: List[ActorLink] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.composition_relationships and not self.assignment_relationships

    def hierarchy(self) -> Dict[str, List[str]]:
        """parent name -> child names, in discovery order"""
        groups: Dict[str, List[str]] = OrderedDict()
        for link in self.composition_relationships:
            children = groups.setdefault(link.source.name, [])
            if link.target.name not in children:
                children.append(link.target.name)
        return groups

    def assignments(self) -> List[Tuple[str, str]]:
        pairs = []
        for link in self.assignment_relationships:
            pair = (link.source.name, link.target.name)
            if pair not in pairs:
                pairs.append(pair)
        return pairs


@dataclass
class BusinessActorAnalysis:
    internal_actors: List[Element] = field(default_factory=list)
    external_actors: List[Element] = field(default_factory=list)
    departments: List[Element] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.internal_actors) + len(self.external_actors) + len(self.departments)


class OrganizationalAnalyzer:
    def __init__(self, repository):
        self.repository = repository

    def get_organizational_structure(self) -> OrganizationalStructure:
        structure = OrganizationalStructure()
        for model in self.repository.get_all_models():
            for rel in model.relationships.values():
                rel_type = canonical_relationship_type(rel.type)
                if rel_type not in ORGANIZATIONAL_RELATIONSHIP_TYPES:
                    continue
                source, target = model.resolve(rel)
                if source is None or target is None:
                    continue
                if not (is_exact_type(source, "BusinessActor") and is_exact_type(target, "BusinessActor")):
                    continue
                link = ActorLink(source=source, target=target, relationship=rel)
                if rel_type == "CompositionRelationship":
                    structure.composition_relationships.append(link)
                else:
                    structure.assignment_relationships.append(link)
        return structure

    def analyze(self) -> BusinessActorAnalysis:
        """Partition the distinct business actors into internal, external and departments."""
        structure = self.get_organizational_structure()

        # Actors are deduplicated by name, so the partition is keyed by name too
        sources: Set[str] = {link.source.name for link in structure.composition_relationships}
        targets: Set[str] = {link.target.name for link in structure.composition_relationships}
        linked = sources | targets

        analysis = BusinessActorAnalysis()
        for actor in self.repository.get_business_actors_only():
            if actor.name not in linked:
                analysis.external_actors.append(actor)
            elif actor.name in sources:
                # top-level units and mid-level units (source and target) are both internal
                analysis.internal_actors.append(actor)
            else:
                analysis.departments.append(actor)

        logger.debug(f"Actor partition: {len(analysis.internal_actors)} internal, "
                     f"{len(analysis.external_actors)} external, {len(analysis.departments)} departments")
        return analysis

    get_business_actor_analysis = analyze
