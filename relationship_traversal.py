"""
RELATIONSHIP TRAVERSAL - Direct links, impact sets and dependency chains over the model graph

The whole repository is treated as one logical graph. Only relationships whose
two endpoints resolve inside their own model become graph edges, so every
traversal result is made of real elements.
"""
import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Tuple

from ainstein_config import TRAVERSAL
from archimate_core import Element, Relationship
from archimate_types import canonical_relationship_type

logger = logging.getLogger(__name__)

Hop = Tuple[int, Relationship, Element]


class RelationshipTraversal:
    def __init__(self, repository):
        self.repository = repository

    @property
    def graph(self):
        return self.repository.graph

    # ---------------- Direct relationships ----------------
    def get_element_relationships(self, element_id: str) -> List[Relationship]:
        """Every relationship touching the element, dangling ones included"""
        return [rel
                for model in self.repository.get_all_models()
                for rel in model.relationships.values()
                if rel.source == element_id or rel.target == element_id]

    def get_incoming(self, element_id: str) -> List[Tuple[Relationship, Element]]:
        """(relationship, source element) for each resolvable link ending at the element"""
        links = []
        for model in self.repository.get_all_models():
            for rel in model.relationships.values():
                if rel.target != element_id:
                    continue
                source, target = model.resolve(rel)
                if source is not None and target is not None:
                    links.append((rel, source))
        return links

    def get_outgoing(self, element_id: str) -> List[Tuple[Relationship, Element]]:
        """(relationship, target element) for each resolvable link starting at the element"""
        links = []
        for model in self.repository.get_all_models():
            for rel in model.relationships.values():
                if rel.source != element_id:
                    continue
                source, target = model.resolve(rel)
                if source is not None and target is not None:
                    links.append((rel, target))
        return links

    def get_related_elements(self, element_id: str) -> List[Element]:
        related: Dict[str, Element] = {}
        for _, other in self.get_incoming(element_id) + self.get_outgoing(element_id):
            if other.id != element_id and other.id not in related:
                related[other.id] = other
        return list(related.values())

    def get_elements_by_relationship_type(self, relationship_type: str) -> List[Tuple[Element, Relationship, Element]]:
        """(source, relationship, target) triples of exactly this relationship type"""
        triples = []
        for model, rel in self.repository.get_relationships_of_type(relationship_type):
            source, target = model.resolve(rel)
            if source is not None and target is not None:
                triples.append((source, rel, target))
        return triples

    # ---------------- Impact analysis ----------------
    def _neighbors(self, node_id: str) -> Iterable[str]:
        """Successors then predecessors; direction is ignored for impact"""
        seen = set()
        for neighbor in list(self.graph.successors(node_id)) + list(self.graph.predecessors(node_id)):
            if neighbor not in seen:
                seen.add(neighbor)
                yield neighbor

    def get_impact_levels(self, element_id: str, max_depth: Optional[int] = None) -> Dict[str, int]:
        """Element id -> hop distance for everything within max_depth hops of the seed (seed excluded)."""
        if max_depth is None:
            max_depth = TRAVERSAL["default_max_depth"]
        if element_id not in self.graph or max_depth < 1:
            return {}

        visited = {element_id}
        levels: Dict[str, int] = {}
        queue = deque([(element_id, 0)])
        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for neighbor in self._neighbors(current):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                levels[neighbor] = depth + 1
                queue.append((neighbor, depth + 1))
        return levels

    def get_impacted_elements(self, element_id: str, max_depth: Optional[int] = None) -> List[Element]:
        impacted = []
        for node_id in self.get_impact_levels(element_id, max_depth):
            element = self.repository.get_element(node_id)
            if element is not None:
                impacted.append(element)
        return impacted

    # ---------------- Dependency chains ----------------
    def _directed_edges(self, node_id: str, direction: str):
        """(neighbor, relationship id, relationship type) in the requested direction"""
        if direction in ("outgoing", "both"):
            for _, target, key, data in self.graph.out_edges(node_id, keys=True, data=True):
                yield target, key, data.get("relationship_type")
        if direction in ("incoming", "both"):
            for source, _, key, data in self.graph.in_edges(node_id, keys=True, data=True):
                yield source, key, data.get("relationship_type")

    def get_dependency_chain(self, element_id: str, relationship_types: Optional[List[str]] = None,
                             direction: str = "outgoing", max_depth: Optional[int] = None) -> List[Hop]:
        """Breadth-first chain following only the given relationship types."""
        if direction not in ("outgoing", "incoming", "both"):
            raise ValueError(f"direction must be 'outgoing', 'incoming' or 'both', not {direction!r}")
        if max_depth is None:
            max_depth = TRAVERSAL["default_max_depth"]
        if element_id not in self.graph:
            return []

        allowed = None
        if relationship_types:
            allowed = {canonical_relationship_type(t) for t in relationship_types}

        hops: List[Hop] = []
        visited = {element_id}
        queue = deque([(element_id, 0)])
        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for neighbor, rel_id, rel_type in self._directed_edges(current, direction):
                if allowed is not None and rel_type not in allowed:
                    continue
                if neighbor in visited:
                    continue
                rel = self.repository.get_relationship(rel_id)
                element = self.repository.get_element(neighbor)
                if rel is None or element is None:
                    continue
                visited.add(neighbor)
                hops.append((depth + 1, rel, element))
                queue.append((neighbor, depth + 1))
        return hops
