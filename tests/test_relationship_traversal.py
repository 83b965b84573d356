"""Tests for relationship_traversal - direct links, impact sets and chains."""

import pytest

from relationship_traversal import RelationshipTraversal


@pytest.fixture
def chain_traversal(repository_from_xml, model_xml):
    elements = [(x, "ApplicationComponent", f"App {x}") for x in "ABCDE"]
    relationships = [
        ("r1", "FlowRelationship", "A", "B"),
        ("r2", "FlowRelationship", "B", "C"),
        ("r3", "FlowRelationship", "C", "D"),
        ("r4", "FlowRelationship", "D", "E"),
    ]
    return RelationshipTraversal(repository_from_xml(model_xml("Chain", elements, relationships)))


@pytest.fixture
def cycle_traversal(repository_from_xml, model_xml):
    elements = [(x, "ApplicationComponent", f"App {x}") for x in "ABC"]
    relationships = [
        ("r1", "FlowRelationship", "A", "B"),
        ("r2", "FlowRelationship", "B", "C"),
        ("r3", "FlowRelationship", "C", "A"),
    ]
    return RelationshipTraversal(repository_from_xml(model_xml("Cycle", elements, relationships)))


def _ids(elements):
    return [e.id for e in elements]


class TestImpactedElements:
    def test_cycle_terminates_without_duplicates(self, cycle_traversal):
        impacted = _ids(cycle_traversal.get_impacted_elements("A", max_depth=5))
        assert "A" not in impacted
        assert sorted(impacted) == ["B", "C"]

    def test_depth_one(self, chain_traversal):
        assert _ids(chain_traversal.get_impacted_elements("A", max_depth=1)) == ["B"]

    def test_depth_two(self, chain_traversal):
        assert sorted(_ids(chain_traversal.get_impacted_elements("A", max_depth=2))) == ["B", "C"]

    def test_direction_is_ignored(self, chain_traversal):
        assert sorted(_ids(chain_traversal.get_impacted_elements("C", max_depth=1))) == ["B", "D"]

    def test_levels(self, chain_traversal):
        assert chain_traversal.get_impact_levels("A", max_depth=10) == {"B": 1, "C": 2, "D": 3, "E": 4}

    def test_zero_depth_and_unknown_seed(self, chain_traversal):
        assert chain_traversal.get_impacted_elements("A", max_depth=0) == []
        assert chain_traversal.get_impacted_elements("nope", max_depth=3) == []

    def test_default_depth(self, chain_traversal):
        assert sorted(_ids(chain_traversal.get_impacted_elements("A"))) == ["B", "C", "D"]

    def test_dangling_relationships_are_not_followed(self, archimetal_repository):
        traversal = RelationshipTraversal(archimetal_repository)
        impacted = _ids(traversal.get_impacted_elements("a1", max_depth=3))
        assert sorted(impacted) == ["a2", "a3"]


class TestDirectRelationships:
    def test_element_relationships_include_dangling(self, archimetal_repository):
        traversal = RelationshipTraversal(archimetal_repository)
        assert [r.id for r in traversal.get_element_relationships("a1")] == ["r1", "r2", "r8"]

    def test_incoming_and_outgoing(self, archimetal_repository):
        traversal = RelationshipTraversal(archimetal_repository)
        incoming = [(rel.id, el.id) for rel, el in traversal.get_incoming("app1")]
        outgoing = [(rel.id, el.id) for rel, el in traversal.get_outgoing("app1")]
        assert incoming == [("r4", "d1"), ("r7", "n1")]
        assert outgoing == [("r3", "p1"), ("r5", "app2")]

    def test_related_elements_are_resolvable_only(self, archimetal_repository):
        traversal = RelationshipTraversal(archimetal_repository)
        assert _ids(traversal.get_related_elements("a1")) == ["a2", "a3"]

    def test_by_relationship_type(self, archimetal_repository):
        traversal = RelationshipTraversal(archimetal_repository)
        triples = traversal.get_elements_by_relationship_type("Composition")
        assert [(s.id, r.id, t.id) for s, r, t in triples] == [("a1", "r1", "a2")]
        assert traversal.get_elements_by_relationship_type("AssociationRelationship") == []


class TestDependencyChain:
    def test_outgoing_chain_with_depths(self, chain_traversal):
        hops = chain_traversal.get_dependency_chain("A", max_depth=3)
        assert [(depth, rel.id, el.id) for depth, rel, el in hops] == [(1, "r1", "B"), (2, "r2", "C"), (3, "r3", "D")]

    def test_incoming_chain(self, chain_traversal):
        hops = chain_traversal.get_dependency_chain("C", direction="incoming", max_depth=5)
        assert [el.id for _, _, el in hops] == ["B", "A"]

    def test_relationship_type_filter(self, archimetal_repository):
        traversal = RelationshipTraversal(archimetal_repository)
        hops = traversal.get_dependency_chain("app1", ["Flow", "Triggering"], max_depth=5)
        assert [(depth, el.id) for depth, _, el in hops] == [(1, "app2"), (2, "p2")]

    def test_cycle_is_guarded(self, cycle_traversal):
        hops = cycle_traversal.get_dependency_chain("A", max_depth=10)
        assert [el.id for _, _, el in hops] == ["B", "C"]

    def test_invalid_direction(self, chain_traversal):
        with pytest.raises(ValueError):
            chain_traversal.get_dependency_chain("A", direction="sideways")
