"""Tests for org_analyzer - relationship-driven actor partition."""

from org_analyzer import OrganizationalAnalyzer


def _names(elements):
    return sorted(e.name for e in elements)


class TestOrganizationalStructure:
    def test_only_actor_to_actor_links(self, archimetal_repository):
        structure = OrganizationalAnalyzer(archimetal_repository).get_organizational_structure()

        assert [(l.source.id, l.target.id) for l in structure.composition_relationships] == [("a1", "a2")]
        assert [(l.source.id, l.target.id) for l in structure.assignment_relationships] == [("a1", "a3")]
        assert structure.hierarchy() == {"ArchiMetal": ["DC Benelux"]}
        assert structure.assignments() == [("ArchiMetal", "DC Spain")]
        assert not structure.is_empty()

    def test_links_to_other_types_are_ignored(self, repository_from_xml, model_xml):
        repository = repository_from_xml(model_xml(
            "Mixed",
            [("a1", "BusinessActor", "HQ"), ("r1", "BusinessRole", "Clerk"), ("p1", "BusinessProcess", "Pay")],
            [("c1", "CompositionRelationship", "a1", "p1"), ("s1", "AssignmentRelationship", "a1", "r1")],
        ))
        structure = OrganizationalAnalyzer(repository).get_organizational_structure()
        assert structure.is_empty()


class TestActorPartition:
    def test_archimetal_partition(self, archimetal_repository):
        analysis = OrganizationalAnalyzer(archimetal_repository).analyze()

        assert _names(analysis.internal_actors) == ["ArchiMetal"]
        assert _names(analysis.departments) == ["DC Benelux"]
        # an assignment does not place an actor in the hierarchy
        assert _names(analysis.external_actors) == ["DC Spain"]
        assert analysis.total == 3

    def test_mid_level_units_are_internal(self, repository_from_xml, model_xml):
        repository = repository_from_xml(model_xml(
            "Tree",
            [
                ("hq", "BusinessActor", "Head Office"),
                ("ops", "BusinessActor", "Operations"),
                ("plant", "BusinessActor", "Plant"),
                ("bank", "BusinessActor", "Bank"),
            ],
            [("c1", "CompositionRelationship", "hq", "ops"), ("c2", "CompositionRelationship", "ops", "plant")],
        ))
        analysis = OrganizationalAnalyzer(repository).get_business_actor_analysis()

        assert _names(analysis.internal_actors) == ["Head Office", "Operations"]
        assert _names(analysis.departments) == ["Plant"]
        assert _names(analysis.external_actors) == ["Bank"]

    def test_names_never_drive_categorization(self, repository_from_xml, model_xml):
        repository = repository_from_xml(model_xml(
            "Names",
            [("f", "BusinessActor", "Finance Department"), ("d", "BusinessActor", "DC Benelux")],
        ))
        analysis = OrganizationalAnalyzer(repository).analyze()
        assert analysis.departments == []
        assert analysis.internal_actors == []
        assert _names(analysis.external_actors) == ["DC Benelux", "Finance Department"]

    def test_partition_is_complete_and_disjoint(self, repository_from_xml, archimetal_xml, model_xml):
        target = model_xml(
            "Target",
            [
                ("t1", "BusinessActor", "ArchiMetal"),
                ("t2", "BusinessActor", "DC Spain"),
                ("t3", "BusinessActor", "Shipping"),
            ],
            [("tc1", "CompositionRelationship", "t1", "t2"), ("tc2", "CompositionRelationship", "t2", "t3")],
            model_id="m2",
        )
        repository = repository_from_xml(archimetal_xml, target)
        analysis = OrganizationalAnalyzer(repository).analyze()

        buckets = [analysis.internal_actors, analysis.external_actors, analysis.departments]
        names = [e.name for bucket in buckets for e in bucket]
        distinct = {e.name for e in repository.get_business_actors_only()}

        assert len(names) == len(set(names))
        assert set(names) == distinct
        assert analysis.total == len(distinct) == 4
        # DC Spain is a composition source in the target model
        assert "DC Spain" in _names(analysis.internal_actors)
