"""Tests for model_updater - in-place edits of model files."""

import threading

import pytest

from archimate_core import parse_archimate_file
from model_updater import ModelUpdateError, add_element, add_relationship, generate_id


@pytest.fixture
def model_file(write_model, archimetal_xml):
    return write_model("archimetal.archimate", archimetal_xml)


class TestAddElement:
    def test_element_lands_in_layer_folder(self, model_file):
        new_id = add_element(model_file, "ApplicationComponent", "Billing Engine", documentation="Invoices")

        assert new_id.startswith("id-")
        model = parse_archimate_file(model_file)
        element = model.elements[new_id]
        assert element.name == "Billing Engine"
        assert element.type == "archimate:ApplicationComponent"
        assert element.layer == "application"
        assert element.documentation == "Invoices"
        assert len(model.elements) == 11

    def test_namespace_prefixes_are_kept(self, model_file):
        add_element(model_file, "BusinessActor", "DC France")
        text = model_file.read_text(encoding="utf-8")
        assert text.startswith("<?xml")
        assert "<archimate:model" in text
        assert 'xsi:type="archimate:BusinessActor"' in text

    def test_missing_folder_is_created(self, model_file):
        new_id = add_element(model_file, "WorkPackage", "Migrate CRM")
        model = parse_archimate_file(model_file)
        assert model.elements[new_id].layer == "implementation"
        assert "implementation_migration" in model_file.read_text(encoding="utf-8")

    def test_explicit_folder_type(self, model_file):
        new_id = add_element(model_file, "Goal", "Grow", folder_type="motivation")
        assert parse_archimate_file(model_file).elements[new_id].name == "Grow"
        assert 'type="motivation"' in model_file.read_text(encoding="utf-8")

    def test_unknown_type(self, model_file):
        with pytest.raises(ModelUpdateError, match="Unknown ArchiMate element type"):
            add_element(model_file, "Widget", "Gadget")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ModelUpdateError, match="not found"):
            add_element(tmp_path / "absent.archimate", "BusinessActor", "X")


class TestAddRelationship:
    def test_relationship_is_added(self, model_file):
        new_id = add_relationship(model_file, "Composition", "a1", "a3", name="owns")

        model = parse_archimate_file(model_file)
        rel = model.relationships[new_id]
        assert rel.type == "archimate:CompositionRelationship"
        assert (rel.source, rel.target, rel.name) == ("a1", "a3", "owns")
        assert not model.is_dangling(rel)

    def test_missing_endpoint_leaves_file_untouched(self, model_file):
        before = model_file.read_text(encoding="utf-8")
        with pytest.raises(ModelUpdateError, match="ghost"):
            add_relationship(model_file, "Serving", "app1", "ghost")
        assert model_file.read_text(encoding="utf-8") == before

    def test_unknown_relationship_type(self, model_file):
        with pytest.raises(ModelUpdateError):
            add_relationship(model_file, "Friendship", "a1", "a2")


class TestConcurrentEdits:
    def test_parallel_edits_are_all_kept(self, model_file):
        ids = []

        def worker(i):
            ids.append(add_element(model_file, "BusinessActor", f"Unit {i}"))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        model = parse_archimate_file(model_file)
        assert all(new_id in model.elements for new_id in ids)
        assert len(model.elements) == 18


def test_generate_id_is_unique():
    assert generate_id() != generate_id()
    assert generate_id("rel").startswith("rel-")
