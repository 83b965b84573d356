"""Shared fixtures: .archimate documents built in memory or written to tmp_path."""

from xml.sax.saxutils import quoteattr

import pytest

from archimate_core import parse_archimate_string
from model_repository import ModelRepository

_FOLDERS = [
    ("Strategy", "strategy"),
    ("Business", "business"),
    ("Application", "application"),
    ("Technology &amp; Physical", "technology"),
    ("Other", "other"),
]

_APPLICATION_TYPES = ("Application", "DataObject")
_TECHNOLOGY_TYPES = ("Node", "Device", "SystemSoftware", "Artifact", "Technology")


def _default_folder(element_type):
    if element_type.startswith(_APPLICATION_TYPES):
        return "application"
    if element_type.startswith(_TECHNOLOGY_TYPES):
        return "technology"
    if element_type in ("Grouping", "Location", "Junction"):
        return "other"
    return "business"


def build_model_xml(name="Test Model", elements=(), relationships=(), model_id="model-1"):
    """Archi-format document.

    elements: (id, type, name) or (id, type, name, folder_type)
    relationships: (id, type, source, target)
    """
    by_folder = {folder_type: [] for _, folder_type in _FOLDERS}
    for entry in elements:
        el_id, el_type, el_name = entry[:3]
        folder_type = entry[3] if len(entry) > 3 else _default_folder(el_type)
        by_folder.setdefault(folder_type, []).append(
            f'    <element xsi:type="archimate:{el_type}" name={quoteattr(el_name)} id="{el_id}"/>'
        )

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<archimate:model xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
        'xmlns:archimate="http://www.archimatetool.com/archimate" '
        f'name={quoteattr(name)} id="{model_id}" version="4.9.0">',
    ]
    for folder_name, folder_type in _FOLDERS:
        lines.append(f'  <folder name="{folder_name}" id="folder-{folder_type}-{model_id}" type="{folder_type}">')
        lines.extend(by_folder.get(folder_type, []))
        lines.append("  </folder>")

    lines.append(f'  <folder name="Relations" id="folder-relations-{model_id}" type="relations">')
    for rel_id, rel_type, source, target in relationships:
        lines.append(f'    <element xsi:type="archimate:{rel_type}" id="{rel_id}" source="{source}" target="{target}"/>')
    lines.append("  </folder>")
    lines.append(f'  <folder name="Views" id="folder-views-{model_id}" type="diagrams"/>')
    lines.append("</archimate:model>")
    return "\n".join(lines) + "\n"


ARCHIMETAL_ELEMENTS = [
    ("a1", "BusinessActor", "ArchiMetal"),
    ("a2", "BusinessActor", "DC Benelux"),
    ("a3", "BusinessActor", "DC Spain"),
    ("p1", "BusinessProcess", "Order Handling"),
    ("p2", "BusinessProcess", "Invoicing"),
    ("f1", "BusinessFunction", "Sales"),
    ("app1", "ApplicationComponent", "CRM System"),
    ("app2", "ApplicationComponent", "ERP System"),
    ("d1", "DataObject", "Customer Data"),
    ("n1", "Node", "Mainframe"),
]

ARCHIMETAL_RELATIONSHIPS = [
    ("r1", "CompositionRelationship", "a1", "a2"),
    ("r2", "AssignmentRelationship", "a1", "a3"),
    ("r3", "ServingRelationship", "app1", "p1"),
    ("r4", "FlowRelationship", "d1", "app1"),
    ("r5", "FlowRelationship", "app1", "app2"),
    ("r6", "TriggeringRelationship", "app2", "p2"),
    ("r7", "ServingRelationship", "n1", "app1"),
    ("r8", "AssociationRelationship", "a1", "missing-element"),
]


@pytest.fixture
def model_xml():
    """The document builder"""
    return build_model_xml


@pytest.fixture
def archimetal_xml():
    return build_model_xml("ArchiMetal Baseline", ARCHIMETAL_ELEMENTS, ARCHIMETAL_RELATIONSHIPS)


@pytest.fixture
def models_dir(tmp_path):
    path = tmp_path / "models"
    path.mkdir()
    return path


@pytest.fixture
def write_model(models_dir):
    """Write a document under the models directory and return its path."""

    def _write(filename, xml_text):
        path = models_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(xml_text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def repository_from_xml():
    """Repository populated from in-memory documents, without touching disk."""

    def _build(*xml_texts):
        repository = ModelRepository(models_dir="unused")
        for i, xml_text in enumerate(xml_texts):
            repository.add_model(parse_archimate_string(xml_text, source_path=f"model-{i}.archimate"))
        return repository

    return _build


@pytest.fixture
def archimetal_repository(repository_from_xml, archimetal_xml):
    return repository_from_xml(archimetal_xml)
