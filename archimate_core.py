"""
ARCHIMATE CORE - Element/relationship data model and the .archimate XML reader

Parsing happens in two steps. The XML is first read into a small typed tree
(folder, element, relationship and diagram nodes). Malformed nodes are
rejected at that single boundary. The tree is then walked to build a Model,
with each folder's type deciding the layer of the elements it holds.
"""
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ainstein_config import (
    ARCHIMATE, XSI, MODEL_ROOT_TAG, FOLDER_LAYER_MAP, DEFAULT_LAYER, LAYERS,
    RELATIONS_FOLDER_TYPE, DIAGRAMS_FOLDER_TYPE, DIAGRAM_MODEL_TYPES,
)
from archimate_types import is_relationship_type, normalize_type

logger = logging.getLogger(__name__)

XSI_TYPE = f"{{{XSI}}}type"
_DIAGRAM_TYPES = {name.lower() for name in DIAGRAM_MODEL_TYPES}


# =============================================================================
# ERRORS
# =============================================================================

class ArchiMateError(Exception):
    """Base class for model loading and editing errors"""


class ArchiMateParseError(ArchiMateError):
    """A single model file could not be parsed"""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ModelDirectoryNotFoundError(ArchiMateError, FileNotFoundError):
    """The directory to scan for models does not exist"""


# =============================================================================
# MODEL CLASSES
# =============================================================================

@dataclass
class Element:
    id: str
    name: str
    type: str                      # raw xsi:type, e.g. "archimate:BusinessActor"
    layer: str                     # from the containing folder
    documentation: str = ""
    properties: Dict[str, str] = field(default_factory=dict)
    model_name: str = ""


@dataclass
class Relationship:
    id: str
    type: str
    source: str
    target: str
    name: str = ""
    documentation: str = ""
    model_name: str = ""


@dataclass
class View:
    id: str
    name: str
    viewpoint: str = ""
    element_ids: List[str] = field(default_factory=list)
    relationship_ids: List[str] = field(default_factory=list)


@dataclass
class Model:
    id: str
    name: str
    version: str
    source_path: str
    elements: Dict[str, Element] = field(default_factory=dict)
    relationships: Dict[str, Relationship] = field(default_factory=dict)
    views: Dict[str, View] = field(default_factory=dict)
    folders: Dict[str, List[Element]] = field(default_factory=lambda: {layer: [] for layer in LAYERS})

    def get_element(self, element_id: str) -> Optional[Element]:
        return self.elements.get(element_id)

    def resolve(self, relationship: Relationship) -> Tuple[Optional[Element], Optional[Element]]:
        """(source, target) elements of a relationship, None where the id does not resolve"""
        return self.elements.get(relationship.source), self.elements.get(relationship.target)

    def is_dangling(self, relationship: Relationship) -> bool:
        source, target = self.resolve(relationship)
        return source is None or target is None

    def dangling_relationships(self) -> List[Relationship]:
        return [rel for rel in self.relationships.values() if self.is_dangling(rel)]


# =============================================================================
# TYPED PARSE TREE
# =============================================================================

@dataclass
class ElementNode:
    id: str
    name: str
    raw_type: str
    documentation: str = ""
    properties: Dict[str, str] = field(default_factory=dict)


@dataclass
class RelationshipNode:
    id: str
    raw_type: str
    source: str
    target: str
    name: str = ""
    documentation: str = ""


@dataclass
class DiagramNode:
    id: str
    name: str
    viewpoint: str = ""
    element_refs: List[str] = field(default_factory=list)
    relationship_refs: List[str] = field(default_factory=list)


@dataclass
class FolderNode:
    name: str
    type: str                      # "" when the folder has no type attribute
    id: str = ""
    children: List[Union["FolderNode", ElementNode, RelationshipNode, DiagramNode]] = field(default_factory=list)

    @property
    def is_relations(self) -> bool:
        if self.type:
            return self.type.lower() == RELATIONS_FOLDER_TYPE
        return self.name.lower() == RELATIONS_FOLDER_TYPE

    @property
    def is_diagrams(self) -> bool:
        return self.type.lower() == DIAGRAMS_FOLDER_TYPE


@dataclass
class ModelTree:
    id: str
    name: str
    version: str
    folders: List[FolderNode] = field(default_factory=list)
    loose: List[Union[ElementNode, RelationshipNode, DiagramNode]] = field(default_factory=list)


def _local(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _namespace(tag: str) -> str:
    return tag[1:].split("}", 1)[0] if tag.startswith("{") else ""


def _extract_documentation(node: ET.Element) -> str:
    for child in node:
        if _local(child.tag) == "documentation" and child.text:
            return child.text.strip()
    return (node.get("documentation") or "").strip()


def _extract_properties(node: ET.Element) -> Dict[str, str]:
    properties = {}
    for child in node:
        tag = _local(child.tag)
        props = [child] if tag == "property" else list(child) if tag == "properties" else []
        for prop in props:
            key = prop.get("key", "")
            if key:
                properties[key] = prop.get("value", "")
    return properties


def _read_relationship(node: ET.Element, raw_type: str) -> Optional[RelationshipNode]:
    rel_id, source, target = node.get("id"), node.get("source"), node.get("target")
    if not all([rel_id, source, target]):
        logger.warning(f"Skipping relationship without id/source/target: id={rel_id!r} type={raw_type!r}")
        return None
    return RelationshipNode(
        id=rel_id,
        raw_type=raw_type,
        source=source,
        target=target,
        name=node.get("name", ""),
        documentation=_extract_documentation(node),
    )


def _read_diagram(node: ET.Element) -> DiagramNode:
    diagram = DiagramNode(
        id=node.get("id", ""),
        name=node.get("name", "Unnamed View"),
        viewpoint=node.get("viewpoint", ""),
    )
    for child in node.iter():
        element_ref = child.get("archimateElement")
        if element_ref and element_ref not in diagram.element_refs:
            diagram.element_refs.append(element_ref)
        relationship_ref = child.get("archimateRelationship")
        if relationship_ref and relationship_ref not in diagram.relationship_refs:
            diagram.relationship_refs.append(relationship_ref)
    return diagram


def _read_node(node: ET.Element, in_relations: bool, in_diagrams: bool = False):
    """Typed node for an <element>/<relationship> tag, or None when malformed"""
    tag = _local(node.tag)
    raw_type = node.get(XSI_TYPE) or node.get("type") or ""

    if tag == "relationship" or in_relations or is_relationship_type(raw_type):
        return _read_relationship(node, raw_type)

    if in_diagrams or normalize_type(raw_type) in _DIAGRAM_TYPES:
        if not node.get("id"):
            logger.warning(f"Skipping view without id: {node.get('name')!r}")
            return None
        return _read_diagram(node)

    element_id = node.get("id")
    if not element_id:
        logger.warning(f"Skipping element without id: name={node.get('name')!r} type={raw_type!r}")
        return None
    return ElementNode(
        id=element_id,
        name=node.get("name") or "Unnamed Element",
        raw_type=raw_type,
        documentation=_extract_documentation(node),
        properties=_extract_properties(node),
    )


def _read_folder(node: ET.Element, in_relations: bool = False, in_diagrams: bool = False) -> FolderNode:
    folder = FolderNode(name=node.get("name", ""), type=node.get("type", ""), id=node.get("id", ""))
    in_relations = in_relations or folder.is_relations
    in_diagrams = in_diagrams or folder.is_diagrams

    for child in node:
        tag = _local(child.tag)
        if tag == "folder":
            folder.children.append(_read_folder(child, in_relations, in_diagrams))
        elif tag in ("element", "relationship"):
            typed = _read_node(child, in_relations, in_diagrams)
            if typed is not None:
                folder.children.append(typed)
    return folder


def read_model_tree(root: ET.Element, source=None) -> ModelTree:
    """Validate the root container and convert the XML into a typed tree."""
    if _local(root.tag) != MODEL_ROOT_TAG or _namespace(root.tag) != ARCHIMATE:
        raise ArchiMateParseError(source or "<string>", f"missing archimate:model root element (found {root.tag!r})")

    stem = Path(str(source)).stem if source else "model"
    tree = ModelTree(
        id=root.get("id") or stem,
        name=root.get("name") or stem,
        version=root.get("version") or "3.2",
    )
    for child in root:
        tag = _local(child.tag)
        if tag == "folder":
            tree.folders.append(_read_folder(child))
        elif tag in ("element", "relationship"):
            typed = _read_node(child, in_relations=False)
            if typed is not None:
                tree.loose.append(typed)
    return tree


# =============================================================================
# MODEL BUILDER
# =============================================================================

def folder_layer(folder_type: str, parent_layer: Optional[str] = None) -> str:
    """Layer for a folder type. Untyped folders inherit; unknown types fall back to business."""
    if not folder_type:
        return parent_layer or DEFAULT_LAYER
    key = re.sub(r"[\s_&]", "", folder_type.lower())
    return FOLDER_LAYER_MAP.get(key, DEFAULT_LAYER)


class ModelBuilder:
    """Walks a ModelTree and fills a Model"""

    def __init__(self, tree: ModelTree, source_path: str):
        self.tree = tree
        self.model = Model(id=tree.id, name=tree.name, version=tree.version, source_path=source_path)

    def build(self) -> Model:
        for folder in self.tree.folders:
            self._add_folder(folder, parent_layer=None)
        for node in self.tree.loose:
            self._add_node(node, DEFAULT_LAYER)
        return self.model

    def _add_folder(self, folder: FolderNode, parent_layer: Optional[str]):
        layer = folder_layer(folder.type, parent_layer)
        for child in folder.children:
            if isinstance(child, FolderNode):
                self._add_folder(child, layer)
            else:
                self._add_node(child, layer)

    def _add_node(self, node, layer: str):
        if isinstance(node, RelationshipNode):
            self._add_relationship(node)
        elif isinstance(node, DiagramNode):
            self.model.views[node.id] = View(
                id=node.id,
                name=node.name,
                viewpoint=node.viewpoint,
                element_ids=list(node.element_refs),
                relationship_ids=list(node.relationship_refs),
            )
        else:
            self._add_element(node, layer)

    def _add_element(self, node: ElementNode, layer: str):
        if node.id in self.model.elements:
            logger.warning(f"Duplicate element id {node.id} in model {self.model.name!r}, keeping first")
            return
        element = Element(
            id=node.id,
            name=node.name,
            type=node.raw_type,
            layer=layer,
            documentation=node.documentation,
            properties=dict(node.properties),
            model_name=self.model.name,
        )
        self.model.elements[element.id] = element
        self.model.folders.setdefault(layer, []).append(element)

    def _add_relationship(self, node: RelationshipNode):
        if node.id in self.model.relationships:
            logger.warning(f"Duplicate relationship id {node.id} in model {self.model.name!r}, keeping first")
            return
        self.model.relationships[node.id] = Relationship(
            id=node.id,
            type=node.raw_type,
            source=node.source,
            target=node.target,
            name=node.name,
            documentation=node.documentation,
            model_name=self.model.name,
        )


# =============================================================================
# ENTRY POINTS
# =============================================================================

def parse_archimate_string(xml_text: str, source_path: str = "<string>") -> Model:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ArchiMateParseError(source_path, f"XML parsing error: {e}") from e
    tree = read_model_tree(root, source_path)
    return ModelBuilder(tree, source_path).build()


def parse_archimate_file(file_path) -> Model:
    """Parse one .archimate file into a Model. Raises ArchiMateParseError."""
    file_path = Path(file_path)
    try:
        root = ET.parse(file_path).getroot()
    except ET.ParseError as e:
        raise ArchiMateParseError(file_path, f"XML parsing error: {e}") from e
    except OSError as e:
        raise ArchiMateParseError(file_path, f"cannot read file: {e}") from e

    tree = read_model_tree(root, file_path)
    model = ModelBuilder(tree, str(file_path)).build()

    dangling = model.dangling_relationships()
    if dangling:
        logger.warning(f"Model {model.name!r} has {len(dangling)} dangling relationships "
                       f"(e.g. {dangling[0].id})")
    return model
