"""
MODEL UPDATER - In-place edits of .archimate files

Adds elements and relationships to an existing model file. Each edit is a full
read-modify-write of the file, serialized per path so concurrent edits of the
same file cannot interleave.
"""
import logging
import threading
import uuid
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional

from ainstein_config import ARCHIMATE, XSI, LAYER_FOLDER_NAMES, RELATIONS_FOLDER_TYPE
from archimate_core import ArchiMateError, XSI_TYPE
from archimate_types import canonical_relationship_type, canonical_type, type_layer

logger = logging.getLogger(__name__)

# Keep the archimate:/xsi: prefixes Archi expects when the tree is written back
ET.register_namespace("xsi", XSI)
ET.register_namespace("archimate", ARCHIMATE)

_file_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


class ModelUpdateError(ArchiMateError):
    """The edit could not be applied to the model file"""


def generate_id(prefix="id"):
    return f"{prefix}-{uuid.uuid4().hex}"


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _registry_lock:
        return _file_locks.setdefault(key, threading.Lock())


@contextmanager
def _edit_model(file_path):
    """Yield the model root under the file's lock; the file is rewritten only if the block succeeds."""
    path = Path(file_path)
    if not path.is_file():
        raise ModelUpdateError(f"Model file not found: {path}")

    with _lock_for(path):
        try:
            tree = ET.parse(path)
        except ET.ParseError as e:
            raise ModelUpdateError(f"Cannot parse {path}: {e}") from e
        yield tree.getroot()
        tree.write(path, encoding="utf-8", xml_declaration=True)


def _local(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def ensure_folder(model: ET.Element, folder_name: str, folder_type: str) -> ET.Element:
    """Find a top-level folder by type, then by name; create it when missing."""
    folders = [f for f in model if _local(f.tag) == "folder"]
    for f in folders:
        if (f.get("type") or "").lower() == folder_type.lower():
            return f
    for f in folders:
        if f.get("name") == folder_name:
            return f
    logger.info(f"Creating folder {folder_name!r} (type={folder_type})")
    return ET.SubElement(model, "folder", {"name": folder_name, "id": generate_id(), "type": folder_type})


def _element_ids(model: ET.Element):
    return {node.get("id") for node in model.iter() if _local(node.tag) == "element" and node.get("id")}


def add_element(file_path, element_type: str, name: str, documentation: Optional[str] = None,
                folder_type: Optional[str] = None) -> str:
    """Append an element to the folder of its layer and return the new id."""
    canonical = canonical_type(element_type)
    if canonical is None:
        raise ModelUpdateError(f"Unknown ArchiMate element type: {element_type!r}")

    folder_name, default_folder_type = LAYER_FOLDER_NAMES.get(type_layer(canonical), LAYER_FOLDER_NAMES["other"])
    if folder_type:
        folder_name = folder_type.replace("_", " ").title()
    else:
        folder_type = default_folder_type

    new_id = generate_id()
    with _edit_model(file_path) as model:
        folder = ensure_folder(model, folder_name, folder_type)
        element = ET.SubElement(folder, "element", {XSI_TYPE: f"archimate:{canonical}", "name": name, "id": new_id})
        if documentation:
            doc = ET.SubElement(element, "documentation")
            doc.text = documentation

    logger.info(f"Added {canonical} {name!r} ({new_id}) to {file_path}")
    return new_id


def add_relationship(file_path, relationship_type: str, source_id: str, target_id: str,
                     name: Optional[str] = None) -> str:
    """Append a relationship to the relations folder. Both endpoints must exist in the file."""
    canonical = canonical_relationship_type(relationship_type)
    if canonical is None:
        raise ModelUpdateError(f"Unknown ArchiMate relationship type: {relationship_type!r}")

    new_id = generate_id()
    with _edit_model(file_path) as model:
        known = _element_ids(model)
        missing = [ref for ref in (source_id, target_id) if ref not in known]
        if missing:
            raise ModelUpdateError(f"Element(s) not found in {file_path}: {', '.join(missing)}")

        folder = ensure_folder(model, "Relations", RELATIONS_FOLDER_TYPE)
        attribs = {XSI_TYPE: f"archimate:{canonical}", "id": new_id, "source": source_id, "target": target_id}
        if name:
            attribs["name"] = name
        ET.SubElement(folder, "element", attribs)

    logger.info(f"Added {canonical} {source_id} -> {target_id} ({new_id}) to {file_path}")
    return new_id
