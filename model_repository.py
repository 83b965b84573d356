"""
MODEL REPOSITORY - All loaded ArchiMate models, queryable as one graph

The repository is built once (eagerly or on first query) and is read-only
afterwards. Every "only X" query goes through the strict type classifier, and
user-facing lists collapse elements that share a name.
"""
import logging
import threading
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import networkx as nx

from ainstein_config import MODELS_DIR, MODEL_FILE_SUFFIX, LAYERS
from archimate_core import (
    ArchiMateParseError, Element, Model, ModelDirectoryNotFoundError, Relationship, parse_archimate_file,
)
from archimate_types import canonical_relationship_type, display_type, is_exact_type, is_valid_element_type

logger = logging.getLogger(__name__)


@dataclass
class ElementCounts:
    business_actors: int = 0
    business_roles: int = 0
    business_processes: int = 0
    business_functions: int = 0
    business_services: int = 0
    application_components: int = 0
    technology_nodes: int = 0
    total: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


# Count field -> canonical type it counts
COUNTED_TYPES = OrderedDict([
    ("business_actors", "BusinessActor"),
    ("business_roles", "BusinessRole"),
    ("business_processes", "BusinessProcess"),
    ("business_functions", "BusinessFunction"),
    ("business_services", "BusinessService"),
    ("application_components", "ApplicationComponent"),
    ("technology_nodes", "Node"),
])


def deduplicate_by_name(elements: List[Element]) -> List[Element]:
    """Collapse elements sharing a name; the first one seen in load order wins."""
    unique: Dict[str, Element] = {}
    for element in elements:
        if element.name not in unique:
            unique[element.name] = element
    return list(unique.values())


def find_model_files(root_dir) -> List[Path]:
    """Recursively collect *.archimate files (case-sensitive suffix) in a stable order."""
    root = Path(root_dir)
    return sorted(p for p in root.rglob("*") if p.is_file() and p.name.endswith(MODEL_FILE_SUFFIX))


class ModelRepository:
    def __init__(self, models_dir=None):
        self.models_dir = models_dir if models_dir is not None else MODELS_DIR
        self.models: Dict[str, Model] = {}
        self.graph = nx.MultiDiGraph()
        self.failed_files: List[str] = []
        self._loaded = False
        self._lock = threading.RLock()

    # ---------------- Loading ----------------
    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load_all(self, root_dir=None) -> List[Model]:
        """Load every model under root_dir. A second call is a no-op until reset()."""
        with self._lock:
            if self._loaded:
                return self.get_all_models()

            root = Path(root_dir if root_dir is not None else self.models_dir)
            if not root.is_dir():
                raise ModelDirectoryNotFoundError(f"Models directory not found: {root}")

            logger.info(f"Loading ArchiMate models from {root}")
            for file_path in find_model_files(root):
                try:
                    model = parse_archimate_file(file_path)
                except ArchiMateParseError as e:
                    logger.warning(f"Skipping model file {e.path}: {e.reason}")
                    self.failed_files.append(e.path)
                    continue
                self.add_model(model)
                logger.info(f"Loaded model: {model.name} with {len(model.elements)} elements "
                            f"and {len(model.relationships)} relationships")

            self.models_dir = root
            self._loaded = True
            logger.info(f"Successfully loaded {len(self.models)} models "
                        f"({len(self.failed_files)} files skipped)")
            return self.get_all_models()

    load_all_models = load_all

    def ensure_loaded(self):
        """Lazy load from the configured directory on first use."""
        if not self._loaded and not self.models:
            self.load_all()

    def add_model(self, model: Model) -> str:
        """Register a parsed model and extend the graph. Returns the key it is stored under."""
        with self._lock:
            key = model.name
            if key in self.models:
                key = f"{model.name} ({Path(model.source_path).stem})"
                logger.warning(f"Model name {model.name!r} already loaded, storing {model.source_path} as {key!r}")

            unknown: Dict[str, List[str]] = defaultdict(list)
            for element in model.elements.values():
                if not is_valid_element_type(element.type):
                    unknown[element.type].append(element.id)
            for raw_type, ids in unknown.items():
                logger.warning(f"Invalid ArchiMate type {raw_type!r} for element {ids[0]}"
                               f"{f' and {len(ids) - 1} more' if len(ids) > 1 else ''} in model {model.name!r}")

            self.models[key] = model
            self._add_to_graph(model)
            return key

    def _add_to_graph(self, model: Model):
        for element in model.elements.values():
            if element.id not in self.graph:
                self.graph.add_node(
                    element.id,
                    name=element.name,
                    type=display_type(element.type),
                    layer=element.layer,
                    model=model.name,
                )
        for rel in model.relationships.values():
            if model.is_dangling(rel):
                continue
            self.graph.add_edge(
                rel.source,
                rel.target,
                key=rel.id,
                relationship_type=display_type(rel.type),
                name=rel.name,
            )

    def reset(self):
        with self._lock:
            self.models.clear()
            self.graph.clear()
            self.failed_files.clear()
            self._loaded = False

    # ---------------- Lookup ----------------
    def get_all_models(self) -> List[Model]:
        return list(self.models.values())

    def get_model_by_name(self, name: str) -> Optional[Model]:
        return self.models.get(name)

    def iter_elements(self) -> Iterator[Element]:
        for model in self.models.values():
            yield from model.elements.values()

    def get_element(self, element_id: str) -> Optional[Element]:
        """First element with this id in load order"""
        for model in self.models.values():
            element = model.elements.get(element_id)
            if element is not None:
                return element
        return None

    def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        for model in self.models.values():
            rel = model.relationships.get(relationship_id)
            if rel is not None:
                return rel
        return None

    def find_elements_by_name(self, term: str) -> List[Element]:
        needle = term.lower()
        return [e for e in self.iter_elements() if needle in e.name.lower()]

    def find_elements_by_type(self, type_name: str) -> List[Element]:
        """Every stored element of exactly this type, duplicates included"""
        return [e for e in self.iter_elements() if is_exact_type(e, type_name)]

    def get_elements_of_type(self, type_name: str, deduplicate: bool = True) -> List[Element]:
        elements = self.find_elements_by_type(type_name)
        return deduplicate_by_name(elements) if deduplicate else elements

    def get_business_actors_only(self) -> List[Element]:
        return self.get_elements_of_type("BusinessActor")

    def get_business_processes_only(self) -> List[Element]:
        return self.get_elements_of_type("BusinessProcess")

    def get_business_functions_only(self) -> List[Element]:
        return self.get_elements_of_type("BusinessFunction")

    def get_business_services_only(self) -> List[Element]:
        return self.get_elements_of_type("BusinessService")

    def get_relationships_of_type(self, relationship_type: str):
        """(model, relationship) pairs of exactly this relationship type"""
        wanted = canonical_relationship_type(relationship_type)
        return [(model, rel)
                for model in self.models.values()
                for rel in model.relationships.values()
                if wanted and canonical_relationship_type(rel.type) == wanted]

    # ---------------- Statistics ----------------
    def get_element_counts(self) -> ElementCounts:
        counts = ElementCounts()
        for field_name, type_name in COUNTED_TYPES.items():
            setattr(counts, field_name, len(self.get_elements_of_type(type_name)))
        counts.total = sum(len(model.elements) for model in self.models.values())
        return counts

    def get_model_summary(self) -> Dict[str, Dict]:
        summary = {}
        for key, model in self.models.items():
            summary[key] = {
                "elements": len(model.elements),
                "relationships": len(model.relationships),
                "dangling_relationships": len(model.dangling_relationships()),
                "views": len(model.views),
                "folders": {layer: len(model.folders.get(layer, [])) for layer in LAYERS},
            }
        return summary

    def validate_model_data(self) -> List[str]:
        issues = []
        if not self.models:
            issues.append("No ArchiMate models loaded")
        for key, model in self.models.items():
            if not model.elements:
                issues.append(f"Model {key} has no elements")
            elif not model.folders.get("business") and not model.folders.get("application"):
                issues.append(f"Model {key} has no business or application elements")
        return issues

    def export_graphml(self, file_path) -> Path:
        """Write the repository graph to GraphML"""
        file_path = Path(file_path)
        nx.write_graphml(self.graph, file_path)
        logger.info(f"GraphML exported to: {file_path}")
        return file_path
