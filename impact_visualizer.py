"""
IMPACT VISUALIZER - PNG rendering of an element's impact set using NetworkX and Matplotlib
"""
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

from ainstein_config import LAYER_COLORS, LAYER_ORDER, TRAVERSAL
from archimate_types import type_layer
from relationship_traversal import RelationshipTraversal

logger = logging.getLogger(__name__)


class ImpactVisualizer:
    def __init__(self, repository):
        self.repository = repository
        self.traversal = RelationshipTraversal(repository)

    def _node_layer(self, node_id: str) -> str:
        element = self.repository.get_element(node_id)
        if element is None:
            return "other"
        return type_layer(element.type) or element.layer or "other"

    def create_layered_layout(self, nodes: List[str]) -> Dict[str, Tuple[float, float]]:
        """One row per architecture layer, nodes spread evenly across the row"""
        layer_nodes = defaultdict(list)
        for node in nodes:
            layer_nodes[self._node_layer(node)].append(node)

        pos = {}
        layer_height = 1.0 / len(LAYER_ORDER)
        for i, layer in enumerate(LAYER_ORDER):
            row = layer_nodes.get(layer)
            if not row:
                continue
            y_pos = 1.0 - (i * layer_height) - layer_height / 2
            xs = np.linspace(0, 1, len(row) + 2)[1:-1]
            for node, x_pos in zip(row, xs):
                pos[node] = (float(x_pos), y_pos)
        return pos

    def render_impact(self, element_id: str, output_path, max_depth: int = None) -> Path:
        """Draw the seed and everything it impacts, plus impacted counts per layer."""
        if max_depth is None:
            max_depth = TRAVERSAL["default_max_depth"]
        seed = self.repository.get_element(element_id)
        if seed is None:
            raise KeyError(f"Unknown element id: {element_id}")

        levels = self.traversal.get_impact_levels(element_id, max_depth)
        nodes = [element_id] + list(levels)
        subgraph = self.repository.graph.subgraph(nodes)

        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(16, 8))

        # Plot 1: layered network view, nodes shrink with distance from the seed
        pos = self.create_layered_layout(nodes)
        distances = np.array([0] + [levels[n] for n in nodes[1:]], dtype=float)
        node_sizes = 1800 / (distances + 1) + 200
        node_colors = [LAYER_COLORS.get(self._node_layer(n), LAYER_COLORS["other"]) for n in nodes]

        nx.draw_networkx_nodes(subgraph, pos, nodelist=nodes, node_size=node_sizes,
                               node_color=node_colors, alpha=0.8, ax=ax1)
        nx.draw_networkx_edges(subgraph, pos, alpha=0.4, arrows=True, ax=ax1)
        labels = {n: subgraph.nodes[n].get("name", n)[:20] for n in nodes}
        nx.draw_networkx_labels(subgraph, pos, labels, font_size=8, ax=ax1)
        ax1.set_title(f"Impact of {seed.name}\n(depth {max_depth}, {len(levels)} elements)")
        ax1.axis("off")

        # Plot 2: impacted elements per layer
        per_layer = defaultdict(list)
        for node, depth in levels.items():
            per_layer[self._node_layer(node)].append(depth)
        layers = [layer for layer in LAYER_ORDER if layer in per_layer]
        counts = [len(per_layer[layer]) for layer in layers]
        colors = [LAYER_COLORS.get(layer, LAYER_COLORS["other"]) for layer in layers]

        bars = ax2.bar(layers, counts, color=colors, alpha=0.8)
        ax2.set_title("Impacted Elements by Layer")
        ax2.set_ylabel("Elements")
        ax2.tick_params(axis="x", rotation=45)
        for bar, layer in zip(bars, layers):
            ax2.text(bar.get_x() + bar.get_width() / 2., bar.get_height(),
                     f"avg hop {np.mean(per_layer[layer]):.1f}", ha="center", va="bottom", fontsize=8)

        fig.tight_layout()
        output_path = Path(output_path)
        fig.savefig(output_path, dpi=100)
        plt.close(fig)
        logger.info(f"Impact plot written to: {output_path}")
        return output_path


def render_impact(repository, element_id: str, output_path, max_depth: int = None) -> Path:
    return ImpactVisualizer(repository).render_impact(element_id, output_path, max_depth)
