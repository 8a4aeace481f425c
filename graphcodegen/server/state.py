"""
EditorState: the one registry + graph pair the HTTP service edits.

Registry documents listed in GRAPHCODEGEN_REGISTRY_PATHS are merged at start
up. Every mutation goes through here so the link repair pass runs after it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..compiler import generate_code
from ..core.Connections import auto_connect, connect, validate_connections
from ..core.GraphPrimitives import Graph, Link
from ..core.Node import Node
from ..core.NodePort import PortRef
from ..noderegistry.NodeRegistry import NodeRegistry
from ..serializers.graph_serializer import LoadReport, export_graph, load_graph
from ..settings import Settings

logger = logging.getLogger(__name__)


class EditorState:
    """Holds the node catalog and the graph being edited."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.registry = NodeRegistry()
        self.graph = Graph(self.registry)

        for path in self.settings.registry_paths:
            try:
                self.registry.add_registry_file(path)
            except (OSError, ValueError) as exc:
                logger.error(f"Could not load node registry {path}: {exc}")

    # ── Registry ─────────────────────────────────────────────────────────────

    def add_registry(self, document: Dict[str, Any]) -> List[Link]:
        self.registry.add_registry(document)
        removed = self.graph.refresh_from_registry()
        self._log_removed("registry merge", removed)
        return removed

    # ── Graph document ───────────────────────────────────────────────────────

    def export(self) -> Dict[str, Any]:
        return export_graph(self.graph)

    def load(self, document: Dict[str, Any]) -> LoadReport:
        return load_graph(self.graph, document)

    def clear(self) -> None:
        self.graph.clear()

    # ── Nodes ────────────────────────────────────────────────────────────────

    def get_node(self, node_id: int) -> Node:
        node = self.graph.get_node(node_id)
        if node is None:
            raise KeyError(node_id)
        return node

    def create_node(self, category: str, type_name: str, x: float, y: float) -> Node:
        node = self.graph.add_node(category, type_name, x, y)
        self._repair("create node")
        return node

    def delete_node(self, node_id: int) -> List[Link]:
        self.get_node(node_id)
        removed = self.graph.remove_node(node_id)
        self._repair("delete node")
        return removed

    def move_node(self, node_id: int, x: float, y: float) -> Node:
        node = self.get_node(node_id)
        node.move_to(x, y)
        return node

    def set_value(self, node_id: int, value: Any) -> Node:
        node = self.get_node(node_id)
        node.set_value(value)
        return node

    # ── Links ────────────────────────────────────────────────────────────────

    def create_link(self, a: PortRef, b: PortRef) -> Optional[Link]:
        link = connect(self.graph, a, b)
        if link is not None:
            self._repair("create link")
        return link

    def auto_connect(self, source: PortRef, node_id: int) -> Optional[Link]:
        link = auto_connect(self.graph, source, node_id)
        self._repair("auto connect")
        return link

    def delete_link(self, link_id: int) -> Link:
        if self.graph.get_link(link_id) is None:
            raise KeyError(link_id)
        link = self.graph.remove_link(link_id)
        self._repair("delete link")
        return link

    # ── Compilation ──────────────────────────────────────────────────────────

    def generate(self) -> str:
        return generate_code(self.graph, max_data_depth=self.settings.max_data_depth)

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _repair(self, action: str) -> None:
        self._log_removed(action, validate_connections(self.graph))

    @staticmethod
    def _log_removed(action: str, removed: List[Link]) -> None:
        if removed:
            logger.info(f"{action}: removed link(s) {[l.id for l in removed]}")


_state: Optional[EditorState] = None


def get_state() -> EditorState:
    """Shared instance, built on first use."""
    global _state
    if _state is None:
        _state = EditorState(Settings.from_env())
    return _state
