"""
Graph serializer: import/export of a Graph as a JSON-safe document.

See serializers/schema.py for the document shape.

Loading is per-entity forgiving: a node whose definition is missing, or a
connection whose endpoints do not resolve, is skipped, logged and recorded in
the returned LoadReport while the rest of the document still loads.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.Connections import validate_connections
from ..core.GraphPrimitives import Graph
from ..core.Node import Node
from ..core.NodePort import PortRef
from ..core.Types import PortDirection
from .schema import (
    FORMAT_VERSION,
    connection_entry_problems,
    node_entry_problems,
    validate,
)

logger = logging.getLogger(__name__)

METADATA_KEYS = ("name", "description", "author")


# ── Load report ───────────────────────────────────────────────────────────────

@dataclass
class SkippedEntity:
    index: int               # position in the document's list
    id: Optional[int]        # entity id, when the entry had a usable one
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "id": self.id, "reason": self.reason}


@dataclass
class LoadReport:
    nodes_loaded: int = 0
    connections_loaded: int = 0
    skipped_nodes: List[SkippedEntity] = field(default_factory=list)
    skipped_connections: List[SkippedEntity] = field(default_factory=list)
    removed_links: List[int] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not (self.skipped_nodes or self.skipped_connections or self.removed_links)

    def warnings(self) -> List[str]:
        lines = [f"node #{s.index} (id={s.id}) skipped: {s.reason}" for s in self.skipped_nodes]
        lines += [f"connection #{s.index} (id={s.id}) skipped: {s.reason}" for s in self.skipped_connections]
        if self.removed_links:
            lines.append(f"removed {len(self.removed_links)} invalid connection(s): {self.removed_links}")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodesLoaded": self.nodes_loaded,
            "connectionsLoaded": self.connections_loaded,
            "skippedNodes": [s.to_dict() for s in self.skipped_nodes],
            "skippedConnections": [s.to_dict() for s in self.skipped_connections],
            "removedLinks": self.removed_links,
        }


# ── Export ────────────────────────────────────────────────────────────────────

def export_graph(graph: Graph, **metadata: Any) -> Dict[str, Any]:
    nodes = []
    for node in graph.nodes.values():
        entry = {
            "id": node.id,
            "type": node.type,
            "category": node.category,
            "x": node.x,
            "y": node.y,
        }
        if node.has_value:
            entry["value"] = node.value
        nodes.append(entry)

    document: Dict[str, Any] = {"version": FORMAT_VERSION}
    for key in METADATA_KEYS:
        if metadata.get(key) is not None:
            document[key] = metadata[key]
    document["nodes"] = nodes
    document["connections"] = [link.to_dict() for link in graph.links]
    return document


# ── Import ────────────────────────────────────────────────────────────────────

def _skip(entries: List[SkippedEntity], index: int, entity_id: Any, reason: str, kind: str) -> None:
    usable_id = entity_id if isinstance(entity_id, int) and not isinstance(entity_id, bool) else None
    entries.append(SkippedEntity(index, usable_id, reason))
    logger.warning(f"Failed to create {kind} #{index} (id={entity_id!r}): {reason}")


def _load_node(graph: Graph, entry: Dict[str, Any]) -> Node:
    node = Node(entry["id"], entry.get("x", 0), entry.get("y", 0),
                entry["category"], entry["type"], graph.registry)
    if "value" in entry:
        if node.has_value:
            node.set_value(entry["value"])
        else:
            logger.warning(f"Node {node.id} ({node.category}/{node.type}) has no value slot; ignoring stored value")
    return graph.insert_node(node)


def load_graph(graph: Graph, data: Dict[str, Any]) -> LoadReport:
    """
    Replace the contents of `graph` with the document `data`.

    Raises:
        SchemaError: The document's top-level structure is invalid. The graph
                     is left untouched in that case.
    """
    validate(data)
    graph.clear()
    report = LoadReport(metadata={k: data[k] for k in METADATA_KEYS if data.get(k) is not None})

    # Recreate nodes, preserving ids
    for index, entry in enumerate(data["nodes"]):
        problems = node_entry_problems(entry)
        entity_id = entry.get("id") if isinstance(entry, dict) else None
        if problems:
            _skip(report.skipped_nodes, index, entity_id, "; ".join(problems), "node")
            continue
        if entry["id"] in graph.nodes:
            _skip(report.skipped_nodes, index, entity_id, "duplicate node id", "node")
            continue
        try:
            _load_node(graph, entry)
        except ValueError as exc:
            _skip(report.skipped_nodes, index, entity_id, str(exc), "node")
            continue
        report.nodes_loaded += 1

    # Recreate connections, preserving ids
    for index, entry in enumerate(data.get("connections", [])):
        problems = connection_entry_problems(entry)
        entity_id = entry.get("id") if isinstance(entry, dict) else None
        if problems:
            _skip(report.skipped_connections, index, entity_id, "; ".join(problems), "connection")
            continue

        from_ref = PortRef.from_dict(entry["from"])
        to_ref = PortRef.from_dict(entry["to"])

        missing = [r.node_id for r in (from_ref, to_ref) if r.node_id not in graph.nodes]
        if missing:
            _skip(report.skipped_connections, index, entity_id, f"missing node {missing[0]}", "connection")
            continue
        if graph.resolve_port(from_ref) is None or graph.resolve_port(to_ref) is None:
            _skip(report.skipped_connections, index, entity_id, "missing port index", "connection")
            continue
        if from_ref.direction == to_ref.direction:
            _skip(report.skipped_connections, index, entity_id,
                  f"both endpoints are {from_ref.direction.value} ports", "connection")
            continue
        if graph.get_link(entry["id"]) is not None:
            _skip(report.skipped_connections, index, entity_id, "duplicate connection id", "connection")
            continue

        if from_ref.direction == PortDirection.INPUT:
            from_ref, to_ref = to_ref, from_ref

        graph.add_link(from_ref, to_ref, link_id=entry["id"])
        report.connections_loaded += 1

    report.removed_links = [link.id for link in validate_connections(graph)]
    report.connections_loaded -= len(report.removed_links)

    logger.info(f"Loaded graph: {report.nodes_loaded} node(s), {report.connections_loaded} connection(s), "
                f"{len(report.skipped_nodes)} node(s) and {len(report.skipped_connections)} connection(s) skipped")
    return report


# ── Files ─────────────────────────────────────────────────────────────────────

def load_graph_file(graph: Graph, path: Union[str, Path]) -> LoadReport:
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    return load_graph(graph, data)


def dump_graph_file(graph: Graph, path: Union[str, Path], **metadata: Any) -> None:
    path = Path(path)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(export_graph(graph, **metadata), fh, indent=2)
        fh.write("\n")
