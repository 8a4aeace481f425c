from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING
import logging

from .Node import Node
from .NodePort import Port, PortRef

if TYPE_CHECKING:
    from ..noderegistry.NodeRegistry import NodeRegistry

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Link:
    """
    Directed edge from an output port to an input port.

    Endpoints are PortRefs, so a link owns neither node; the Graph owns the
    link and drops it whenever either endpoint node goes away.
    """
    id: int
    from_port: PortRef
    to_port: PortRef
    selected: bool = field(default=False)

    def touches(self, node_id: int) -> bool:
        return self.from_port.node_id == node_id or self.to_port.node_id == node_id

    def to_dict(self) -> Dict:
        return {"id": self.id, "from": self.from_port.to_dict(), "to": self.to_port.to_dict()}

    def __repr__(self):
        return f"Link({self.id}: {self.from_port} -> {self.to_port})"


class Graph:
    """
    Arena store for one editable document: nodes keyed by id (creation order
    preserved) and a flat, ordered list of links. Each graph owns its own id
    counters.
    """

    def __init__(self, registry: 'NodeRegistry'):
        self.registry = registry
        self.nodes: Dict[int, Node] = {}
        self.links: List[Link] = []
        self.node_id_counter = 0
        self.link_id_counter = 0

    # --- Id counters ---

    def next_node_id(self) -> int:
        node_id = self.node_id_counter
        self.node_id_counter += 1
        return node_id

    def next_link_id(self) -> int:
        link_id = self.link_id_counter
        self.link_id_counter += 1
        return link_id

    def advance_counters(self, node_id: Optional[int] = None, link_id: Optional[int] = None) -> None:
        """Move the counters past restored ids so new entities never collide."""
        if node_id is not None and node_id >= self.node_id_counter:
            self.node_id_counter = node_id + 1
        if link_id is not None and link_id >= self.link_id_counter:
            self.link_id_counter = link_id + 1

    # --- Nodes ---

    def add_node(self, category: str, type: str, x: float = 0, y: float = 0) -> Node:
        # Construct before consuming an id so a failed lookup leaves the counter alone.
        node = Node(self.node_id_counter, x, y, category, type, self.registry)
        self.next_node_id()
        self.nodes[node.id] = node
        logger.debug(f"Graph: added node {node}")
        return node

    def insert_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise ValueError(f"Node with id '{node.id}' already exists in the graph")
        self.nodes[node.id] = node
        self.advance_counters(node_id=node.id)
        return node

    def get_node(self, node_id: int) -> Optional[Node]:
        return self.nodes.get(node_id)

    def resolve_port(self, ref: PortRef) -> Optional[Port]:
        node = self.nodes.get(ref.node_id)
        if node is None:
            return None
        return node.port(ref.direction, ref.index)

    def remove_node(self, node_id: int) -> List[Link]:
        return self.remove_nodes([node_id])

    def remove_nodes(self, node_ids: Iterable[int]) -> List[Link]:
        ids = set(node_ids)
        missing = [i for i in ids if i not in self.nodes]
        if missing:
            raise ValueError(f"Node with id '{missing[0]}' does not exist in the graph")

        # Arena Pattern: cleanup connections associated with these nodes
        removed = [l for l in self.links if l.from_port.node_id in ids or l.to_port.node_id in ids]
        self.links = [l for l in self.links if not (l.from_port.node_id in ids or l.to_port.node_id in ids)]

        for node_id in ids:
            del self.nodes[node_id]

        logger.debug(f"Graph: removed nodes {sorted(ids)} and {len(removed)} link(s)")
        return removed

    def selected_nodes(self) -> List[Node]:
        return [n for n in self.nodes.values() if n.selected]

    # --- Links ---

    def add_link(self, from_port: PortRef, to_port: PortRef, link_id: Optional[int] = None) -> Link:
        # Raw insertion; validation belongs to Connections.
        if link_id is None:
            link_id = self.next_link_id()
        else:
            self.advance_counters(link_id=link_id)
        link = Link(link_id, from_port, to_port)
        self.links.append(link)
        return link

    def get_link(self, link_id: int) -> Optional[Link]:
        return next((l for l in self.links if l.id == link_id), None)

    def remove_link(self, link_id: int) -> Link:
        link = self.get_link(link_id)
        if link is None:
            raise ValueError(f"Link with id '{link_id}' does not exist in the graph")
        self.links.remove(link)
        return link

    def remove_links(self, links: Iterable[Link]) -> None:
        doomed = {id(l) for l in links}
        self.links = [l for l in self.links if id(l) not in doomed]

    def links_into(self, node_id: int) -> List[Link]:
        return [l for l in self.links if l.to_port.node_id == node_id]

    def links_out_of(self, node_id: int) -> List[Link]:
        return [l for l in self.links if l.from_port.node_id == node_id]

    def links_at(self, ref: PortRef) -> List[Link]:
        if ref.isInput():
            return [l for l in self.links if l.to_port == ref]
        return [l for l in self.links if l.from_port == ref]

    # --- Document ---

    def refresh_from_registry(self) -> List[Link]:
        """Re-sync node ports after a catalog reload, then repair the links."""
        from .Connections import validate_connections

        for node in self.nodes.values():
            node_def = self.registry.get_node_type(node.category, node.type)
            if node_def is None:
                logger.warning(f"Node {node.id}: definition {node.category}/{node.type} no longer in registry")
                continue
            node.sync_ports(node_def)
        return validate_connections(self)

    def clear(self) -> None:
        self.nodes.clear()
        self.links.clear()
        self.node_id_counter = 0
        self.link_id_counter = 0
