"""
Connection rules for the graph IR.

  types_compatible      kind-level rule (exec only with exec, "data" input is a wildcard)
  can_connect           full legality check for a prospective link, either argument order
  connect               the sanctioned way to create a link
  auto_connect          link a pending port to the first compatible port of a new node
  validate_connections  graph-wide repair pass, returns the links it removed
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING
import logging

from .NodePort import PortRef
from .Types import PortDirection, EXEC, DATA

if TYPE_CHECKING:
    from .GraphPrimitives import Graph, Link

logger = logging.getLogger(__name__)


def types_compatible(from_kind: str, to_kind: str) -> bool:
    """Can an output of `from_kind` feed an input of `to_kind`?"""
    if from_kind == EXEC and to_kind == EXEC:
        return True
    if from_kind == EXEC or to_kind == EXEC:
        return False
    if from_kind == to_kind:
        return True
    # a generic consumer accepts any producer, never the other way round
    if to_kind == DATA:
        return True
    return False


def normalize(a: PortRef, b: PortRef) -> Tuple[PortRef, PortRef]:
    """Order a pair of refs as (output, input)."""
    if a.isOutput():
        return a, b
    return b, a


def can_connect(graph: 'Graph', a: PortRef, b: PortRef) -> bool:
    if a.node_id == b.node_id:
        return False
    if a.direction == b.direction:
        return False

    output_ref, input_ref = normalize(a, b)
    output_port = graph.resolve_port(output_ref)
    input_port = graph.resolve_port(input_ref)
    if output_port is None or input_port is None:
        return False

    if not types_compatible(output_port.kind, input_port.kind):
        return False

    for link in graph.links:
        if link.from_port == output_ref and link.to_port == input_ref:
            return False
        if link.from_port == input_ref and link.to_port == output_ref:
            return False

    # exec inputs may merge any number of incoming flows
    if not input_port.isExecPort():
        if any(link.to_port == input_ref for link in graph.links):
            return False

    return True


def connect(graph: 'Graph', a: PortRef, b: PortRef) -> Optional['Link']:
    """Create the link a<->b if it is legal. Returns None when rejected."""
    if not can_connect(graph, a, b):
        logger.debug(f"Rejected connection {a} <-> {b}")
        return None

    output_ref, input_ref = normalize(a, b)

    # An exec output drives exactly one successor: re-connecting replaces it.
    if graph.resolve_port(output_ref).isExecPort():
        replaced = graph.links_at(output_ref)
        if replaced:
            graph.remove_links(replaced)
            logger.debug(f"Replaced exec link(s) {[l.id for l in replaced]} from {output_ref}")

    link = graph.add_link(output_ref, input_ref)
    logger.debug(f"Connected {link}")
    return link


def auto_connect(graph: 'Graph', source: PortRef, new_node_id: int) -> Optional['Link']:
    """
    Link `source` to the first compatible port on the opposite side of a
    freshly created node. A data input keeps one link and an exec output drives
    one successor, so whatever the new link displaces is removed first.
    """
    source_port = graph.resolve_port(source)
    new_node = graph.get_node(new_node_id)
    if source_port is None or new_node is None or source.node_id == new_node_id:
        return None

    target_direction = source.direction.opposite()
    for target_port in new_node.ports(target_direction):
        target_ref = new_node.ref(target_direction, target_port.index)
        output_ref, input_ref = normalize(source, target_ref)
        output_port = graph.resolve_port(output_ref)
        input_port = graph.resolve_port(input_ref)

        if not types_compatible(output_port.kind, input_port.kind):
            continue

        if not input_port.isExecPort():
            graph.remove_links(graph.links_at(input_ref))
        if output_port.isExecPort():
            graph.remove_links(graph.links_at(output_ref))

        link = graph.add_link(output_ref, input_ref)
        logger.debug(f"Auto-connected {link}")
        return link

    return None


def validate_connections(graph: 'Graph') -> List['Link']:
    """
    Remove every link that violates the graph invariants and return them.

    Dangling endpoints and incompatible kinds are dropped outright. Among what
    is left, an exec output or a data input with several links keeps the first
    one in link order.
    """
    invalid: List['Link'] = []
    exec_outputs: Dict[Tuple[int, int], List['Link']] = defaultdict(list)
    data_inputs: Dict[Tuple[int, int], List['Link']] = defaultdict(list)

    for link in graph.links:
        from_port = graph.resolve_port(link.from_port)
        to_port = graph.resolve_port(link.to_port)

        if (from_port is None or to_port is None
                or link.from_port.direction != PortDirection.OUTPUT
                or link.to_port.direction != PortDirection.INPUT
                or link.from_port.node_id == link.to_port.node_id
                or not types_compatible(from_port.kind, to_port.kind)):
            invalid.append(link)
            continue

        if from_port.isExecPort():
            exec_outputs[(link.from_port.node_id, link.from_port.index)].append(link)
        if not to_port.isExecPort():
            data_inputs[(link.to_port.node_id, link.to_port.index)].append(link)

    # Duplicate port pairs always land in one of these groups.
    for group in list(exec_outputs.values()) + list(data_inputs.values()):
        for link in group[1:]:
            if link not in invalid:
                invalid.append(link)

    if invalid:
        graph.remove_links(invalid)
        logger.warning(f"Removed {len(invalid)} invalid connection(s): {[l.id for l in invalid]}")

    return invalid
