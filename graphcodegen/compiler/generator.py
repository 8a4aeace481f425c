"""
graphcodegen Compiler: Template Code Generator
==============================================
Compiles a Graph into text by walking control flow from every entry node and
expanding each node's code template.

Two recursions
--------------
  compile_node(node)       follows exec links. Guarded by a `visited` set that
                           is shared across all entry nodes, so each node is
                           emitted at most once and exec cycles terminate.

  output_code(node, port)  follows data links upstream and produces an
                           expression. A node can be evaluated many times
                           (diamonds are fine) but never while it is already
                           on the current resolution path: that is a data
                           cycle and raises CyclicDataDependencyError.

Template sources
----------------
  statement template   `code` of the first exec input in the node definition
  expression template  `code` of the matching output in the node definition

The generator only reads the graph; it never mutates it.
"""

from __future__ import annotations

import datetime
import logging
from typing import List, Optional, Set, TYPE_CHECKING

from .templates import (
    find_placeholders,
    header,
    render_value,
    splice_block,
    strip_unresolved,
    substitute,
)

if TYPE_CHECKING:
    from ..core.GraphPrimitives import Graph
    from ..core.Node import Node
    from ..core.NodePort import Port
    from ..noderegistry.NodeRegistry import NodeTypeDef

logger = logging.getLogger(__name__)

DEFAULT_MAX_DATA_DEPTH = 256


# ── Errors ────────────────────────────────────────────────────────────────────

class GenerationError(ValueError):
    """Compilation failed; no partial output is produced."""


class NoEntryPointError(GenerationError):
    def __init__(self):
        super().__init__("No entry point nodes (exec input without incoming exec).")


class CyclicDataDependencyError(GenerationError):
    def __init__(self, path: List[int], message: Optional[str] = None):
        self.path = list(path)
        chain = " -> ".join(str(node_id) for node_id in self.path)
        super().__init__(message or f"Cyclic data dependency between nodes: {chain}")


# ── Generator ─────────────────────────────────────────────────────────────────

class CodeGenerator:
    def __init__(self, graph: "Graph", max_data_depth: int = DEFAULT_MAX_DATA_DEPTH):
        self.graph = graph
        self.max_data_depth = max_data_depth

    # --- Lookup helpers ---

    def _definition(self, node: "Node") -> Optional["NodeTypeDef"]:
        return self.graph.registry.get_node_type(node.category, node.type)

    def entry_nodes(self) -> List["Node"]:
        """Nodes whose definition has an exec input and nothing flows into it."""
        entries = []
        for node in self.graph.nodes.values():
            node_def = self._definition(node)
            if node_def is None or not node_def.has_exec_input():
                continue
            has_incoming_exec = any(
                port is not None and port.isExecPort()
                for port in (self.graph.resolve_port(l.to_port) for l in self.graph.links_into(node.id))
            )
            if not has_incoming_exec:
                entries.append(node)
        return entries

    # --- Substitution steps shared by both recursions ---

    def _apply_value(self, node: "Node", code: str) -> str:
        if node.has_value and node.value is not None:
            code = substitute(code, "value", render_value(node.value))
        return code

    def _apply_data_inputs(self, node: "Node", code: str, path: List[int]) -> str:
        for link in self.graph.links_into(node.id):
            input_port = self.graph.resolve_port(link.to_port)
            if input_port is None or input_port.isExecPort():
                continue

            producer = self.graph.get_node(link.from_port.node_id)
            producer_port = self.graph.resolve_port(link.from_port)
            if producer is None or producer_port is None:
                continue

            expression = self.output_code(producer, producer_port, path)
            if input_port.name is not None:
                code = substitute(code, input_port.name, expression)
        return code

    # --- Data flow ---

    def output_code(self, node: "Node", port: "Port", _path: Optional[List[int]] = None) -> str:
        """Expression text produced by `port` on `node`."""
        path = _path if _path is not None else []
        if node.id in path:
            raise CyclicDataDependencyError(path[path.index(node.id):] + [node.id])
        if len(path) >= self.max_data_depth:
            raise CyclicDataDependencyError(
                path + [node.id],
                f"Data dependency chain deeper than {self.max_data_depth} nodes at node {node.id}",
            )

        node_def = self._definition(node)
        if node_def is None:
            return ""
        output_def = node_def.find_output(port.name, port.kind)
        if output_def is None or output_def.code is None:
            return ""

        code = self._apply_value(node, output_def.code)

        path.append(node.id)
        try:
            code = self._apply_data_inputs(node, code, path)
        finally:
            path.pop()

        return strip_unresolved(substitute(code, "nodeId", str(node.id)))

    # --- Control flow ---

    def compile_node(self, node: "Node", visited: Set[int]) -> str:
        """Statement text for `node` and everything its exec outputs lead to."""
        if node.id in visited:
            return ""
        visited.add(node.id)

        node_def = self._definition(node)
        if node_def is None:
            return ""
        exec_input = node_def.exec_input()
        if exec_input is None or exec_input.code is None:
            return ""

        code = self._apply_value(node, exec_input.code)
        code = self._apply_data_inputs(node, code, [])

        for link in self.graph.links_out_of(node.id):
            output_port = self.graph.resolve_port(link.from_port)
            if output_port is None or not output_port.isExecPort():
                continue
            target = self.graph.get_node(link.to_port.node_id)
            if target is None:
                continue

            downstream = self.compile_node(target, visited)
            if output_port.name is not None:
                code = splice_block(code, output_port.name, downstream)

        code = substitute(code, "nodeId", str(node.id))

        unresolved = find_placeholders(code)
        if unresolved:
            logger.debug(f"Node {node.id}: dropping unresolved placeholders {unresolved}")
        return strip_unresolved(code)

    # --- Entry points ---

    def generate_body(self) -> str:
        entries = self.entry_nodes()
        if not entries:
            raise NoEntryPointError()

        visited: Set[int] = set()
        blocks = [self.compile_node(entry, visited) for entry in entries]
        logger.debug(f"Compiled {len(entries)} entry node(s), {len(visited)} node(s) visited")
        return "\n\n".join(block for block in blocks if block)

    def generate(self, now: Optional[datetime.datetime] = None) -> str:
        body = self.generate_body()
        return header(self.graph.registry.code_generation.comment_style, now) + body
