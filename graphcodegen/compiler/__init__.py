"""
graphcodegen Compiler
=====================
Turns a node graph into source text by template expansion.

Pipeline:
    Graph  →  [generator.entry_nodes]   →  entry nodes
    entry  →  [generator.compile_node]  →  statement blocks (exec links)
                  ↳ [generator.output_code] →  expressions (data links)
    blocks →  [templates.header]        →  final text

Public API
----------
    from graphcodegen.compiler import generate_code

    source = generate_code(graph)
    print(source)
"""

from __future__ import annotations

import datetime
from typing import Optional, TYPE_CHECKING

from .generator import (
    DEFAULT_MAX_DATA_DEPTH,
    CodeGenerator,
    CyclicDataDependencyError,
    GenerationError,
    NoEntryPointError,
)

if TYPE_CHECKING:
    from ..core.GraphPrimitives import Graph


def generate_code(
    graph: "Graph",
    max_data_depth: int = DEFAULT_MAX_DATA_DEPTH,
    now: Optional[datetime.datetime] = None,
) -> str:
    """
    Compile `graph` into text.

    Args:
        graph:           The Graph to compile.
        max_data_depth:  Longest data-dependency chain followed before giving up.
        now:             Timestamp for the header (defaults to the current UTC time).

    Raises:
        NoEntryPointError:         No node has an unconnected exec input.
        CyclicDataDependencyError: Value resolution loops or runs too deep.
    """
    return CodeGenerator(graph, max_data_depth=max_data_depth).generate(now)


__all__ = [
    "CodeGenerator",
    "CyclicDataDependencyError",
    "GenerationError",
    "NoEntryPointError",
    "generate_code",
]
