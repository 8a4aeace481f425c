"""
compile_from_json.py: CLI for the graphcodegen template compiler
================================================================
Compiles a serialised graph document into source text using one or more
node registry documents.

Usage
-----
    graphcodegen-compile <graph.json> --registry <registry.json> [options]
    python -m graphcodegen.compile_from_json <graph.json> --registry <registry.json> [options]

Options
-------
    --registry <file>     Node registry JSON; repeat to merge several (later ones win)
    --out      <file>     Write the generated code to this file
    --print               Print the generated code to stdout (default when --out is absent)
    --max-data-depth N    Longest data-dependency chain to follow (default from settings)

Examples
--------
    graphcodegen-compile graphs/blink.json --registry registries/core.json --print
    graphcodegen-compile graphs/blink.json --registry core.json --registry extra.json --out blink.flex
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .compiler import GenerationError, generate_code
from .core.GraphPrimitives import Graph
from .noderegistry.NodeRegistry import NodeRegistry
from .serializers.graph_serializer import load_graph
from .serializers.schema import SchemaError, validate_file
from .settings import Settings, configure_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="graphcodegen-compile",
        description="Compile a node graph JSON document to source text.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument(
        "graph_json",
        metavar="graph.json",
        help="Path to the graph JSON document to compile.",
    )
    p.add_argument(
        "--registry",
        metavar="FILE",
        action="append",
        default=[],
        help="Node registry JSON file. May be given several times; documents are merged in order.",
    )
    p.add_argument(
        "--out",
        metavar="FILE",
        default=None,
        help="Output file for the generated code.",
    )
    p.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print generated code to stdout.",
    )
    p.add_argument(
        "--max-data-depth",
        type=int,
        default=None,
        help="Longest data-dependency chain followed before giving up.",
    )
    return p


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    registry_paths = args.registry or settings.registry_paths
    if not registry_paths:
        print("[error] No node registry given (use --registry or GRAPHCODEGEN_REGISTRY_PATHS)", file=sys.stderr)
        return 1

    # ── Registry ─────────────────────────────────────────────────────────────
    registry = NodeRegistry()
    for registry_path in registry_paths:
        try:
            registry.add_registry_file(registry_path)
        except FileNotFoundError:
            print(f"[error] Registry not found: {registry_path}", file=sys.stderr)
            return 1
        except (json.JSONDecodeError, ValueError) as exc:
            print(f"[error] Invalid registry {registry_path}: {exc}", file=sys.stderr)
            return 1

    # ── Graph document ───────────────────────────────────────────────────────
    json_path = Path(args.graph_json)
    if not json_path.exists():
        print(f"[error] File not found: {json_path}", file=sys.stderr)
        return 1
    try:
        data = validate_file(json_path)
    except (json.JSONDecodeError, SchemaError) as exc:
        print(f"[error] Schema validation failed: {exc}", file=sys.stderr)
        return 1

    graph = Graph(registry)
    report = load_graph(graph, data)
    for warning in report.warnings():
        print(f"[warning] {warning}", file=sys.stderr)

    # ── Generate ─────────────────────────────────────────────────────────────
    max_depth = args.max_data_depth if args.max_data_depth is not None else settings.max_data_depth
    try:
        source = generate_code(graph, max_data_depth=max_depth)
    except GenerationError as exc:
        print(f"[error] Code generation failed: {exc}", file=sys.stderr)
        return 1

    # ── Output ───────────────────────────────────────────────────────────────
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(source, encoding="utf-8")
        logger.info(f"wrote {out_path}")
    if args.print_only or not args.out:
        print(source)
    return 0


if __name__ == "__main__":
    sys.exit(main())
