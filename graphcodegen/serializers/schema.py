"""
graphcodegen: Graph Document Schema
===================================
Canonical serialisation format for a graph, plus a structural validator
that runs without any third-party JSON Schema library.

    {
      "version": "1.0",                       // format version (str, optional)
      "name": "blink",                        // human label (str, optional)
      "description": "...",                   // (str, optional)
      "author": "...",                        // (str, optional)
      "nodes": [
        {
          "id":       0,                      // stable node id (int, required)
          "type":     "add",                  // node type in the registry (str, required)
          "category": "math",                 // registry category (str, required)
          "x": 120, "y": 80,                  // position (number, required)
          "value":    5                       // value slot content (optional)
        }
      ],
      "connections": [
        {
          "id":   0,                          // stable link id (int, required)
          "from": { "nodeId": 0, "portIndex": 0, "portType": "output" },
          "to":   { "nodeId": 1, "portIndex": 1, "portType": "input" }
        }
      ]
    }

Only the top-level shape is a hard error here. A bad node or connection
entry is skipped by the deserialiser and reported, never fatal.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

FORMAT_VERSION = "1.0"

NODE_KEYS = ("id", "type", "category")
PORT_TYPES = ("input", "output")


class SchemaError(ValueError):
    """Raised when a graph document fails structural validation."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


# ── Public validator ─────────────────────────────────────────────────────────

def validate(data: Dict[str, Any]) -> None:
    """
    Validate the top-level structure of a parsed graph document.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "graph document must be a JSON object at the top level")
    _require("nodes" in data, "graph root: missing required field 'nodes'")
    _require(isinstance(data["nodes"], list), "nodes must be a list")

    connections = data.get("connections", [])
    _require(isinstance(connections, list), "connections must be a list")

    for field_name in ("version", "name", "description", "author"):
        if data.get(field_name) is not None:
            _require(isinstance(data[field_name], str), f"{field_name} must be a string")


# ── Entry checks used by the deserialiser ─────────────────────────────────────

def node_entry_problems(entry: Any) -> List[str]:
    if not isinstance(entry, dict):
        return ["node entry must be a JSON object"]
    problems = [f"missing required field '{key}'" for key in NODE_KEYS if key not in entry]
    if "id" in entry and (not isinstance(entry["id"], int) or isinstance(entry["id"], bool)):
        problems.append("id must be an integer")
    for key in ("category", "type"):
        if key in entry and not isinstance(entry[key], str):
            problems.append(f"{key} must be a string")
    for axis in ("x", "y"):
        if axis in entry and not isinstance(entry[axis], (int, float)):
            problems.append(f"{axis} must be a number")
    return problems


def connection_entry_problems(entry: Any) -> List[str]:
    if not isinstance(entry, dict):
        return ["connection entry must be a JSON object"]
    problems = []
    if not isinstance(entry.get("id"), int) or isinstance(entry.get("id"), bool):
        problems.append("id must be an integer")
    for end in ("from", "to"):
        ref = entry.get(end)
        if not isinstance(ref, dict):
            problems.append(f"'{end}' must be an object")
            continue
        for key in ("nodeId", "portIndex"):
            if not isinstance(ref.get(key), int) or isinstance(ref.get(key), bool):
                problems.append(f"{end}.{key} must be an integer")
        if ref.get("portType") not in PORT_TYPES:
            problems.append(f"{end}.portType must be 'input' or 'output'")
    return problems


def validate_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and validate a graph document file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        SchemaError: If the document structure is invalid.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    validate(data)
    return data


__all__ = [
    "FORMAT_VERSION",
    "SchemaError",
    "connection_entry_problems",
    "node_entry_problems",
    "validate",
    "validate_file",
]
