"""
Node Type Catalog
=================
Externally supplied node definitions, keyed by category then type, merged
additively from one or more registry documents.

Registry document
-----------------

    {
      "version": "1.0",
      "codeGeneration": { "language": "flex", "indentation": "    ",
                          "variablePrefix": "var_", "resultPrefix": "result_",
                          "commentStyle": "//" },
      "dataTypes":      { "float": { "name": "Float", "color": "#7fff00" } },
      "nodeCategories": {
        "math": {
          "color": "#4a7",
          "nodes": {
            "add": {
              "title": "Add", "category": "math",
              "inputs":  [ { "type": "float", "name": "A" },
                           { "type": "float", "name": "B" } ],
              "outputs": [ { "type": "float", "name": "Result",
                             "code": "${A} + ${B}" } ]
            }
          }
        }
      }
    }

Merge rules
-----------
  - codeGeneration fields and dataTypes entries are overlaid.
  - A new category is added wholesale.
  - An existing category gains (or overwrites) node-type entries.
  - Nothing is ever deleted.
  - Legacy top-level "nodeTypes" entries are filed under their own category.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from ..core.Types import DataType, DataTypeRegistry, PortDirection, ValueType, EXEC

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "default"
DEFAULT_CATEGORY_COLOR = "#808080"
DEFAULT_MIN_WIDTH = 80


class DefinitionNotFoundError(ValueError):
    """Raised when a (category, type) pair is not present in the catalog."""

    def __init__(self, category: str, type_name: str):
        self.category = category
        self.type_name = type_name
        super().__init__(f"Node registry not loaded or node type not found: {category}/{type_name}")


# ── Definition records ────────────────────────────────────────────────────────

@dataclass
class CodeGenerationConfig:
    language: str = "flex"
    indentation: str = "    "
    variable_prefix: str = "var_"
    result_prefix: str = "result_"
    comment_style: str = "//"

    # document key -> attribute name
    _KEYS = {
        "language": "language",
        "indentation": "indentation",
        "variablePrefix": "variable_prefix",
        "resultPrefix": "result_prefix",
        "commentStyle": "comment_style",
    }

    def merge(self, data: Dict[str, Any]) -> None:
        for key, attr in self._KEYS.items():
            if key in data and data[key] is not None:
                setattr(self, attr, data[key])

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class PortDef:
    type: str
    name: Optional[str] = None
    implicit: bool = False
    code: Optional[str] = None
    dynamic: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortDef":
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError(f"Port definition must be an object with a 'type': {data!r}")
        code = data.get("code")
        return cls(
            type=str(data["type"]),
            name=data.get("name"),
            implicit=bool(data.get("implicit", False)),
            code=code if isinstance(code, str) else None,
            dynamic=data.get("dynamic"),
        )

    def isExecPort(self) -> bool:
        return self.type == EXEC


@dataclass
class ValueSlotDef:
    type: ValueType
    default: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueSlotDef":
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError(f"Value slot must be an object with a 'type': {data!r}")
        return cls(type=ValueType(data["type"]), default=data.get("default"))


@dataclass
class NodeTypeDef:
    title: str
    category: str
    color: Optional[str] = None
    description: Optional[str] = None
    inputs: List[PortDef] = field(default_factory=list)
    outputs: List[PortDef] = field(default_factory=list)
    value: Optional[ValueSlotDef] = None
    min_width: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = frozenset({
        "title", "category", "color", "description",
        "inputs", "outputs", "value", "style",
    })

    @classmethod
    def from_dict(cls, data: Dict[str, Any], category: Optional[str] = None) -> "NodeTypeDef":
        if not isinstance(data, dict):
            raise ValueError(f"Node type definition must be an object, got {type(data).__name__}")

        style = data.get("style") or {}
        value = data.get("value")
        return cls(
            title=data.get("title", ""),
            category=data.get("category") or category or DEFAULT_CATEGORY,
            color=data.get("color"),
            description=data.get("description"),
            inputs=[PortDef.from_dict(p) for p in data.get("inputs") or []],
            outputs=[PortDef.from_dict(p) for p in data.get("outputs") or []],
            value=ValueSlotDef.from_dict(value) if value else None,
            min_width=style.get("minWidth"),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )

    # First exec input in declaration order, implicit ports included.
    def exec_input(self) -> Optional[PortDef]:
        return next((p for p in self.inputs if p.isExecPort()), None)

    def has_exec_input(self) -> bool:
        return self.exec_input() is not None

    def find_output(self, name: Optional[str], kind: str) -> Optional[PortDef]:
        """Output definition matching `name`, else the first one of the same kind."""
        if name is not None:
            by_name = next((o for o in self.outputs if o.name == name), None)
            if by_name:
                return by_name
        return next((o for o in self.outputs if o.type == kind), None)


@dataclass
class CategoryDef:
    color: str = DEFAULT_CATEGORY_COLOR
    nodes: Dict[str, NodeTypeDef] = field(default_factory=dict)


# ── Registry ─────────────────────────────────────────────────────────────────

class NodeRegistry:
    def __init__(self) -> None:
        self.version: Optional[str] = None
        self.code_generation = CodeGenerationConfig()
        self.data_types = DataTypeRegistry()
        self.categories: Dict[str, CategoryDef] = {}
        self.loaded = False

    # --- Loading ---

    def add_registry(self, registry: Dict[str, Any]) -> None:
        """
        Merge a registry document into the catalog.

        Every definition is parsed before anything is applied, so a document
        that raises leaves the catalog as it was.
        """
        if not isinstance(registry, dict):
            raise ValueError("Registry document must be a JSON object at the top level")

        code_generation = registry.get("codeGeneration") or {}
        if not isinstance(code_generation, dict):
            raise ValueError("'codeGeneration' must be an object")

        data_types = registry.get("dataTypes") or {}
        if not isinstance(data_types, dict):
            raise ValueError("'dataTypes' must be an object")
        parsed_types = {name: DataType.from_dict(name, data or {}) for name, data in data_types.items()}

        parsed_categories: Dict[str, Tuple[Dict[str, Any], Dict[str, NodeTypeDef]]] = {}
        for category_name, category_data in (registry.get("nodeCategories") or {}).items():
            category_data = category_data or {}
            if not isinstance(category_data, dict):
                raise ValueError(f"Category '{category_name}' must be an object")
            parsed_categories[category_name] = (category_data, {
                type_name: NodeTypeDef.from_dict(type_data, category_name)
                for type_name, type_data in (category_data.get("nodes") or {}).items()
            })

        # Legacy support: flat nodeTypes filed under their own category
        legacy = {
            type_name: NodeTypeDef.from_dict(type_data)
            for type_name, type_data in (registry.get("nodeTypes") or {}).items()
        }

        # Nothing has raised: apply
        if registry.get("version") is not None:
            self.version = str(registry["version"])
        self.code_generation.merge(code_generation)
        for type_name, data_type in parsed_types.items():
            self.data_types.register(type_name, data_type)

        for category_name, (category_data, nodes) in parsed_categories.items():
            existing = self.categories.get(category_name)
            if existing is None:
                self.categories[category_name] = CategoryDef(
                    color=category_data.get("color", DEFAULT_CATEGORY_COLOR),
                    nodes=nodes,
                )
            else:
                existing.nodes.update(nodes)

        for type_name, node_def in legacy.items():
            category = self.categories.setdefault(node_def.category, CategoryDef())
            category.nodes[type_name] = node_def

        self.loaded = True
        logger.debug(f"Registry merged: {len(self.categories)} categories, "
                     f"{sum(len(c.nodes) for c in self.categories.values())} node types")

    def add_registry_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
        logger.info(f"Loading node registry from {path}")
        self.add_registry(data)

    # --- Lookup ---

    def get_node_type(self, category: str, type_name: str) -> Optional[NodeTypeDef]:
        category_def = self.categories.get(category)
        if category_def is None:
            return None
        return category_def.nodes.get(type_name)

    def require_node_type(self, category: str, type_name: str) -> NodeTypeDef:
        node_def = self.get_node_type(category, type_name) if self.loaded else None
        if node_def is None:
            raise DefinitionNotFoundError(category, type_name)
        return node_def

    def find_node_type(self, type_name: str) -> Optional[NodeTypeDef]:
        for category_def in self.categories.values():
            node_def = category_def.nodes.get(type_name)
            if node_def:
                return node_def
        return None

    def iter_node_types(self) -> Iterator[Tuple[str, str, NodeTypeDef]]:
        for category_name, category_def in self.categories.items():
            for type_name, node_def in category_def.nodes.items():
                yield category_name, type_name, node_def

    def category_color(self, category: str) -> str:
        category_def = self.categories.get(category)
        return category_def.color if category_def else DEFAULT_CATEGORY_COLOR

    def node_color(self, category: str, node_def: NodeTypeDef) -> str:
        return node_def.color or self.category_color(category)

    def summary(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "loaded": self.loaded,
            "codeGeneration": self.code_generation.to_dict(),
            "dataTypes": self.data_types.to_dict(),
            "categories": {
                name: {"color": c.color, "nodes": sorted(c.nodes.keys())}
                for name, c in self.categories.items()
            },
        }


def has_compatible_port(node_def: NodeTypeDef, source_kind: str, source_direction: PortDirection) -> bool:
    """
    Could a port of `source_kind` on the `source_direction` side be linked to
    some port of a node built from `node_def`? Used to filter creation menus.
    """
    # Imported here: Connections depends on the core model, which depends on us.
    from ..core.Connections import types_compatible

    if source_direction == PortDirection.OUTPUT:
        return any(types_compatible(source_kind, p.type) for p in node_def.inputs if not p.implicit)
    return any(types_compatible(p.type, source_kind) for p in node_def.outputs if not p.implicit)
