import copy

import pytest

from graphcodegen.core.GraphPrimitives import Graph
from graphcodegen.noderegistry.NodeRegistry import NodeRegistry


EXEC_IN = {"type": "exec", "name": "exec"}

REGISTRY_DOC = {
    "version": "1.0",
    "codeGeneration": {"language": "flex", "commentStyle": "//"},
    "dataTypes": {
        "float": {"name": "Float", "color": "#7fff00"},
        "string": {"name": "String", "color": "#ff00ff"},
    },
    "nodeCategories": {
        "flow": {
            "color": "#aa3333",
            "nodes": {
                "print": {
                    "title": "Print",
                    "inputs": [dict(EXEC_IN, code="print(${nodeId});\n${next}")],
                    "outputs": [{"type": "exec", "name": "next"}],
                },
                "done": {
                    "title": "Done",
                    "inputs": [dict(EXEC_IN, code="done();")],
                },
                "log": {
                    "title": "Log",
                    "inputs": [
                        dict(EXEC_IN, code="log(${message});\n${next}"),
                        {"type": "float", "name": "message"},
                    ],
                    "outputs": [{"type": "exec", "name": "next"}],
                },
                "inspect": {
                    "title": "Inspect",
                    "inputs": [
                        dict(EXEC_IN, code="inspect(${in});"),
                        {"type": "data", "name": "in"},
                    ],
                },
                "branch": {
                    "title": "Branch",
                    "inputs": [
                        dict(EXEC_IN, code="if (${condition}) {\n    ${then}\n}\n${next}"),
                        {"type": "bool", "name": "condition"},
                    ],
                    "outputs": [
                        {"type": "exec", "name": "then"},
                        {"type": "exec", "name": "next"},
                    ],
                },
            },
        },
        "events": {
            "color": "#3333aa",
            "nodes": {
                "on_start": {
                    "title": "On Start",
                    "inputs": [dict(EXEC_IN, implicit=True, code="main() {\n    ${next}\n}")],
                    "outputs": [{"type": "exec", "name": "next"}],
                },
            },
        },
        "math": {
            "color": "#44aa77",
            "nodes": {
                "constant": {
                    "title": "Constant",
                    "outputs": [{"type": "float", "name": "Value", "code": "${value}"}],
                    "value": {"type": "float", "default": 0},
                },
                "add": {
                    "title": "Add",
                    "color": "#123456",
                    "style": {"minWidth": 120},
                    "inputs": [
                        {"type": "float", "name": "A"},
                        {"type": "float", "name": "B"},
                    ],
                    "outputs": [{"type": "float", "name": "Result", "code": "${A} + ${B}"}],
                },
            },
        },
        "text": {
            "nodes": {
                "string": {
                    "title": "String",
                    "outputs": [{"type": "string", "name": "Text", "code": "\"${value}\""}],
                    "value": {"type": "string", "default": ""},
                },
            },
        },
    },
}


@pytest.fixture
def registry_doc():
    return copy.deepcopy(REGISTRY_DOC)


@pytest.fixture
def registry(registry_doc):
    registry = NodeRegistry()
    registry.add_registry(registry_doc)
    return registry


@pytest.fixture
def graph(registry):
    return Graph(registry)
