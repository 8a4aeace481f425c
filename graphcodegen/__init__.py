"""
graphcodegen
============
Node graph editor model and template code generator.

    core/           graph IR: ports, nodes, links, connection rules
    noderegistry/   node type catalog loaded from registry documents
    compiler/       template expansion from a graph to source text
    serializers/    graph document import/export
    server/         FastAPI editing service
"""

__version__ = "1.0.0"
