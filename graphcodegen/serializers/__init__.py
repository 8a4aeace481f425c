from .graph_serializer import LoadReport, export_graph, load_graph, load_graph_file, dump_graph_file
from .schema import FORMAT_VERSION, SchemaError, validate

__all__ = [
    "FORMAT_VERSION",
    "LoadReport",
    "SchemaError",
    "dump_graph_file",
    "export_graph",
    "load_graph",
    "load_graph_file",
    "validate",
]
