"""DDL parsing and generation for schema graphs."""

from ddl.generator import graph_to_ddl
from ddl.parser import ParseResult, ddl_to_graph
from ddl.sqlalchemy_export import graph_to_dialect_ddl, graph_to_metadata
from ddl.tokenizer import split_statements, tokenize

__all__ = [
    "ParseResult",
    "ddl_to_graph",
    "graph_to_ddl",
    "graph_to_dialect_ddl",
    "graph_to_metadata",
    "split_statements",
    "tokenize",
]
