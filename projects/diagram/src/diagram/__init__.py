"""Canvas payload and HTML rendering for schema graphs."""

from diagram.html_export import diagram_to_html
from diagram.main import diagram_to_graph, graph_to_diagram

__all__ = ["diagram_to_graph", "diagram_to_html", "graph_to_diagram"]
