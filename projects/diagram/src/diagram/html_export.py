"""HTML export functionality for ER diagrams."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from diagram.schema_types import DiagramSchema, TableSchema

TEMPLATE_DIR = Path(__file__).parent / "templates"

# Approximate box size used to size the canvas around the tables
TABLE_WIDTH = 200
HEADER_HEIGHT = 32
ROW_HEIGHT = 24
MARGIN = 100


def _table_height(table: TableSchema) -> int:
    return HEADER_HEIGHT + ROW_HEIGHT * len(table["columns"])


def _canvas_size(diagram: DiagramSchema) -> tuple[float, float]:
    """Width and height that fit every table plus a margin."""
    tables = diagram["tables"]
    if not tables:
        return MARGIN * 2, MARGIN * 2
    width = max(t["position"]["x"] + TABLE_WIDTH for t in tables) + MARGIN
    height = max(t["position"]["y"] + _table_height(t) for t in tables) + MARGIN
    return width, height


def _relation_labels(diagram: DiagramSchema) -> list[dict[str, str]]:
    """Resolve relation endpoints to ``table.column`` labels."""
    names = {
        (table["id"], column["id"]): f"{table['name']}.{column['name']}"
        for table in diagram["tables"]
        for column in table["columns"]
    }
    return [
        {
            "source": names.get(
                (rel["source_table"], rel["source_column"]),
                rel["source_column"],
            ),
            "target": names.get(
                (rel["target_table"], rel["target_column"]),
                rel["target_column"],
            ),
            "cardinality": rel["cardinality"],
        }
        for rel in diagram["relations"]
    ]


def diagram_to_html(diagram: DiagramSchema, title: str | None = None) -> str:
    """Create a standalone HTML page drawing every table at its position."""
    env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=True)
    template = env.get_template("diagram.html")
    width, height = _canvas_size(diagram)

    return template.render(
        title=title or f"ER Diagram - {diagram['name']}",
        diagram=diagram,
        relations=_relation_labels(diagram),
        table_width=TABLE_WIDTH,
        width=width,
        height=height,
    )
