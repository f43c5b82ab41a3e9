"""Mapping between SQL type keywords, the column vocabulary and SQLAlchemy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.types import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    TypeEngine,
    Uuid,
)

from erd.errors import UnsupportedTypeError
from erd.types import ColumnType

if TYPE_CHECKING:
    from collections.abc import Sequence

# Keyword families; the first keyword of a declared type selects the family
TYPE_KEYWORDS: dict[str, ColumnType] = {
    **dict.fromkeys(
        (
            "VARCHAR",
            "VARCHAR2",
            "NVARCHAR",
            "NVARCHAR2",
            "CHAR",
            "NCHAR",
            "CHARACTER",
            "BPCHAR",
            "STRING",
            "CITEXT",
        ),
        ColumnType.VARCHAR,
    ),
    **dict.fromkeys(
        (
            "INT",
            "INTEGER",
            "INT2",
            "INT4",
            "INT8",
            "SMALLINT",
            "BIGINT",
            "TINYINT",
            "MEDIUMINT",
            "SERIAL",
            "SERIAL4",
            "SERIAL8",
            "SMALLSERIAL",
            "BIGSERIAL",
        ),
        ColumnType.INTEGER,
    ),
    **dict.fromkeys(("BOOL", "BOOLEAN"), ColumnType.BOOLEAN),
    "DATE": ColumnType.DATE,
    **dict.fromkeys(
        ("TIMESTAMP", "TIMESTAMPTZ", "DATETIME", "DATETIME2", "SMALLDATETIME"),
        ColumnType.TIMESTAMP,
    ),
    **dict.fromkeys(("UUID", "UNIQUEIDENTIFIER"), ColumnType.UUID),
    **dict.fromkeys(
        ("TEXT", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT", "CLOB", "NTEXT"),
        ColumnType.TEXT,
    ),
    **dict.fromkeys(("JSON", "JSONB"), ColumnType.JSON),
}

# Keywords that may follow the first word of a multi-word type name
TYPE_CONTINUATIONS = frozenset(
    ("VARYING", "PRECISION", "WITH", "WITHOUT", "TIME", "ZONE", "UNSIGNED", "SIGNED"),
)


def sql_to_column_type(words: Sequence[str]) -> ColumnType:
    """Map a declared SQL type to the closest vocabulary member.

    ``words`` are the keywords of the type with parameters removed, for
    example ``["CHARACTER", "VARYING"]`` for ``character varying(40)``.

    Examples:
        VARCHAR(255) -> VARCHAR
        TIMESTAMP WITH TIME ZONE -> TIMESTAMP
        BIGSERIAL -> INTEGER
        NUMERIC(10, 2) -> UnsupportedTypeError

    """
    if not words:
        msg = "Missing column type"
        raise UnsupportedTypeError(msg)
    try:
        return TYPE_KEYWORDS[words[0].upper()]
    except KeyError as err:
        msg = f"Unsupported column type: {' '.join(words)}"
        raise UnsupportedTypeError(msg) from err


def column_type_to_sql(column_type: ColumnType) -> str:
    """SQL spelling of a vocabulary type."""
    return column_type.value


def column_type_to_sqlalchemy(
    column_type: ColumnType,
    *,
    varchar_length: int | None = None,
) -> TypeEngine[Any]:
    """Convert a vocabulary type to a SQLAlchemy TypeEngine.

    Some dialects (MySQL) refuse VARCHAR without a length, so one can be given.
    """
    sql_type: TypeEngine[Any]

    match column_type:
        case ColumnType.VARCHAR:
            sql_type = String(varchar_length)
        case ColumnType.INTEGER:
            sql_type = Integer()
        case ColumnType.BOOLEAN:
            sql_type = Boolean()
        case ColumnType.DATE:
            sql_type = Date()
        case ColumnType.TIMESTAMP:
            sql_type = DateTime()
        case ColumnType.UUID:
            sql_type = Uuid()
        case ColumnType.TEXT:
            sql_type = Text()
        case ColumnType.JSON:
            sql_type = JSON()

    return sql_type
