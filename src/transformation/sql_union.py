"""
SQL Union - Reshape via DuckDB

The wide-to-long reshape expressed as a single SQL statement: one SELECT per
visit, combined with the engine's native UNION operator, run against an
in-memory DuckDB connection.
"""

from typing import Iterable, List, Optional

import duckdb
import polars as pl
import logging

from src.coreutils.functional import fold, map_list
from src.extract.schemas import PATIENT_KEY, VISIT_FIELDS_SCHEMA
from .schemas import LONG_SCHEMA, VISIT_KEY, suffixed
from .transformers import detect_visits

logger = logging.getLogger(__name__)

WIDE_TABLE_NAME = "wide_visits"

# Position of each row in the registered wide table
ROW_INDEX = "_row"


def quote_identifier(name: str) -> str:
    """Double-quote an identifier for DuckDB"""
    return '"' + name.replace('"', '""') + '"'


def build_visit_select(
    visit: int,
    table_name: str = WIDE_TABLE_NAME,
    fields: Optional[Iterable[str]] = None,
) -> str:
    """SELECT statement projecting one visit's columns with the suffix stripped"""
    fields = list(fields) if fields is not None else VISIT_FIELDS_SCHEMA.names()
    columns = [
        quote_identifier(ROW_INDEX),
        quote_identifier(PATIENT_KEY),
        f"CAST({int(visit)} AS INTEGER) AS {quote_identifier(VISIT_KEY)}",
        *(
            f"{quote_identifier(suffixed(field, visit))} AS {quote_identifier(field)}"
            for field in fields
        ),
    ]
    return f"SELECT {', '.join(columns)} FROM {quote_identifier(table_name)}"


def build_union_sql(
    visits: List[int],
    table_name: str = WIDE_TABLE_NAME,
    distinct: bool = False,
) -> str:
    """
    Build the wide-to-long SQL statement

    Args:
        visits: Visit indices to include
        table_name: Name the wide table is registered under
        distinct: Use UNION (set semantics) instead of UNION ALL

    Returns:
        str: SQL statement ordered by visit, then wide table row position
    """
    operator = "UNION" if distinct else "UNION ALL"
    selects = map_list(lambda visit: build_visit_select(visit, table_name), visits)
    union = fold(lambda top, bottom: f"{top}\n{operator}\n{bottom}", selects)
    return (
        f"{union}\nORDER BY {quote_identifier(VISIT_KEY)}, "
        f"{quote_identifier(ROW_INDEX)}"
    )


def wide_to_long_sql(
    wide_df: pl.DataFrame,
    visits: Optional[List[int]] = None,
    distinct: bool = False,
) -> pl.DataFrame:
    """
    Reshape the wide table to long inside an in-memory DuckDB connection

    Args:
        wide_df: Wide table
        visits: Visit indices to include (all detected visits if omitted)
        distinct: Use UNION instead of UNION ALL

    Returns:
        pl.DataFrame: Long table with LONG_SCHEMA
    """
    visits = visits if visits is not None else detect_visits(wide_df)
    logger.info(f"Reshaping wide table to long with DuckDB for visits {visits}")

    sql = build_union_sql(visits, distinct=distinct)
    logger.debug(f"Union SQL:\n{sql}")

    conn = duckdb.connect(":memory:")
    try:
        conn.register(WIDE_TABLE_NAME, wide_df.with_row_index(ROW_INDEX))
        result_df = conn.execute(sql).pl().drop(ROW_INDEX)

    except Exception as e:
        logger.error(f"❌ Error running union SQL: {e}")
        raise

    finally:
        conn.close()

    if result_df.schema != LONG_SCHEMA:
        logger.warning(f"Schema mismatch: expected {LONG_SCHEMA}, got {result_df.schema}")

    logger.info(f"DuckDB union produced {result_df.height} rows")
    return result_df
