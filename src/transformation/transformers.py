"""
Data Transformers - Reshape Layer

Pure functions that move visit data between the wide and long shapes.
Both directions are written as a map over visit indices followed by a
reduce (join for wide, row-bind for long).
"""

import re
from functools import partial
from typing import Dict, List, Optional, Any

import polars as pl
import logging

from src.coreutils.functional import compose, fold, map_list
from src.extract.schemas import PATIENT_KEY, VISIT_FIELDS_SCHEMA
from .schemas import (
    LONG_SCHEMA,
    VISIT_DTYPE,
    VISIT_KEY,
    VISIT_SUFFIX_SEPARATOR,
    suffixed,
    wide_schema,
)

logger = logging.getLogger(__name__)

SUFFIX_PATTERN = re.compile(rf"^(?P<field>.+){VISIT_SUFFIX_SEPARATOR}(?P<visit>\d+)$")


def add_visit_suffix(df: pl.DataFrame, visit: int) -> pl.DataFrame:
    """Suffix every non-key column with the visit number"""
    return df.rename(lambda column: column if column == PATIENT_KEY else suffixed(column, visit))


def strip_visit_suffix(df: pl.DataFrame, visit: int) -> pl.DataFrame:
    """Remove the visit-number suffix from every non-key column"""
    suffix = f"{VISIT_SUFFIX_SEPARATOR}{visit}"
    return df.rename(
        lambda column: column[: -len(suffix)] if column.endswith(suffix) else column
    )


def detect_visits(wide_df: pl.DataFrame) -> List[int]:
    """
    Find the visit indices encoded in wide column names

    Args:
        wide_df: Wide table

    Returns:
        List[int]: Sorted visit indices
    """
    matches = (SUFFIX_PATTERN.match(column) for column in wide_df.columns)
    return sorted({int(m.group("visit")) for m in matches if m})


def visit_columns(wide_df: pl.DataFrame, visit: int) -> List[str]:
    """Wide columns holding one visit's fields, in table order"""
    return [
        column
        for column in wide_df.columns
        if (m := SUFFIX_PATTERN.match(column)) and int(m.group("visit")) == visit
    ]


def join_visits_wide(visit_tables: Dict[int, pl.DataFrame]) -> pl.DataFrame:
    """
    Join per-visit tables on the patient key into the wide table

    Args:
        visit_tables: Visit index -> visit table keyed by patient_id

    Returns:
        pl.DataFrame: One row per patient, visit fields suffixed by visit number
    """
    logger.info(f"Joining {len(visit_tables)} visit tables into wide table")

    try:
        suffixed_tables = map_list(
            lambda item: add_visit_suffix(item[1], item[0]),
            sorted(visit_tables.items()),
        )
        wide_df = fold(
            lambda left, right: left.join(
                right, on=PATIENT_KEY, how="full", coalesce=True
            ),
            suffixed_tables,
        ).sort(PATIENT_KEY)

        # Only contiguous visits 1..N have a reference schema
        visits = sorted(visit_tables)
        if visits == list(range(1, len(visits) + 1)):
            expected = wide_schema(len(visits))
            if wide_df.schema != expected:
                logger.warning(
                    f"Schema mismatch: expected {expected}, got {wide_df.schema}"
                )

        logger.info(
            f"Created wide table with {wide_df.height} rows, {wide_df.width} columns"
        )
        return wide_df

    except Exception as e:
        logger.error(f"❌ Error joining visit tables: {e}")
        raise


def project_visit(wide_df: pl.DataFrame, visit: int) -> pl.DataFrame:
    """
    Project the wide table onto one visit

    Selects the key and that visit's columns, strips the suffix and adds
    the visit number as an explicit column.

    Args:
        wide_df: Wide table
        visit: Visit index to project

    Returns:
        pl.DataFrame: One row per patient for this visit, LONG_SCHEMA column order
    """
    columns = visit_columns(wide_df, visit)
    if not columns:
        raise ValueError(f"Wide table has no columns for visit {visit}")

    return compose(
        lambda df: df.select([PATIENT_KEY, *columns]),
        lambda df: strip_visit_suffix(df, visit),
        lambda df: df.with_columns(pl.lit(visit, dtype=VISIT_DTYPE).alias(VISIT_KEY)),
        lambda df: df.select([PATIENT_KEY, VISIT_KEY, *VISIT_FIELDS_SCHEMA.names()]),
    )(wide_df)


def wide_to_long(
    wide_df: pl.DataFrame, visits: Optional[List[int]] = None
) -> pl.DataFrame:
    """
    Reshape the wide table into the long table

    Maps project_visit over the visit indices, then row-binds the
    projections pairwise. Rows come out visit-major, preserving the
    patient order of the wide table within each visit.

    Args:
        wide_df: Wide table
        visits: Visit indices to include (all detected visits if omitted)

    Returns:
        pl.DataFrame: Long table with LONG_SCHEMA
    """
    visits = visits if visits is not None else detect_visits(wide_df)
    logger.info(f"Reshaping wide table to long for visits {visits}")

    try:
        projections = map_list(partial(project_visit, wide_df), visits)
        long_df = fold(
            lambda top, bottom: pl.concat([top, bottom], how="vertical"),
            projections,
        )

        if long_df.schema != LONG_SCHEMA:
            logger.warning(
                f"Schema mismatch: expected {LONG_SCHEMA}, got {long_df.schema}"
            )

        logger.info(f"Created long table with {long_df.height} rows")
        return long_df

    except Exception as e:
        logger.error(f"❌ Error reshaping wide table to long: {e}")
        raise


def long_to_wide(long_df: pl.DataFrame) -> pl.DataFrame:
    """
    Reshape the long table back into the wide table

    Inverse of wide_to_long: each visit's rows are split off, suffixed and
    joined back on the patient key.

    Args:
        long_df: Long table

    Returns:
        pl.DataFrame: Wide table sorted by patient_id
    """
    visits = sorted(long_df.get_column(VISIT_KEY).unique().to_list())
    logger.info(f"Reshaping long table to wide for visits {visits}")

    visit_tables = {
        visit: long_df.filter(pl.col(VISIT_KEY) == visit).drop(VISIT_KEY)
        for visit in visits
    }
    return join_visits_wide(visit_tables)


def get_summary_stats(df: pl.DataFrame, data_type: str) -> Dict[str, Any]:
    """
    Get summary statistics for a reshaped table

    Args:
        df: DataFrame to analyze
        data_type: "wide" or "long"

    Returns:
        Dict: Summary statistics
    """
    logger.info(f"Generating summary stats for {data_type}")

    if data_type == "wide":
        visits = detect_visits(df)
        stats = {
            "total_patients": df.height,
            "total_columns": df.width,
            "visit_count": len(visits),
            "adverse_event_count": sum(
                df.get_column(suffixed("adverse_event", visit)).sum()
                for visit in visits
            ),
        }
    elif data_type == "long":
        symptom_counts = df.get_column("symptom").value_counts(sort=True)
        stats = {
            "total_records": df.height,
            "unique_patients": df.get_column(PATIENT_KEY).n_unique(),
            "visit_count": df.get_column(VISIT_KEY).n_unique(),
            "date_range": f"{df.get_column('date').min()} to {df.get_column('date').max()}",
            "adverse_event_count": df.get_column("adverse_event").sum(),
            "symptom_distribution": dict(
                zip(
                    symptom_counts.get_column("symptom").to_list(),
                    symptom_counts.get_column("count").to_list(),
                )
            ),
        }
    else:
        raise ValueError(f"Unknown data_type: {data_type}")

    logger.info(f"Generated summary stats: {list(stats.keys())}")
    return stats
