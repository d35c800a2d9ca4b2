"""
Transformation Layer Schemas

Schemas for the wide (one row per patient) and long (one row per
patient-visit) tables.
"""

import polars as pl

from src.extract.schemas import PATIENT_KEY, VISIT_FIELDS_SCHEMA

VISIT_KEY = "visit"
VISIT_SUFFIX_SEPARATOR = "_"

# visit is an Int32 so it lines up with DuckDB INTEGER literals
VISIT_DTYPE = pl.Int32()

LONG_SCHEMA = pl.Schema(
    [
        (PATIENT_KEY, pl.Int64()),
        (VISIT_KEY, VISIT_DTYPE),
        *VISIT_FIELDS_SCHEMA.items(),
    ]
)


def suffixed(column: str, visit: int) -> str:
    """Wide column name for a visit field, e.g. date -> date_2"""
    return f"{column}{VISIT_SUFFIX_SEPARATOR}{visit}"


def wide_schema(n_visits: int) -> pl.Schema:
    """Schema of the wide table for visits 1..n_visits"""
    return pl.Schema(
        [(PATIENT_KEY, pl.Int64())]
        + [
            (suffixed(name, visit), dtype)
            for visit in range(1, n_visits + 1)
            for name, dtype in VISIT_FIELDS_SCHEMA.items()
        ]
    )
