"""
Data Validators - Reshape Layer

Pure functions for validating reshaped tables.
Ensures schema compliance and that reshaping loses nothing.
"""

import polars as pl
from typing import Dict, Any
from src.extract.schemas import PATIENT_KEY
from .schemas import LONG_SCHEMA, VISIT_KEY, wide_schema
from .transformers import detect_visits, long_to_wide, wide_to_long
import logging

logger = logging.getLogger(__name__)


def validate_wide_schema(df: pl.DataFrame) -> bool:
    """
    Validate wide table matches the schema for its visit count

    Args:
        df: Wide DataFrame

    Returns:
        bool: True if valid, raises exception if invalid
    """
    expected = wide_schema(len(detect_visits(df)))
    if df.schema != expected:
        raise ValueError(f"Schema mismatch: expected {expected}, got {df.schema}")

    null_count = df.get_column(PATIENT_KEY).null_count()
    if null_count > 0:
        raise ValueError(
            f"Null values found in required field '{PATIENT_KEY}': {null_count}"
        )

    logger.info(f"Wide table validation passed: {df.height} records")
    return True


def validate_long_schema(df: pl.DataFrame) -> bool:
    """
    Validate long table matches LONG_SCHEMA

    Args:
        df: Long DataFrame

    Returns:
        bool: True if valid, raises exception if invalid
    """
    if df.schema != LONG_SCHEMA:
        raise ValueError(f"Schema mismatch: expected {LONG_SCHEMA}, got {df.schema}")

    for field in [PATIENT_KEY, VISIT_KEY]:
        null_count = df.get_column(field).null_count()
        if null_count > 0:
            raise ValueError(
                f"Null values found in required field '{field}': {null_count}"
            )

    logger.info(f"Long table validation passed: {df.height} records")
    return True


def validate_long_keys(df: pl.DataFrame, n_patients: int, n_visits: int) -> bool:
    """
    Validate every (patient_id, visit) pair appears exactly once

    Args:
        df: Long DataFrame
        n_patients: Expected number of patients
        n_visits: Expected number of visits

    Returns:
        bool: True if valid, raises exception if invalid
    """
    expected_rows = n_patients * n_visits
    if df.height != expected_rows:
        raise ValueError(f"Expected {expected_rows} long records, got {df.height}")

    duplicate_count = df.height - df.select([PATIENT_KEY, VISIT_KEY]).n_unique()
    if duplicate_count > 0:
        raise ValueError(
            f"Duplicate (patient_id, visit) pairs found: {duplicate_count}"
        )

    logger.info(f"Long key validation passed: {n_patients} patients x {n_visits} visits")
    return True


def validate_round_trip(wide_df: pl.DataFrame) -> bool:
    """
    Validate wide -> long -> wide reproduces the wide table

    Args:
        wide_df: Wide DataFrame sorted by patient_id

    Returns:
        bool: True if the round trip is lossless, raises exception otherwise
    """
    logger.info("Validating wide -> long -> wide round trip")

    rebuilt_df = long_to_wide(wide_to_long(wide_df))
    if not rebuilt_df.equals(wide_df.sort(PATIENT_KEY)):
        raise ValueError("Round trip wide -> long -> wide changed the data")

    logger.info(f"Round trip validation passed: {wide_df.height} records")
    return True


def validate_sql_matches(polars_df: pl.DataFrame, sql_df: pl.DataFrame) -> bool:
    """
    Validate the DuckDB union result equals the polars map/reduce result

    Args:
        polars_df: Long table from wide_to_long
        sql_df: Long table from wide_to_long_sql

    Returns:
        bool: True if identical, raises exception otherwise
    """
    if polars_df.schema != sql_df.schema:
        raise ValueError(
            f"Schema mismatch between polars and SQL results: "
            f"{polars_df.schema} vs {sql_df.schema}"
        )

    if not polars_df.equals(sql_df):
        raise ValueError("SQL union result differs from polars reshape")

    logger.info(f"SQL union matches polars reshape: {sql_df.height} records")
    return True


def validate_data_quality(df: pl.DataFrame, data_type: str) -> Dict[str, Any]:
    """
    Validate data quality and return quality metrics

    Args:
        df: DataFrame to validate
        data_type: "wide" or "long"

    Returns:
        Dict: Quality metrics and validation results
    """
    logger.info(f"Validating data quality for {data_type}")

    quality_metrics = {
        "total_records": df.height,
        "null_counts": {},
        "duplicate_counts": {},
        "data_types": df.schema,
    }

    # Check for null values in all columns
    for column in df.columns:
        quality_metrics["null_counts"][column] = df.get_column(column).null_count()

    # Check for duplicates
    if data_type == "wide":
        duplicate_count = df.height - df.get_column(PATIENT_KEY).n_unique()
        quality_metrics["duplicate_counts"][PATIENT_KEY] = duplicate_count
    elif data_type == "long":
        duplicate_count = df.height - df.select([PATIENT_KEY, VISIT_KEY]).n_unique()
        quality_metrics["duplicate_counts"]["patient_id_visit"] = duplicate_count
    else:
        raise ValueError(f"Unknown data_type: {data_type}")

    # Log quality issues
    for column, null_count in quality_metrics["null_counts"].items():
        if null_count > 0:
            logger.warning(f"Column '{column}' has {null_count} null values")

    for key, duplicate_count in quality_metrics["duplicate_counts"].items():
        if duplicate_count > 0:
            logger.warning(f"Duplicate records found for '{key}': {duplicate_count}")

    logger.info(f"Data quality validation completed for {data_type}")
    return quality_metrics
