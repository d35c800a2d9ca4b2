"""
Local Storage - Load Layer

Pure functions for local file storage operations.
Handles Parquet and JSON formats.
"""

import polars as pl
import json
import os
from pathlib import Path
from typing import Dict
import logging

logger = logging.getLogger(__name__)

WIDE_FILENAME = "wide_visits.parquet"
LONG_FILENAME = "long_visits.parquet"
LONG_JSON_FILENAME = "long_visits.json"


def save_parquet(df: pl.DataFrame, filepath: str) -> str:
    """
    Save DataFrame to Parquet file

    Args:
        df: DataFrame to save
        filepath: Path to save file

    Returns:
        str: Path to saved file
    """
    logger.info(f"Saving DataFrame to Parquet: {filepath}")

    # Ensure directory exists
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)

    df.write_parquet(filepath)

    logger.info(f"Saved {df.height} records to {filepath}")
    return filepath


def save_json(df: pl.DataFrame, filepath: str) -> str:
    """
    Save DataFrame to JSON file as a list of records

    Args:
        df: DataFrame to save
        filepath: Path to save file

    Returns:
        str: Path to saved file
    """
    logger.info(f"Saving DataFrame to JSON: {filepath}")

    # Ensure directory exists
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)

    data = df.to_dicts()

    # Dates are written as ISO strings
    with open(filepath, "w") as f:
        json.dump(data, f, indent=2, default=str)

    logger.info(f"Saved {len(data)} records to {filepath}")
    return filepath


def load_parquet(filepath: str) -> pl.DataFrame:
    """
    Load DataFrame from Parquet file

    Args:
        filepath: Path to Parquet file

    Returns:
        pl.DataFrame: Loaded DataFrame
    """
    logger.info(f"Loading DataFrame from Parquet: {filepath}")

    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Parquet file not found: {filepath}")

    df = pl.read_parquet(filepath)

    logger.info(f"Loaded {df.height} records from {filepath}")
    return df


def load_json(filepath: str) -> pl.DataFrame:
    """
    Load DataFrame from JSON file

    Args:
        filepath: Path to JSON file

    Returns:
        pl.DataFrame: Loaded DataFrame (dates stay as strings)
    """
    logger.info(f"Loading DataFrame from JSON: {filepath}")

    if not os.path.exists(filepath):
        raise FileNotFoundError(f"JSON file not found: {filepath}")

    with open(filepath, "r") as f:
        data = json.load(f)

    df = pl.DataFrame(data, strict=False, infer_schema_length=10000)

    logger.info(f"Loaded {df.height} records from {filepath}")
    return df


def save_reshaped_data(
    wide_df: pl.DataFrame, long_df: pl.DataFrame, output_dir: str = "output"
) -> Dict[str, str]:
    """
    Save the wide and long tables to the output directory

    Args:
        wide_df: Wide table
        long_df: Long table
        output_dir: Output directory

    Returns:
        Dict: Paths to saved files
    """
    logger.info(f"Saving reshaped data to {output_dir}")

    try:
        paths = {
            "wide": save_parquet(wide_df, os.path.join(output_dir, WIDE_FILENAME)),
            "long": save_parquet(long_df, os.path.join(output_dir, LONG_FILENAME)),
            "long_json": save_json(
                long_df, os.path.join(output_dir, LONG_JSON_FILENAME)
            ),
        }
        logger.info("🎉 All reshaped data saved successfully!")
        return paths

    except Exception as e:
        logger.error(f"❌ Error saving reshaped data: {e}")
        raise


def verify_saved_data(
    paths: Dict[str, str], wide_df: pl.DataFrame, long_df: pl.DataFrame
) -> bool:
    """
    Reload saved files and check they hold the tables that were written

    Args:
        paths: Paths returned by save_reshaped_data
        wide_df: Wide table that was saved
        long_df: Long table that was saved

    Returns:
        bool: True if every file matches, raises exception otherwise
    """
    logger.info("Verifying saved reshaped data")

    for key, expected_df in [("wide", wide_df), ("long", long_df)]:
        if not load_parquet(paths[key]).equals(expected_df):
            raise ValueError(f"Saved {key} table differs from the written data")

    # JSON keeps dates as strings, so only the shape is comparable
    json_df = load_json(paths["long_json"])
    if json_df.height != long_df.height or json_df.columns != long_df.columns:
        raise ValueError(
            f"Saved long JSON has shape {json_df.shape}, expected {long_df.shape}"
        )

    logger.info(f"✅ Verified {len(paths)} saved files")
    return True
