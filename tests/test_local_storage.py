"""
Test Load Layer - Local Parquet/JSON storage
"""

import os
import sys
import json

import pytest
from polars.testing import assert_frame_equal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.coreutils.config import PipelineConfig
from src.extract.visit_generator import generate_visit_tables
from src.load.local_storage import (
    load_json,
    load_parquet,
    save_json,
    save_parquet,
    save_reshaped_data,
    verify_saved_data,
)
from src.transformation.transformers import join_visits_wide, wide_to_long


def build_tables():
    wide_df = join_visits_wide(
        generate_visit_tables(PipelineConfig(n_patients=4, n_visits=2))
    )
    return wide_df, wide_to_long(wide_df)


def test_parquet_round_trip(tmp_path):
    wide_df, _ = build_tables()
    path = str(tmp_path / "nested" / "wide.parquet")

    assert save_parquet(wide_df, path) == path
    assert_frame_equal(load_parquet(path), wide_df)


def test_json_writes_iso_dates(tmp_path):
    _, long_df = build_tables()
    path = str(tmp_path / "long.json")

    save_json(long_df, path)

    with open(path) as f:
        records = json.load(f)
    assert len(records) == long_df.height
    assert records[0]["date"] == long_df.get_column("date")[0].isoformat()

    loaded = load_json(path)
    assert loaded.height == long_df.height
    assert loaded.columns == long_df.columns


def test_save_reshaped_data(tmp_path):
    wide_df, long_df = build_tables()

    paths = save_reshaped_data(wide_df, long_df, str(tmp_path))

    assert set(paths) == {"wide", "long", "long_json"}
    assert all(os.path.exists(path) for path in paths.values())
    assert_frame_equal(load_parquet(paths["long"]), long_df)


def test_load_missing_files_raise(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_parquet(str(tmp_path / "missing.parquet"))
    with pytest.raises(FileNotFoundError):
        load_json(str(tmp_path / "missing.json"))


def test_verify_saved_data(tmp_path):
    wide_df, long_df = build_tables()
    paths = save_reshaped_data(wide_df, long_df, str(tmp_path))

    assert verify_saved_data(paths, wide_df, long_df)


def test_verify_saved_data_detects_changed_wide_file(tmp_path):
    wide_df, long_df = build_tables()
    paths = save_reshaped_data(wide_df, long_df, str(tmp_path))
    save_parquet(wide_df.reverse(), paths["wide"])

    with pytest.raises(ValueError, match="Saved wide table differs"):
        verify_saved_data(paths, wide_df, long_df)


def test_verify_saved_data_detects_short_json(tmp_path):
    wide_df, long_df = build_tables()
    paths = save_reshaped_data(wide_df, long_df, str(tmp_path))
    save_json(long_df.head(2), paths["long_json"])

    with pytest.raises(ValueError, match="long JSON"):
        verify_saved_data(paths, wide_df, long_df)
