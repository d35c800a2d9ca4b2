"""
Test SQL Union - wide to long through an in-memory DuckDB UNION
"""

import os
import sys

import pytest
from polars.testing import assert_frame_equal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.coreutils.config import PipelineConfig
from src.extract.visit_generator import generate_visit_tables
from src.transformation.schemas import LONG_SCHEMA
from src.transformation.sql_union import (
    build_union_sql,
    build_visit_select,
    quote_identifier,
    wide_to_long_sql,
)
from src.transformation.transformers import join_visits_wide, wide_to_long


def build_wide(n_patients=6, n_visits=3, seed=42):
    config = PipelineConfig(n_patients=n_patients, n_visits=n_visits, seed=seed)
    return join_visits_wide(generate_visit_tables(config))


def test_quote_identifier_escapes_quotes():
    assert quote_identifier("date") == '"date"'
    assert quote_identifier('odd"name') == '"odd""name"'


def test_build_visit_select():
    sql = build_visit_select(2)

    assert sql.startswith('SELECT "_row", "patient_id", CAST(2 AS INTEGER) AS "visit"')
    assert '"date_2" AS "date"' in sql
    assert '"on_treatment_2" AS "on_treatment"' in sql
    assert sql.endswith('FROM "wide_visits"')


def test_build_union_sql_union_all_by_default():
    sql = build_union_sql([1, 2, 3])

    assert sql.count("\nUNION ALL\n") == 2
    assert sql.count("SELECT") == 3
    assert sql.endswith('ORDER BY "visit", "_row"')


def test_build_union_sql_distinct():
    sql = build_union_sql([1, 2], distinct=True)

    assert "UNION ALL" not in sql
    assert sql.count("\nUNION\n") == 1


def test_build_union_sql_single_visit_has_no_union():
    assert "UNION" not in build_union_sql([1])


def test_build_union_sql_requires_visits():
    with pytest.raises(ValueError):
        build_union_sql([])


def test_sql_result_matches_polars_reshape():
    wide_df = build_wide()

    sql_long_df = wide_to_long_sql(wide_df)

    assert sql_long_df.schema == LONG_SCHEMA
    assert_frame_equal(sql_long_df, wide_to_long(wide_df))


def test_sql_distinct_union_keeps_every_row():
    wide_df = build_wide(n_patients=5, n_visits=4)

    sql_long_df = wide_to_long_sql(wide_df, distinct=True)

    assert sql_long_df.height == 20
    assert_frame_equal(sql_long_df, wide_to_long(wide_df))


def test_sql_subset_of_visits():
    wide_df = build_wide(n_patients=3, n_visits=3)

    sql_long_df = wide_to_long_sql(wide_df, visits=[1, 3])

    assert sql_long_df.get_column("visit").to_list() == [1, 1, 1, 3, 3, 3]
    assert_frame_equal(sql_long_df, wide_to_long(wide_df, visits=[1, 3]))


def test_sql_keeps_wide_row_order_when_unsorted():
    wide_df = build_wide(n_patients=5, n_visits=2).reverse()

    sql_long_df = wide_to_long_sql(wide_df)

    assert sql_long_df.get_column("patient_id").to_list() == [5, 4, 3, 2, 1] * 2
    assert "_row" not in sql_long_df.columns
    assert_frame_equal(sql_long_df, wide_to_long(wide_df))
