"""
Pipeline Tests - Orchestrator steps and command line entry point
"""

import os
import sys
from unittest.mock import patch

import pytest
from polars.testing import assert_frame_equal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.coreutils.config import PipelineConfig
from src.main import main, run_pipeline
from src.load.local_storage import save_parquet, save_reshaped_data
from src.orchestration.pipeline import ReshapePipeline


def small_config(tmp_path, **overrides):
    settings = dict(
        n_patients=6,
        n_visits=3,
        seed=42,
        output_dir=str(tmp_path / "output"),
        log_dir=str(tmp_path / "logs"),
    )
    settings.update(overrides)
    return PipelineConfig(**settings)


def test_run_full_without_saving(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path), save_output=False)

    results = pipeline.run_full()

    assert results["wide"]["total_patients"] == 6
    assert results["long"]["total_records"] == 18
    assert results["sql_matches"] is True
    assert results["round_trip"] is True
    assert results["paths"] == {}
    assert not os.path.exists(tmp_path / "output")


def test_run_full_saves_output(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path))

    results = pipeline.run_full()

    assert os.path.exists(tmp_path / "output" / "wide_visits.parquet")
    assert os.path.exists(tmp_path / "output" / "long_visits.parquet")
    assert os.path.exists(tmp_path / "output" / "long_visits.json")
    assert set(results["paths"]) == {"wide", "long", "long_json"}


def test_run_full_calls_save_once(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path))

    with patch("src.orchestration.pipeline.save_reshaped_data") as mock_save, patch(
        "src.orchestration.pipeline.verify_saved_data"
    ) as mock_verify:
        mock_save.return_value = {"wide": "w.parquet"}
        pipeline.run_full()

    mock_save.assert_called_once()
    assert mock_verify.call_args.args[0] == {"wide": "w.parquet"}
    wide_df, long_df, output_dir = mock_save.call_args.args
    assert wide_df.height == 6
    assert long_df.height == 18
    assert output_dir == str(tmp_path / "output")


def test_run_full_propagates_step_failure(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path), save_output=False)

    with patch(
        "src.orchestration.pipeline.wide_to_long_sql",
        side_effect=RuntimeError("duckdb unavailable"),
    ):
        with pytest.raises(RuntimeError, match="duckdb unavailable"):
            pipeline.run_full()


def test_run_sql_frames_agree(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path), save_output=False)

    long_df, sql_long_df = pipeline.run_sql()

    assert_frame_equal(long_df, sql_long_df)


def test_run_round_trip(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path), save_output=False)
    assert pipeline.run_round_trip() is True


def test_pipeline_status(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path), save_output=False)

    status = pipeline.get_pipeline_status()

    assert status["n_patients"] == 6
    assert status["n_visits"] == 3
    assert status["save_output"] is False


@pytest.mark.parametrize(
    "component, key",
    [
        ("generate", "generate"),
        ("reshape", "long"),
        ("sql", "sql"),
        ("roundtrip", "roundtrip"),
    ],
)
def test_run_pipeline_components(tmp_path, component, key):
    results = run_pipeline(component, save_output=False, config=small_config(tmp_path))
    assert key in results


def test_run_pipeline_generate_counts(tmp_path):
    results = run_pipeline("generate", save_output=False, config=small_config(tmp_path))
    assert results["generate"] == {"visits": [1, 2, 3], "records": 18}


def test_run_pipeline_unknown_component(tmp_path):
    with pytest.raises(ValueError, match="Unknown component"):
        run_pipeline("upload", config=small_config(tmp_path))


def test_main_cli(tmp_path, monkeypatch):
    monkeypatch.setenv("RESHAPE_OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setenv("RESHAPE_LOG_DIR", str(tmp_path / "logs"))

    exit_code = main(["--component", "reshape", "--patients", "4", "--visits", "2", "--no-save"])

    assert exit_code == 0
    assert not os.path.exists(tmp_path / "output")


def test_main_cli_reports_failure(tmp_path, monkeypatch):
    monkeypatch.setenv("RESHAPE_LOG_DIR", str(tmp_path / "logs"))

    with patch("src.main.run_pipeline", side_effect=ValueError("boom")):
        assert main(["--no-save"]) == 1


def test_main_cli_rejects_invalid_patient_count(tmp_path, monkeypatch):
    monkeypatch.setenv("RESHAPE_LOG_DIR", str(tmp_path / "logs"))

    assert main(["--patients", "0", "--no-save"]) == 1


def test_main_cli_rejects_bad_start_date(tmp_path, monkeypatch):
    monkeypatch.setenv("RESHAPE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("RESHAPE_START_DATE", "01/02/2024")

    assert main(["--no-save"]) == 1


def test_run_full_fails_when_saved_file_is_altered(tmp_path):
    pipeline = ReshapePipeline(config=small_config(tmp_path))

    def save_then_truncate(wide_df, long_df, output_dir):
        paths = save_reshaped_data(wide_df, long_df, output_dir)
        save_parquet(long_df.head(3), paths["long"])
        return paths

    with patch(
        "src.orchestration.pipeline.save_reshaped_data", side_effect=save_then_truncate
    ):
        with pytest.raises(ValueError, match="Saved long table differs"):
            pipeline.run_full()
