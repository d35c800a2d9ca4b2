"""
Visit Generator - Extract Layer

Synthesizes random per-visit records for a fixed patient population.
Every visit index gets its own table; visits are generated independently.
"""

import random
from datetime import date, timedelta
from typing import Dict, List

import polars as pl
import logging

from src.coreutils.config import PipelineConfig
from .schemas import PATIENT_KEY, RAW_VISIT_SCHEMA, SYMPTOM_LEVELS

logger = logging.getLogger(__name__)

# Probability weights for SYMPTOM_LEVELS
SYMPTOM_WEIGHTS = [0.5, 0.3, 0.15, 0.05]
ADVERSE_EVENT_RATE = 0.1
ON_TREATMENT_RATE = 0.8


def visit_date(
    rng: random.Random,
    visit: int,
    start_date: date,
    interval_days: int,
    window_days: int,
) -> date:
    """Scheduled date for a visit, jittered within +/- window_days"""
    # First visit never precedes the study start
    earliest = 0 if visit == 1 else -window_days
    offset = (visit - 1) * interval_days + rng.randint(earliest, window_days)
    return start_date + timedelta(days=offset)


def generate_visit_table(
    visit: int,
    n_patients: int,
    rng: random.Random,
    start_date: date,
    interval_days: int = 30,
    window_days: int = 3,
) -> pl.DataFrame:
    """
    Generate one visit's records for every patient

    Args:
        visit: Visit index, starting at 1
        n_patients: Size of the patient population
        rng: Random source
        start_date: Date of the first scheduled visit
        interval_days: Days between scheduled visits
        window_days: Maximum jitter around the scheduled date

    Returns:
        pl.DataFrame: One row per patient with RAW_VISIT_SCHEMA
    """
    if visit < 1:
        raise ValueError(f"Visit index must start at 1, got {visit}")

    logger.debug(f"Generating visit {visit} for {n_patients} patients")

    rows = [
        {
            PATIENT_KEY: patient_id,
            "date": visit_date(rng, visit, start_date, interval_days, window_days),
            "symptom": rng.choices(SYMPTOM_LEVELS, weights=SYMPTOM_WEIGHTS)[0],
            "adverse_event": rng.random() < ADVERSE_EVENT_RATE,
            "on_treatment": rng.random() < ON_TREATMENT_RATE,
        }
        for patient_id in range(1, n_patients + 1)
    ]
    return pl.DataFrame(rows, schema=RAW_VISIT_SCHEMA)


def generate_visit_tables(config: PipelineConfig) -> Dict[int, pl.DataFrame]:
    """
    Generate a table per visit index for the configured population

    Args:
        config: Pipeline configuration (population size, visits, seed, dates)

    Returns:
        Dict[int, pl.DataFrame]: Visit index -> visit table, in visit order
    """
    logger.info(
        f"Generating {config.n_visits} visit tables for {config.n_patients} patients "
        f"(seed={config.seed})"
    )

    try:
        rng = random.Random(config.seed)
        tables = {
            visit: generate_visit_table(
                visit,
                config.n_patients,
                rng,
                config.start_date,
                config.visit_interval_days,
                config.visit_window_days,
            )
            for visit in config.visits
        }

        total = sum(table.height for table in tables.values())
        logger.info(f"Generated {total} visit records")
        return tables

    except Exception as e:
        logger.error(f"❌ Error generating visit tables: {e}")
        raise


def list_visits(tables: Dict[int, pl.DataFrame]) -> List[int]:
    """Sorted visit indices present in a visit-table mapping"""
    return sorted(tables)
