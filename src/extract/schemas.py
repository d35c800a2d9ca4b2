"""
Extract Layer Schemas

Raw data schemas for the synthetic per-visit tables.
Each visit table carries the subject key plus the visit fields below.
"""

import polars as pl

PATIENT_KEY = "patient_id"

SYMPTOM_LEVELS = ["none", "mild", "moderate", "severe"]

# Fields recorded at every visit, in column order
VISIT_FIELDS_SCHEMA = pl.Schema(
    [
        ("date", pl.Date()),
        ("symptom", pl.String()),
        ("adverse_event", pl.Boolean()),
        ("on_treatment", pl.Boolean()),
    ]
)

RAW_VISIT_SCHEMA = pl.Schema([(PATIENT_KEY, pl.Int64()), *VISIT_FIELDS_SCHEMA.items()])
