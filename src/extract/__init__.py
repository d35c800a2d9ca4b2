"""
Extract Layer - Synthetic Visit Data

This layer produces the raw per-visit tables the pipeline reshapes.
- No imports from transform or load layers
- Seeded generation, reproducible for a given config
- One table per visit index, keyed by patient_id
"""
