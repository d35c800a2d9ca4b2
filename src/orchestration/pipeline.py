"""
Pipeline Orchestrator - Visit Reshape

Coordinates the reshape workflow:
1. Generate synthetic per-visit tables
2. Join them into the wide table
3. Reshape wide -> long with polars (map + reduce)
4. Reshape wide -> long with a DuckDB UNION and compare
5. Check the wide -> long -> wide round trip
6. Save wide and long tables locally

No business logic lives here; every step delegates to a layer function.
"""

from datetime import datetime
from typing import Dict, Optional, Tuple
import logging
import polars as pl

# Extract layer imports
from src.extract.visit_generator import generate_visit_tables

# Transform layer imports
from src.transformation.transformers import (
    join_visits_wide,
    wide_to_long,
    get_summary_stats,
)
from src.transformation.sql_union import wide_to_long_sql
from src.transformation.validators import (
    validate_wide_schema,
    validate_long_schema,
    validate_long_keys,
    validate_round_trip,
    validate_sql_matches,
)

# Load layer imports
from src.load.local_storage import save_reshaped_data, verify_saved_data

from src.coreutils.config import PipelineConfig

logger = logging.getLogger(__name__)


class ReshapePipeline:
    """Orchestrates the generate -> wide -> long workflow"""

    def __init__(self, config: Optional[PipelineConfig] = None, save_output: bool = True):
        """
        Initialize the reshape pipeline

        Args:
            config: Pipeline configuration (read from environment if not provided)
            save_output: If False, skip writing files to the output directory
        """
        self.config = config if config is not None else PipelineConfig.from_env()
        self.save_output = save_output

        if not self.save_output:
            logger.info("🔍 NO-SAVE MODE: Output files will not be written")

    def run_generate(self) -> Dict[int, pl.DataFrame]:
        """
        Generate the per-visit tables

        Returns:
            Dict[int, pl.DataFrame]: Visit index -> visit table
        """
        logger.info("🔄 Generating synthetic visit tables...")
        return generate_visit_tables(self.config)

    def run_wide(self) -> pl.DataFrame:
        """
        Generate visit tables and join them into the wide table

        Returns:
            pl.DataFrame: Validated wide table
        """
        visit_tables = self.run_generate()

        logger.info("🔄 Joining visit tables into wide table...")
        wide_df = join_visits_wide(visit_tables)
        validate_wide_schema(wide_df)
        return wide_df

    def run_reshape(self) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """
        Build the wide table and reshape it to long with polars

        Returns:
            Tuple[pl.DataFrame, pl.DataFrame]: (wide table, long table)
        """
        wide_df = self.run_wide()

        logger.info("🔄 Reshaping wide table to long...")
        long_df = wide_to_long(wide_df)
        validate_long_schema(long_df)
        validate_long_keys(long_df, self.config.n_patients, self.config.n_visits)
        return wide_df, long_df

    def run_sql(self) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """
        Reshape with both polars and DuckDB and check they agree

        Returns:
            Tuple[pl.DataFrame, pl.DataFrame]: (polars long table, SQL long table)
        """
        wide_df, long_df = self.run_reshape()

        logger.info("🔄 Reshaping wide table to long with DuckDB UNION...")
        sql_long_df = wide_to_long_sql(wide_df)
        validate_sql_matches(long_df, sql_long_df)
        return long_df, sql_long_df

    def run_round_trip(self) -> bool:
        """
        Check wide -> long -> wide preserves every record

        Returns:
            bool: True if the round trip is lossless
        """
        wide_df = self.run_wide()

        logger.info("🔄 Checking wide -> long -> wide round trip...")
        return validate_round_trip(wide_df)

    def run_full(self) -> dict:
        """
        Run every step and save the results

        Returns:
            dict: Statistics for the wide and long tables plus saved paths
        """
        logger.info("🚀 Starting Visit Reshape Pipeline")
        logger.info("=" * 50)

        try:
            # Step 1-3: Generate, join, reshape
            wide_df, long_df = self.run_reshape()

            # Step 4: Same reshape through DuckDB
            logger.info("🔄 Reshaping wide table to long with DuckDB UNION...")
            sql_long_df = wide_to_long_sql(wide_df)
            validate_sql_matches(long_df, sql_long_df)

            # Step 5: Round trip
            logger.info("🔄 Checking wide -> long -> wide round trip...")
            validate_round_trip(wide_df)

            # Step 6: Save
            paths = {}
            if self.save_output:
                logger.info("💾 Saving reshaped data...")
                paths = save_reshaped_data(wide_df, long_df, self.config.output_dir)
                verify_saved_data(paths, wide_df, long_df)
            else:
                logger.info("🔍 NO-SAVE: Skipping file output")

            results = {
                "wide": get_summary_stats(wide_df, "wide"),
                "long": get_summary_stats(long_df, "long"),
                "sql_matches": True,
                "round_trip": True,
                "paths": paths,
            }

            logger.info(
                f"✅ Reshaped {results['wide']['total_patients']} patients into "
                f"{results['long']['total_records']} visit records"
            )
            return results

        except Exception as e:
            logger.error(f"❌ Visit Reshape Pipeline failed: {e}")
            raise

    def get_pipeline_status(self) -> dict:
        """
        Get current pipeline settings

        Returns:
            dict: Pipeline status information
        """
        return {
            "timestamp": datetime.now().isoformat(),
            "save_output": self.save_output,
            "n_patients": self.config.n_patients,
            "n_visits": self.config.n_visits,
            "seed": self.config.seed,
            "output_dir": self.config.output_dir,
        }
