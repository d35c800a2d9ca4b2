"""
Pipeline Configuration

Run settings for the visit reshape pipeline, read from the environment
(a local .env file is honored through src.coreutils.env).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
import logging

from src.coreutils.env import env_get, env_int

logger = logging.getLogger(__name__)

DEFAULT_START_DATE = date(2024, 1, 1)


@dataclass(frozen=True)
class PipelineConfig:
    """Settings shared by the generate, reshape and load layers"""

    n_patients: int = 10
    n_visits: int = 3
    seed: int = 42
    start_date: date = DEFAULT_START_DATE
    visit_interval_days: int = 30
    visit_window_days: int = 3
    output_dir: str = "output"
    log_dir: str = "logs"

    def __post_init__(self):
        if self.n_patients < 1:
            raise ValueError(f"n_patients must be positive, got {self.n_patients}")
        if self.n_visits < 1:
            raise ValueError(f"n_visits must be positive, got {self.n_visits}")
        if self.visit_interval_days < 1:
            raise ValueError(
                f"visit_interval_days must be positive, got {self.visit_interval_days}"
            )
        # Jitter windows of neighbouring visits must not overlap
        if not 0 <= 2 * self.visit_window_days < self.visit_interval_days:
            raise ValueError(
                f"visit_window_days ({self.visit_window_days}) must be non-negative "
                f"and less than half of visit_interval_days ({self.visit_interval_days})"
            )

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """
        Build configuration from RESHAPE_* environment variables

        Returns:
            PipelineConfig: Configuration with defaults for unset variables
        """
        start_date = env_get("RESHAPE_START_DATE")
        config = cls(
            n_patients=env_int("RESHAPE_N_PATIENTS", cls.n_patients),
            n_visits=env_int("RESHAPE_N_VISITS", cls.n_visits),
            seed=env_int("RESHAPE_SEED", cls.seed),
            start_date=(
                datetime.strptime(start_date, "%Y-%m-%d").date()
                if start_date
                else DEFAULT_START_DATE
            ),
            visit_interval_days=env_int(
                "RESHAPE_VISIT_INTERVAL_DAYS", cls.visit_interval_days
            ),
            visit_window_days=env_int(
                "RESHAPE_VISIT_WINDOW_DAYS", cls.visit_window_days
            ),
            output_dir=env_get("RESHAPE_OUTPUT_DIR", cls.output_dir),
            log_dir=env_get("RESHAPE_LOG_DIR", cls.log_dir),
        )
        logger.debug(f"Loaded pipeline config: {config}")
        return config

    def with_overrides(self, **overrides) -> "PipelineConfig":
        """Return a copy with every non-None override applied"""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @property
    def visits(self) -> list[int]:
        return list(range(1, self.n_visits + 1))
