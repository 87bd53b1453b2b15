"""Engine configuration via environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Validation thresholds and logging options loaded from environment variables."""

    # Logging
    DEBUG: bool = False
    LOG_LEVEL: str = "info"

    # Detector grid limits
    MAX_GRID_COMPLEXITY: int = 100_000_000
    ORTHOGONALITY_TOLERANCE_DEG: float = 1.0
    HIGH_RESOLUTION_THRESHOLD: int = 10_000
    DETECTOR_COMPLEXITY_ADVISORY: int = 100_000
    GRID_DENSITY_ADVISORY: float = 1000.0
    BYTES_PER_CELL: int = 1000
    PATH_TRACE_BYTES_PER_CELL: int = 10_000
    TRANSFORM_BYTES: int = 100_000
    RESOLUTION_RATIO_LIMIT: float = 10.0
    LARGE_EDGE_LENGTH: float = 10_000.0

    # Source advisories
    SOURCE_DIVISION_ADVISORY: int = 1000
    INVENTORY_ADVISORY: int = 10
    LOW_ACTIVITY_BQ: float = 1e3
    EXTREME_ACTIVITY_BQ: float = 1e15

    # Orchestrator
    PARALLEL_CATEGORIES: bool = False

    model_config = {"env_prefix": "SHIELDCHECK_", "env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
