from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .domain.pearson import DAMPING_FLOOR
from .logging_utils import configure_logger

logger = configure_logger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    ratings_csv_path: Path
    movies_csv_path: Optional[Path] = None
    similarity_threshold: float = 0.0
    damping_floor: int = DAMPING_FLOOR
    log_level: str = "INFO"


def _config_error(env_var: str, message: str) -> RuntimeError:
    logger.error(
        "config_error",
        extra={"event": "config_error", "env_var": env_var},
    )
    return RuntimeError(message)


def _read_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise _config_error(env_var, f"Environment variable '{env_var}' must be a number, got {raw!r}.") from None


def _read_positive_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise _config_error(env_var, f"Environment variable '{env_var}' must be an integer, got {raw!r}.") from None
    if value <= 0:
        raise _config_error(env_var, f"Environment variable '{env_var}' must be > 0, got {value}.")
    return value


def load_engine_config(env_prefix: str = "RECOMMENDER_") -> EngineConfig:
    """
    Build EngineConfig from environment variables.

    Variables (with the default prefix):
      RECOMMENDER_RATINGS_CSV           ratings CSV path (default data/ratings.csv)
      RECOMMENDER_MOVIES_CSV            optional movies CSV path
      RECOMMENDER_SIMILARITY_THRESHOLD  neighbour threshold (default 0.0)
      RECOMMENDER_DAMPING_FLOOR         co-rated count below which similarity is damped (default 50)
      RECOMMENDER_LOG_LEVEL             logging level name (default INFO)
    """
    # Tests control the environment explicitly
    if "PYTEST_CURRENT_TEST" not in os.environ:
        load_dotenv()

    ratings_csv = os.getenv(env_prefix + "RATINGS_CSV", "data/ratings.csv")
    movies_csv = os.getenv(env_prefix + "MOVIES_CSV")

    threshold = _read_float(env_prefix + "SIMILARITY_THRESHOLD", 0.0)
    damping_floor = _read_positive_int(env_prefix + "DAMPING_FLOOR", DAMPING_FLOOR)

    level_var = env_prefix + "LOG_LEVEL"
    log_level = os.getenv(level_var, "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise _config_error(level_var, f"Environment variable '{level_var}' is not a logging level: {log_level!r}.")

    config = EngineConfig(
        ratings_csv_path=Path(ratings_csv),
        movies_csv_path=Path(movies_csv) if movies_csv else None,
        similarity_threshold=threshold,
        damping_floor=damping_floor,
        log_level=log_level,
    )

    logger.info(
        "config_loaded",
        extra={
            "event": "config_loaded",
            "path": str(config.ratings_csv_path),
            "threshold": config.similarity_threshold,
            "damping_floor": config.damping_floor,
        },
    )
    return config
