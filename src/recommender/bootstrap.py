from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

import pandas as pd

from src.recommender.config import EngineConfig, load_engine_config
from src.recommender.data.profiles import build_profiles, load_ratings_csv
from src.recommender.domain.pearson import PearsonSimilarity
from src.recommender.logging_utils import configure_logger, set_package_level
from src.recommender.service.recommender_service import RecommenderService

logger = configure_logger(__name__)


def _repo_root() -> Path:
    # .../src/recommender/bootstrap.py -> parents[2] = repo root
    return Path(__file__).resolve().parents[2]


def _resolve(path: Path) -> Path:
    return path if path.is_absolute() else (_repo_root() / path)


def _load_movies_csv(path: Optional[Path]) -> Optional[pd.DataFrame]:
    if path is None:
        return None
    full_path = _resolve(path)
    if not full_path.exists():
        raise FileNotFoundError(f"Movies file not found: {full_path}")
    return pd.read_csv(full_path)


def bootstrap_service(config: Optional[EngineConfig] = None) -> RecommenderService:
    """
    Build and return a fully initialized RecommenderService.

    This function performs I/O (CSV reads) and the full O(n^2) similarity
    precompute, so it belongs at process startup, not on a request path.
    """
    config = config or load_engine_config()
    set_package_level("src.recommender", config.log_level)

    logger.info(
        "Bootstrapping RecommenderService",
        extra={"event": "bootstrap.start", "path": str(config.ratings_csv_path)},
    )

    ratings_df = load_ratings_csv(_resolve(config.ratings_csv_path))
    movies_df = _load_movies_csv(config.movies_csv_path)

    profiles = build_profiles(ratings_df, movies_df)
    engine = PearsonSimilarity(profiles, damping_floor=config.damping_floor)

    service = RecommenderService(engine, default_threshold=config.similarity_threshold)

    logger.info(
        "RecommenderService initialized successfully",
        extra={"event": "bootstrap.ready", "profiles": len(engine)},
    )
    return service


@lru_cache(maxsize=1)
def get_recommender_service() -> RecommenderService:
    """Cached service getter for scripts and tests."""
    return bootstrap_service()
