"""Configuration management for the question answering server."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def parse_weights(raw: str) -> Dict[str, float]:
    """Parse ``name=weight,name=weight`` into a mapping."""
    weights: Dict[str, float] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Invalid SCORE_WEIGHTS entry '{item}': expected name=weight")
        try:
            weights[name.strip()] = float(value)
        except ValueError:
            raise ValueError(f"Invalid weight for '{name.strip()}': '{value}'")
    return weights


DEFAULT_WEIGHTS = {
    "search_rank": 1.0,
    "passage_count": 0.3,
    "passage_term_match": 1.5,
    "answer_in_passage": 0.5,
    "date_matches": 1.0,
}


@dataclass
class Config:
    """Configuration for the pipeline pool and request front door."""

    # Search Configuration
    serper_api_key: Optional[str]
    search_results_per_query: int
    search_timeout: float  # Per-searcher bound on the search barrier
    search_cache_path: Optional[Path]  # Enables the SQLite search cache

    # Pool and Dispatcher Configuration
    pool_size: int  # Number of pipeline instances
    acquire_timeout: float  # Seconds to wait for a free pipeline
    dispatch_workers: int  # Threads running ask tasks
    max_pending_requests: int  # Submitted-but-unfinished asks before rejecting

    # Score Combination
    score_intercept: float
    score_weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))

    # Second search backend, queried alongside Serper when a key is set
    tavily_api_key: Optional[str] = None

    # Data
    question_db_path: Path = Path("./questions.sqlite")
    training_output: Optional[Path] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8887
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Config":
        """Load configuration from environment variables."""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        def get_optional(key: str, default: str) -> str:
            return os.getenv(key, default)

        def get_number(key: str, default: str, kind=int, minimum=None):
            """Parse and validate a numeric setting."""
            val_str = os.getenv(key, default)
            try:
                val = kind(val_str)
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value for {key}: '{val_str}'. Error: {e}")
            if minimum is not None and val < minimum:
                raise ValueError(f"{key} must be at least {minimum}, got {val}")
            return val

        def get_path(key: str) -> Optional[Path]:
            value = os.getenv(key)
            return Path(value) if value else None

        pool_size = get_number("POOL_SIZE", str(os.cpu_count() or 1), minimum=1)
        if pool_size > 64:
            logger.warning(
                f"POOL_SIZE is set to {pool_size}, which is very high. "
                f"Each instance holds its own analysis resources."
            )

        weights_env = os.getenv("SCORE_WEIGHTS")
        score_weights = parse_weights(weights_env) if weights_env else dict(DEFAULT_WEIGHTS)

        return cls(
            serper_api_key=os.getenv("SERPER_API_KEY"),
            search_results_per_query=get_number("SEARCH_RESULTS_PER_QUERY", "10", minimum=1),
            search_timeout=get_number("SEARCH_TIMEOUT", "30", kind=float, minimum=0),
            search_cache_path=get_path("SEARCH_CACHE_PATH"),

            pool_size=pool_size,
            acquire_timeout=get_number("ACQUIRE_TIMEOUT", "60", kind=float, minimum=0),
            dispatch_workers=get_number("DISPATCH_WORKERS", "32", minimum=1),
            max_pending_requests=get_number("MAX_PENDING_REQUESTS", "256", minimum=1),

            score_intercept=get_number("SCORE_INTERCEPT", "0", kind=float),
            score_weights=score_weights,

            tavily_api_key=os.getenv("TAVILY_API_KEY"),

            question_db_path=Path(get_optional("QUESTION_DB_PATH", "./questions.sqlite")),
            training_output=get_path("TRAINING_OUTPUT"),

            host=get_optional("HOST", "0.0.0.0"),
            port=get_number("PORT", "8887", minimum=1),
            log_level=get_optional("LOG_LEVEL", "INFO"),
        )

    def ensure_directories(self):
        """Create directories for files the server writes."""
        if self.training_output:
            self.training_output.parent.mkdir(parents=True, exist_ok=True)
        if self.search_cache_path:
            self.search_cache_path.parent.mkdir(parents=True, exist_ok=True)
