from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
        env_prefix="PUBGRAPH_"
    )


    # ------------------------------------------------------------------
    # Core paths
    # ------------------------------------------------------------------
    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Base data directory; saved graphs live under DATA_DIR/graph.",
    )

    GRAPH_DEFAULT_NAME: str = Field(
        default="graph",
        description="Default graph name for data/graph/{name}.gpickle",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Level passed to logging.basicConfig by the CLI entrypoint.",
    )

    # ------------------------------------------------------------------
    # Citation count cache
    # ------------------------------------------------------------------
    CACHE_LOCK_STRIPES: int = Field(
        default=64,
        ge=1,
        description=(
            "Number of lock stripes guarding (article, year) counters. "
            "Increments on keys that hash to different stripes run in parallel."
        ),
    )

    cache_eager_init: bool = Field(
        default=False,
        description=(
            "If True, the query service builds the citation count cache when "
            "it is constructed instead of on first use."
        ),
    )

    # ------------------------------------------------------------------
    # Metrics / query execution
    # ------------------------------------------------------------------
    IMPACT_FACTOR_WINDOW_YEARS: int = Field(
        default=2,
        ge=1,
        description=(
            "How many years before the target year count toward an impact "
            "factor's article base (2 = the classic two-year impact factor)."
        ),
    )

    QUERY_MAX_WORKERS: int = Field(
        default=8,
        ge=1,
        description="Upper bound on worker threads used for concurrent read queries.",
    )

    # ------------------------------------------------------------------
    # Convenience derived paths
    # ------------------------------------------------------------------
    @property
    def graph_dir(self) -> Path:
        return self.DATA_DIR / "graph"

    @property
    def default_graph_path(self) -> Path:
        return self.graph_dir / f"{self.GRAPH_DEFAULT_NAME}.gpickle"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Singleton-style accessor so we only construct Settings once and
    ensure directories exist on first access.
    """
    global _settings
    if _settings is None:
        _settings = Settings()

        _settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
        _settings.graph_dir.mkdir(parents=True, exist_ok=True)

    return _settings


settings = get_settings()
