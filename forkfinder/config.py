"""Configuration management for Forkfinder using Pydantic."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Publish Configuration
    publish_mode: str = Field(
        default="batched",
        description="Intermediate publish policy (immediate, batched)",
    )
    batch_size: int = Field(
        default=3, gt=0, description="Appends per immediate publish in batched mode"
    )
    flush_delay_ms: int = Field(
        default=200, ge=0, description="Debounce delay for pending appends"
    )
    rank_intermediate: bool = Field(
        default=False,
        description="Rank every intermediate publish (immediate mode only)",
    )

    # Search Configuration
    default_radius_miles: float = Field(default=2.0, gt=0)
    max_radius_miles: float = Field(default=50.0, gt=0)

    # Upstream Configuration
    upstream_url: str | None = Field(
        None, description="HTTP endpoint streaming newline-delimited search events"
    )
    upstream_timeout: float = Field(
        default=60.0, description="Upstream request timeout in seconds"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def flush_delay(self) -> float:
        """Debounce delay in seconds."""
        return self.flush_delay_ms / 1000

    def model_post_init(self, __context) -> None:
        """Validate configuration after initialization."""
        if self.publish_mode not in ("immediate", "batched"):
            raise ValueError(
                f"Unknown publish mode '{self.publish_mode}' (immediate, batched)"
            )

        if self.rank_intermediate and self.publish_mode == "batched":
            raise ValueError("rank_intermediate is only supported in immediate mode")

        if not self.upstream_url:
            logger.debug("UPSTREAM_URL not set - HTTP upstream disabled")


# Global config instance
config: Config | None = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global config
    if config is None:
        config = Config()
    return config


def setup_logging(cfg: Config | None = None) -> None:
    """Configure logging for the application."""
    if cfg is None:
        cfg = get_config()

    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
