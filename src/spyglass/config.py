"""Configuration system.

YAML configuration files validated by Pydantic models with sensible defaults and
clear error messages. Every field has a default, so an empty mapping (or no file
at all) is a valid configuration. Entry point: load_config().
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from spyglass.exceptions import ConfigError


class CrawlLimits(BaseModel):
    """Safety caps that bound the crawl.

    There is no overall crawl deadline; these item-count caps are what keep
    sitemap-index cycles and script explosions from running unbounded.
    """

    max_main_redirects: int = Field(
        default=2,
        ge=0,
        description="Same-scope redirects followed when fetching the main page",
    )
    max_sitemaps: int = Field(
        default=200,
        ge=1,
        description="Maximum distinct sitemap documents fetched per crawl",
    )
    max_sitemap_urls: int = Field(
        default=5000,
        ge=1,
        description="Maximum page URLs collected from sitemaps",
    )
    max_js_targets: int = Field(
        default=50,
        ge=1,
        description="Maximum in-scope script files fetched for URL extraction",
    )
    max_js_urls_per_file: int = Field(
        default=200,
        ge=1,
        description="Maximum URLs kept from a single script file",
    )
    max_js_urls_total: int = Field(
        default=1000,
        ge=1,
        description="Maximum URLs kept across all script files",
    )
    max_fetch_workers: int = Field(
        default=8,
        ge=1,
        description="Concurrent workers per expansion phase",
    )
    high_signal_limit: int = Field(
        default=250,
        ge=1,
        description="Maximum URLs in the ranked high-signal list",
    )
    preview_fallback: int = Field(
        default=20,
        ge=1,
        description="URLs reported when candidates exist but none score positively",
    )


class CrawlerConfig(BaseModel):
    """Main configuration model for the crawler."""

    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout in seconds, used for every fetch of the crawl",
    )
    verify_ssl: bool = Field(
        default=False,
        description="Verify TLS certificates (disabled by default for permissive scanning)",
    )
    user_agent: str = Field(
        default="Spyglass",
        min_length=1,
        description="User-Agent header sent with every request",
    )
    max_retries: int = Field(
        default=1,
        ge=0,
        le=10,
        description="Retries for transient failures (429/5xx, connection errors)",
    )
    retry_backoff: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier between retries",
    )
    limits: CrawlLimits = Field(
        default_factory=CrawlLimits,
        description="Safety caps for recursive expansion",
    )

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        """Reject user agents that would produce an invalid header."""
        if "\n" in v or "\r" in v:
            raise ValueError(f"user_agent must be a single line: {v!r}")
        return v.strip()


def load_config(path: Path) -> CrawlerConfig:
    """Load and validate YAML configuration file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated CrawlerConfig instance

    Raises:
        ConfigError: If config file is not found, invalid YAML, or validation fails
    """
    try:
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        if not path.is_file():
            raise ValueError(f"Configuration path is not a file: {path}")

        with path.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            return CrawlerConfig()

        if not isinstance(config_dict, dict):
            raise ValueError(
                f"Configuration file must contain a YAML object/dict, "
                f"got {type(config_dict).__name__}"
            )

        return CrawlerConfig(**config_dict)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}:\n{e}") from e
    except ValueError as e:
        raise ConfigError(str(e)) from e
