"""Configuration management using Pydantic and YAML."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class MatcherConfig(BaseModel):
    """Snippet matching configuration."""

    chunk_size: float = Field(gt=0, default=60.0)  # seconds per window
    overlap_length: float | None = Field(ge=0, default=None)  # None: snippet duration
    distance: float = Field(ge=0, default=8 * 60.0)  # min seconds between matches
    prominence: float = Field(ge=0, default=13.0)  # percent
    scale: bool = True
    workers: int = Field(ge=1, default=4)
    fancy_bar: bool = False  # needs the Fira Code font
    fail_fast: bool = False


class LabelConfig(BaseModel):
    """Label file configuration."""

    name_pattern: str = "Segment #"
    delay_start: float = Field(ge=0, default=7.0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str | None = None


class SnipmatchConfig(BaseModel):
    """Main application configuration."""

    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    labels: LabelConfig = Field(default_factory=LabelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def default_config_paths() -> list[Path]:
    return [
        Path(__file__).parent.parent / "config" / "config.yaml",
        Path.home() / ".config" / "snipmatch" / "config.yaml",
        Path.home() / ".snipmatch" / "config.yaml",
    ]


def load_config(config_path: Path | None = None) -> SnipmatchConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, the default locations are
            searched and the built-in defaults are used when none exists.

    Returns:
        SnipmatchConfig instance

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If config file is invalid
    """
    if config_path is None:
        for path in default_config_paths():
            if path.exists():
                config_path = path
                break
        else:
            return SnipmatchConfig()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return SnipmatchConfig(**(data or {}))
