"""Logging utilities."""

import logging

from snipmatch.config import LoggingConfig


def setup_logging(config: LoggingConfig, level: str | None = None) -> None:
    """Setup application logging.

    Args:
        config: Logging configuration
        level: Overrides ``config.level`` (e.g. from the command line)
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=getattr(logging, (level or config.level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
