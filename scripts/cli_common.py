"""Shared setup for the command line scripts: configuration and pipeline."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from pif_config import get_active_config
from pif_config.schema import PipelineConfig
from pif_services import PifPipeline


def load_config(config_path: Path | None, db_url: str | None = None) -> PipelineConfig:
    """
    Load the active configuration, with ``db_url`` replacing database.url.

    Raises:
        ConfigurationError: the configuration file is missing or invalid.
    """
    config = get_active_config(config_path)
    if db_url:
        config = replace(config, database=replace(config.database, url=db_url))
    return config


def open_pipeline(config: PipelineConfig) -> PifPipeline:
    """Initialize the engine from ``config`` and return a pipeline bound to it."""
    return PifPipeline.from_config(config)
