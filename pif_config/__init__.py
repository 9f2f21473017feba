"""
pif_config -- single public entrypoint for pipeline configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``: database connection settings, validation rule
    triggers and limits, and the reporting period source.

Architecture position:
    Configuration.  Sits beside ``pif_kernel``; the kernel never imports
    from ``pif_config``.  ``pif_ingestion`` and ``pif_services`` receive the
    parsed dataclasses.

Failure modes:
    - ``ConfigurationError`` (from pif_kernel.exceptions) for a missing file,
      malformed YAML, unknown keys, or invalid values.  The message names
      the file and the offending key.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PIF_CONFIG_TRACE`` log entry with the source path and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from pif_config.loader import load_yaml_file, parse_pipeline_config
from pif_config.schema import DatabaseDef, PipelineConfig, ReportingDef, ValidationRulesDef
from pif_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("pif_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> PipelineConfig:
    """
    Load, validate and return the pipeline configuration.

    Args:
        config_path: YAML file to load.  Defaults to pif_config/defaults.yaml.

    Raises:
        ConfigurationError: the file is missing, unreadable, or invalid.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    try:
        data = load_yaml_file(path)
        config = parse_pipeline_config(data, source_path=str(path))
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}", key=str(path)) from None
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed YAML in {path}: {exc}", key=str(path)) from exc
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}", key=str(path)) from exc

    _logger.info(
        "PIF_CONFIG_TRACE",
        extra={
            "trace_type": "PIF_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "database_dialect": config.database.url.split(":", 1)[0],
            "warnings_block": config.validation.warnings_block,
            "fixed_reporting_year": config.reporting.fixed_year,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseDef",
    "PipelineConfig",
    "ReportingDef",
    "ValidationRulesDef",
    "get_active_config",
]
