"""
fintrack_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration.  This package sits above ``fintrack_kernel`` and below
    ``fintrack_services``.  The kernel MUST NEVER import from
    ``fintrack_config``; ``fintrack_config.bridges`` translates the loaded
    configuration into kernel inputs (BalancePolicy, engine, logging).

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ConfigError`` -- a value is missing, mistyped or out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``FINTRACK_CONFIG_TRACE`` log entry with the config id, version,
    source file and balance policy, so the rules in force for any
    request can be recovered from the logs.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from fintrack_config.loader import (
    ConfigError,
    apply_environment,
    load_yaml_file,
    parse_config,
)
from fintrack_config.schema import FintrackConfig

_logger = logging.getLogger("fintrack_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "FintrackConfig",
    "get_active_config",
]


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> FintrackConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to
            fintrack_config/sets/default.yaml.
        environ: Environment mapping used for overrides.  Defaults to
            os.environ.

    Returns:
        A frozen FintrackConfig.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ConfigError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    data = apply_environment(load_yaml_file(path), env)
    config = parse_config(data, source_path=str(path))

    _logger.info(
        "FINTRACK_CONFIG_TRACE",
        extra={
            "trace_type": "FINTRACK_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "source_path": config.source_path,
            "guard_all_debits": config.balance.guard_all_debits,
            "log_level": config.logging.level,
        },
    )
    return config
