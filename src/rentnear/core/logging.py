"""
Logging configuration.

The packaged `src/rentnear/config/logging.yaml` is applied with `dictConfig`; the
level comes from settings (`app.log_level`, or `RENTNEAR_LOG_LEVEL`).
"""

from __future__ import annotations

import copy
import logging.config

from rentnear.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Configure logging from the packaged YAML; `level` wins over settings when given."""
    effective = (level or get_settings().app.log_level).upper()
    # The loader result is cached; never mutate it.
    config = copy.deepcopy(get_logging_config())

    config.setdefault("root", {})["level"] = effective
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = effective

    logging.config.dictConfig(config)
