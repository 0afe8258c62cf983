"""
pharmacy_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``pharmacy_kernel`` and below
    ``pharmacy_services``.  The kernel MUST NEVER import from
    ``pharmacy_config``; ``bridges`` translates the parsed configuration
    into kernel policy objects.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Deterministic checksum: the same YAML always produces the same
      checksum.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` / ``KeyError`` -- validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PHARMACY_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and the effective pricing and stock policy, so every
    reconciliation can be tied back to the rules that governed it.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from pharmacy_config.loader import load_yaml_file, parse_config
from pharmacy_config.schema import PharmacyConfig

_logger = logging.getLogger("pharmacy_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DATABASE_URL_ENV = "PHARMACY_DATABASE_URL"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> PharmacyConfig:
    """The ONLY public configuration entrypoint.

    Args:
        name: Configuration set name; loads ``<config_dir>/<name>.yaml``.
        config_dir: Override path to the configuration sets directory.
            Defaults to pharmacy_config/sets/.

    Returns:
        A frozen, validated ``PharmacyConfig``.  When the
        ``PHARMACY_DATABASE_URL`` environment variable is set it replaces
        ``database.url``; the checksum still identifies the YAML source.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = parse_config(load_yaml_file(path))

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=env_url),
        )

    _logger.info(
        "PHARMACY_CONFIG_TRACE",
        extra={
            "trace_type": "PHARMACY_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "database_url_overridden": bool(env_url),
            "markup_rate": config.pricing.markup_rate,
            "money_places": config.pricing.money_places,
            "min_pack_size_stock_for_sale": config.stock.min_pack_size_stock_for_sale,
            "rollback_factor_source": config.stock.rollback_factor_source,
            "purchase_removal": config.stock.purchase_removal,
        },
    )
    return config


__all__ = ["DATABASE_URL_ENV", "PharmacyConfig", "get_active_config"]
