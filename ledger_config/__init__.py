"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerConfig``; the
    bridges in ``ledger_config.bridges`` turn it into kernel inputs.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``ledger_kernel``.  The kernel MUST NEVER import from
    ``ledger_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Deterministic checksum: the same YAML always produces the same
      ``LedgerConfig.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- validation failed (every error is listed).

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying ledger activity to the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.bridges import check_currency_precision
from ledger_config.loader import load_config
from ledger_config.schema import LedgerConfig

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML file.  Defaults to the
            packaged ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails or the currency precision is not
            the one the ledger stores.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)
    check_currency_precision(config)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
            "role_count": len(config.roles),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "get_active_config",
]
