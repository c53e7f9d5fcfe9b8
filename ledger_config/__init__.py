"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the one way runtime code obtains settings.
    It loads the bundled ``defaults.yaml`` unless a path is given, validates
    it into a frozen ``LedgerConfig`` and logs a ``config_loaded`` trace with
    the settings checksum.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and below
    ``ledger_services``.  The kernel MUST NEVER import from ``ledger_config``;
    services pass plain values (policy enum, retry limits) down to it.

Failure modes:
    - ``FileNotFoundError`` -- the given path does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- invalid or unknown settings.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import compute_checksum, load_config
from ledger_config.schema import LedgerConfig, NumberingConfig
from ledger_kernel.domain.overpayment import OverpaymentPolicy
from ledger_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: str | Path | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the bundled defaults.yaml.

    Returns:
        Validated, frozen LedgerConfig.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config(source)

    _logger.info(
        "config_loaded",
        extra={
            "source": str(source),
            "checksum": compute_checksum(config),
            "overpayment_policy": config.overpayment_policy.value,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "load_config",
    "LedgerConfig",
    "NumberingConfig",
    "OverpaymentPolicy",
    "DEFAULT_CONFIG_PATH",
]
