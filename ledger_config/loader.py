"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Reads a YAML file and parses it into a ``LedgerConfig``.  Runtime code
should go through ``ledger_config.get_active_config()`` instead of calling
this module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* A top-level value that is not a mapping, or invalid settings  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import LedgerConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def parse_ledger_config(data: dict[str, Any]) -> LedgerConfig:
    """Parse a ``ledger:`` section (or a bare settings mapping)."""
    section = data.get("ledger", data)
    if not isinstance(section, dict):
        raise ValueError("ledger section must be a mapping")
    return LedgerConfig.from_dict(section)


def load_config(path: str | Path) -> LedgerConfig:
    """Load and validate a configuration file."""
    return parse_ledger_config(load_yaml_file(Path(path)))


def compute_checksum(config: LedgerConfig) -> str:
    """Deterministic SHA-256 over the effective settings."""
    canonical = json.dumps(config.as_dict(), sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
