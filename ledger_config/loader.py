"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the ledger YAML document, validates it, and parses it into the
frozen ``ledger_config.schema`` dataclasses.  This is internal tooling;
the single public entry point for runtime config is
``ledger_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Reads role and capability
names from the kernel enums so a typo in YAML is caught at load time.

Invariants enforced
-------------------
* Validation collects every problem before failing; a ``ValueError``
  lists all of them, never just the first.
* No silent defaults for required sections.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  canonical JSON form of the document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid content  -> ``ValueError`` with every error listed.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    AccountCodesDef,
    CodeBandsDef,
    LedgerConfig,
    NumberFormatDef,
    RoleGrantDef,
)
from ledger_kernel.domain.actor import Capability, Role

_BAND_KEYS = ("asset", "liability", "equity", "revenue", "expense", "custom")
_REQUIRED_SECTIONS = (
    "config_id",
    "version",
    "currency_decimal_places",
    "account_codes",
    "numbering",
    "roles",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_number_format(name: str, data: Any, errors: list[str]) -> None:
    if not isinstance(data, dict):
        errors.append(f"numbering.{name} must be a mapping")
        return
    prefix = data.get("prefix")
    if not isinstance(prefix, str) or not prefix:
        errors.append(f"numbering.{name}.prefix must be a non-empty string")
    width = data.get("width", 4)
    if not _is_int(width) or width < 1:
        errors.append(f"numbering.{name}.width must be a positive integer, got {width!r}")


def validate_config_data(data: dict[str, Any]) -> list[str]:
    """Return every problem found in ``data``; an empty list means valid."""
    errors: list[str] = []

    for section in _REQUIRED_SECTIONS:
        if section not in data:
            errors.append(f"missing required key '{section}'")
    if errors:
        return errors

    if not isinstance(data["config_id"], str) or not data["config_id"].strip():
        errors.append("config_id must be a non-empty string")
    if not _is_int(data["version"]) or data["version"] < 1:
        errors.append(f"version must be a positive integer, got {data['version']!r}")

    places = data["currency_decimal_places"]
    if not _is_int(places) or not 0 <= places <= 8:
        errors.append(f"currency_decimal_places must be an integer 0..8, got {places!r}")

    codes = data["account_codes"]
    if not isinstance(codes, dict):
        errors.append("account_codes must be a mapping")
    else:
        bands = codes.get("bands") or {}
        if not isinstance(bands, dict):
            errors.append("account_codes.bands must be a mapping")
            bands = {}
        seen: dict[str, str] = {}
        for key in _BAND_KEYS:
            value = str(bands.get(key, "")) if key in bands else None
            if value is None:
                errors.append(f"account_codes.bands.{key} is required")
                continue
            if len(value) != 1 or not value.isdigit():
                errors.append(f"account_codes.bands.{key} must be one digit, got {value!r}")
                continue
            if value in seen:
                errors.append(
                    f"account_codes.bands.{key} reuses band {value!r} of {seen[value]}"
                )
            seen[value] = key
        unknown = sorted(set(bands) - set(_BAND_KEYS))
        if unknown:
            errors.append(f"account_codes.bands has unknown keys: {', '.join(unknown)}")

        root_width = codes.get("root_width", 4)
        root_step = codes.get("root_step", 100)
        if not _is_int(root_width) or root_width < 2:
            errors.append(f"account_codes.root_width must be an integer >= 2, got {root_width!r}")
        elif not _is_int(root_step) or not 1 <= root_step < 10 ** (root_width - 1):
            errors.append(
                f"account_codes.root_step {root_step!r} does not fit root_width {root_width}"
            )
        widths = codes.get("child_suffix_widths", [2, 3])
        if (
            not isinstance(widths, list)
            or not widths
            or not all(_is_int(w) and w >= 1 for w in widths)
        ):
            errors.append("account_codes.child_suffix_widths must be a non-empty list of positive integers")

    numbering = data["numbering"]
    if not isinstance(numbering, dict):
        errors.append("numbering must be a mapping")
    else:
        for name in ("journal_entry", "purchase_order"):
            if name not in numbering:
                errors.append(f"numbering.{name} is required")
            else:
                _check_number_format(name, numbering[name], errors)

    roles = data["roles"]
    known_roles = {r.value for r in Role}
    known_caps = {c.value for c in Capability}
    if not isinstance(roles, dict):
        errors.append("roles must be a mapping of role -> capability list")
    else:
        for role, caps in roles.items():
            if role not in known_roles:
                errors.append(f"roles: unknown role {role!r}")
            if not isinstance(caps, list):
                errors.append(f"roles.{role} must be a list")
                continue
            for cap in caps:
                if cap not in known_caps:
                    errors.append(f"roles.{role}: unknown capability {cap!r}")

    return errors


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a validated document into a ``LedgerConfig``.

    Raises:
        ValueError: listing every validation error.
    """
    errors = validate_config_data(data)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    codes = data["account_codes"]
    bands = {k: str(v) for k, v in codes["bands"].items()}
    numbering = data["numbering"]

    return LedgerConfig(
        config_id=data["config_id"],
        version=data["version"],
        currency_decimal_places=data["currency_decimal_places"],
        account_codes=AccountCodesDef(
            bands=CodeBandsDef(**bands),
            root_width=codes.get("root_width", 4),
            root_step=codes.get("root_step", 100),
            child_suffix_widths=tuple(codes.get("child_suffix_widths", (2, 3))),
        ),
        journal_entry_number=NumberFormatDef(
            prefix=numbering["journal_entry"]["prefix"],
            width=numbering["journal_entry"].get("width", 4),
        ),
        purchase_order_number=NumberFormatDef(
            prefix=numbering["purchase_order"]["prefix"],
            width=numbering["purchase_order"].get("width", 4),
        ),
        roles=tuple(
            RoleGrantDef(role=role, capabilities=tuple(sorted(caps)))
            for role, caps in sorted(data["roles"].items())
        ),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> LedgerConfig:
    """Load, validate and parse the YAML document at ``path``."""
    return parse_config(load_yaml_file(path))
