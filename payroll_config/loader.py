"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads the YAML fragments of one configuration set directory and parses
them into ``payroll_config.schema`` dataclasses.  Runtime callers go
through ``payroll_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError``; required keys have no
  silent defaults.
* Numeric values are read as strings and converted to ``Decimal`` so YAML
  floats never leak into rate arithmetic.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid dates or numbers  -> ``ValueError``.
"""

from __future__ import annotations

import decimal
import hashlib
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import PayrollConfigSet, StatutoryRateDef
from payroll_engines.salary_structure.types import SalaryEngineSettings
from payroll_kernel.domain.amounts import to_decimal

ENGINE_FILE = "engine.yaml"
STATUTORY_FILE = "statutory.yaml"

_DECIMAL_FIELDS = (
    "emp_share_ac1",
    "er_share_ac2",
    "eps_ac21",
    "edli_charges_ac21",
    "admin_charges_ac10",
    "pf_wage_ceiling",
    "admin_charges_ac22",
    "eps_wage_ceiling",
    "min_eps_contribution",
    "emp_share",
    "employer_share",
    "esi_wage_ceiling",
    "gratuity_percent",
)

_TEXT_FIELDS = ("calc_type", "gratuity_base")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


def _optional_text(value: Any) -> str | None:
    if value is None or str(value).strip() == "":
        return None
    return str(value).strip()


def parse_engine_settings(data: dict[str, Any]) -> SalaryEngineSettings:
    """
    Parse ``SalaryEngineSettings`` from the ``engine.yaml`` mapping.

    The rounding mode is given by its ``decimal`` module constant name,
    e.g. ``ROUND_HALF_UP``.
    """
    rounding = data.get("rounding", {})
    gratuity = data.get("gratuity", {})

    mode_name = rounding.get("mode", "ROUND_HALF_UP")
    if not str(mode_name).startswith("ROUND_") or not hasattr(decimal, mode_name):
        raise ValueError(f"Unknown rounding mode: {mode_name!r}")

    return SalaryEngineSettings(
        rounding_places=int(rounding.get("places", 2)),
        rounding_mode=getattr(decimal, mode_name),
        gratuity_days_per_year=to_decimal(gratuity.get("days_per_year", 15)),
        gratuity_working_days=to_decimal(gratuity.get("working_days", 26)),
    )


def parse_statutory_rate(data: dict[str, Any]) -> StatutoryRateDef:
    """
    Parse one ``statutory_rates`` entry.

    Raises:
        KeyError: if ``rate_type`` or ``effective_from`` is missing.
        ValueError: on an unknown rate type, bad date, or bad number.
    """
    values = {name: _optional_decimal(data.get(name)) for name in _DECIMAL_FIELDS}
    values.update({name: _optional_text(data.get(name)) for name in _TEXT_FIELDS})
    return StatutoryRateDef(
        rate_type=str(data["rate_type"]).upper(),
        effective_from=parse_date(data["effective_from"]),
        effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
        remarks=data.get("remarks"),
        **values,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_config_set(directory: Path) -> PayrollConfigSet:
    """
    Load and parse every fragment of one configuration set directory.

    Postconditions:
        Returns a frozen ``PayrollConfigSet`` whose checksum covers both
        fragments.
    """
    engine_data = load_yaml_file(directory / ENGINE_FILE)
    statutory_data = load_yaml_file(directory / STATUTORY_FILE)

    defaults = tuple(
        parse_statutory_rate(entry)
        for entry in statutory_data.get("statutory_rates", [])
    )

    return PayrollConfigSet(
        config_id=str(engine_data.get("config_id", directory.name)),
        version=int(engine_data.get("version", 1)),
        engine=parse_engine_settings(engine_data),
        statutory_defaults=defaults,
        checksum=compute_checksum({
            "engine": engine_data,
            "statutory": statutory_data,
        }),
    )
