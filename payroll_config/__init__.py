"""
payroll_config -- single public entrypoint for payroll configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services never read the YAML fragments
    themselves.  Returns a ``PayrollConfigSet``: engine settings plus the
    statutory rate defaults used to seed a company's rate table.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``payroll_kernel``
    and ``payroll_engines`` and below ``payroll_modules``.  Engines MUST
    NEVER import from ``payroll_config``; they receive
    ``SalaryEngineSettings`` from their caller.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic loading: the same YAML fragments always produce the
      same checksum.

Failure modes:
    - ``FileNotFoundError`` -- configuration set directory or fragment missing.
    - ``ValueError`` / ``KeyError`` -- malformed fragment contents.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry containing the config id, version
    and checksum, tying each stored salary configuration to the settings
    that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from payroll_config.loader import load_config_set
from payroll_config.schema import RATE_TYPES, PayrollConfigSet, StatutoryRateDef

_logger = logging.getLogger("payroll_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    set_name: str = "default",
    config_dir: Path | None = None,
) -> PayrollConfigSet:
    """The ONLY public configuration entrypoint.

    Args:
        set_name: Name of the configuration set directory.
        config_dir: Override path to the configuration sets directory.
            Defaults to payroll_config/sets/.

    Returns:
        PayrollConfigSet -- the sole runtime artifact.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If a fragment fails validation.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    directory = sets_dir / set_name
    if not directory.is_dir():
        raise FileNotFoundError(f"No configuration set {set_name!r} in {sets_dir}")

    config = load_config_set(directory)

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "rounding_places": config.engine.rounding_places,
            "statutory_default_count": len(config.statutory_defaults),
        },
    )
    return config


__all__ = [
    "RATE_TYPES",
    "PayrollConfigSet",
    "StatutoryRateDef",
    "get_active_config",
]
