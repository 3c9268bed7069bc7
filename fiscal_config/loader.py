"""
Tax profile loader (``fiscal_config.loader``).

Responsibility
--------------
Loads a YAML tax profile file and parses it into a frozen
``fiscal_config.schema.TaxProfile``.  Runtime callers go through
``fiscal_config.get_tax_profile()``; this module is the parsing layer
underneath it.

Invariants enforced
-------------------
* Every parse error surfaces as ``InvalidTaxProfileError`` naming the
  profile and the reason; no silent defaults for required keys.
* Rates are Decimal percentages and never negative.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys, wrongly shaped sections, negative rates, bad bands
  -> ``InvalidTaxProfileError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from fiscal_config.schema import TaxProfile
from fiscal_engines.detection import DEFAULT_BANDS, DetectorBand
from fiscal_kernel.domain.amounts import to_rate
from fiscal_kernel.exceptions import AmountError, InvalidTaxProfileError, RateError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed profile document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_band(raw: Any, profile: str) -> DetectorBand:
    """Parse a ``[low, high]`` pair (or ``{low, high}`` mapping)."""
    if isinstance(raw, dict):
        low, high = raw.get("low"), raw.get("high")
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        low, high = raw
    else:
        raise InvalidTaxProfileError(profile, f"detector band {raw!r} is not a [low, high] pair")

    # YAML true/false would pass an int check
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (low, high)):
        raise InvalidTaxProfileError(profile, f"detector band {raw!r} must hold integers")
    try:
        return DetectorBand(low, high)
    except ValueError as e:
        raise InvalidTaxProfileError(profile, str(e)) from e


def _rate(value: Any, profile: str, field: str) -> Decimal:
    try:
        return to_rate(value, field)
    except (AmountError, RateError) as e:
        raise InvalidTaxProfileError(profile, str(e)) from e


def _section(data: dict[str, Any], key: str, profile: str) -> dict[str, Any]:
    """Optional mapping section; absent or empty reads as ``{}``."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidTaxProfileError(profile, f"{key} must be a mapping, got {value!r}")
    return value


def _list(value: Any, profile: str, field: str) -> list[Any]:
    if not isinstance(value, list):
        raise InvalidTaxProfileError(profile, f"{field} must be a list, got {value!r}")
    return value


def parse_tax_profile(data: dict[str, Any], checksum: str = "") -> TaxProfile:
    """
    Parse a ``TaxProfile`` from a dict.

    Preconditions:
        - ``data`` contains ``name``, ``jurisdiction`` and ``vat.standard_rate``.
    Postconditions:
        - Returns a fully populated frozen ``TaxProfile``.
    Raises:
        InvalidTaxProfileError: on missing keys, wrongly shaped sections
            or invalid values.
    """
    name = str(data.get("name") or "<unnamed>")
    missing = [key for key in ("name", "jurisdiction", "vat") if key not in data]
    if missing:
        raise InvalidTaxProfileError(name, f"missing keys: {', '.join(missing)}")

    vat = _section(data, "vat", name)
    if "standard_rate" not in vat:
        raise InvalidTaxProfileError(name, "missing key: vat.standard_rate")
    withholding = _section(data, "withholding", name)
    detector = _section(data, "detector", name)

    raw_bands = detector.get("bands")
    bands = (
        tuple(parse_band(raw, name) for raw in _list(raw_bands, name, "detector.bands"))
        if raw_bands is not None
        else DEFAULT_BANDS
    )
    if not bands:
        raise InvalidTaxProfileError(name, "detector.bands must not be empty")

    reduced = _list(vat.get("reduced_rates", []), name, "vat.reduced_rates")

    return TaxProfile(
        name=name,
        jurisdiction=str(data["jurisdiction"]),
        vat_rate=_rate(vat["standard_rate"], name, "vat.standard_rate"),
        withholding_rate=_rate(withholding.get("rate", 0), name, "withholding.rate"),
        reduced_vat_rates=tuple(_rate(r, name, "vat.reduced_rates") for r in reduced),
        detector_bands=bands,
        description=str(data.get("description", "")),
        checksum=checksum,
    )


def load_tax_profile(path: Path) -> TaxProfile:
    """Load and parse one tax profile file."""
    data = load_yaml_file(path)
    if not isinstance(data, dict):
        raise InvalidTaxProfileError(path.stem, "document must be a mapping")
    return parse_tax_profile(data, checksum=compute_checksum(data))
