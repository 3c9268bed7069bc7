"""
fiscal_config -- single public entrypoint for tax profile configuration.

Responsibility:
    Provides the way to obtain a tax profile at runtime through
    ``get_tax_profile()``.  Engines never read configuration; callers
    fetch a profile here and pass its rates and detector bands to the
    engines as parameters.

Architecture position:
    Configuration -- YAML-driven, sits above ``fiscal_kernel`` and
    ``fiscal_engines`` (it reuses the engine's ``DetectorBand`` type).
    Engines MUST NEVER import from ``fiscal_config``.

Failure modes:
    - ``FileNotFoundError`` -- no profile file with the requested name.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``InvalidTaxProfileError`` -- profile failed validation.

Audit relevance:
    Every successful ``get_tax_profile()`` call emits a
    ``FISCAL_CONFIG_TRACE`` log entry with the profile name and checksum,
    tying decompositions back to the exact rates that produced them.
"""

from __future__ import annotations

from pathlib import Path

from fiscal_config.loader import load_tax_profile
from fiscal_config.schema import TaxProfile
from fiscal_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "profiles"

DEFAULT_PROFILE = "es_freelance"

__all__ = [
    "DEFAULT_PROFILE",
    "TaxProfile",
    "available_profiles",
    "get_tax_profile",
    "load_tax_profile",
]


def available_profiles(config_dir: Path | None = None) -> list[str]:
    """Names of the profiles in ``config_dir`` (sorted)."""
    profiles_dir = config_dir or _DEFAULT_CONFIG_DIR
    return sorted(p.stem for p in profiles_dir.glob("*.yaml"))


def get_tax_profile(
    name: str = DEFAULT_PROFILE,
    config_dir: Path | None = None,
) -> TaxProfile:
    """The runtime configuration entrypoint.

    Args:
        name: Profile name; the file ``<name>.yaml`` is loaded.
        config_dir: Override path to the profiles directory.
            Defaults to fiscal_config/profiles/.

    Returns:
        The parsed, validated TaxProfile.

    Raises:
        FileNotFoundError: If no profile file matches ``name``.
        InvalidTaxProfileError: If the profile fails validation.
    """
    profiles_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = profiles_dir / f"{name}.yaml"
    if not path.is_file():
        _logger.error("tax_profile_not_found", extra={
            "profile": name,
            "config_dir": str(profiles_dir),
        })
        raise FileNotFoundError(f"No tax profile '{name}' in {profiles_dir}")

    profile = load_tax_profile(path)

    _logger.info("FISCAL_CONFIG_TRACE", extra={
        "trace_type": "FISCAL_CONFIG_TRACE",
        "profile": profile.name,
        "jurisdiction": profile.jurisdiction,
        "vat_rate": str(profile.vat_rate),
        "withholding_rate": str(profile.withholding_rate),
        "band_count": len(profile.detector_bands),
        "checksum": profile.checksum,
    })
    return profile
