"""
Tests for tax profile loading.

Covers:
- The shipped profiles and their defaults
- Validation errors for malformed profiles
- Checksum stability and the FISCAL_CONFIG_TRACE audit record
- Profile bands driving the withholding detector
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from fiscal_config import DEFAULT_PROFILE, available_profiles, get_tax_profile
from fiscal_config.loader import compute_checksum, parse_band, parse_tax_profile
from fiscal_engines.decomposition import compute_base_and_taxes
from fiscal_engines.detection import DEFAULT_BANDS, DetectorBand, detect_withholding
from fiscal_kernel.exceptions import ConfigError, InvalidTaxProfileError


def _write_profile(directory: Path, name: str, body: str) -> Path:
    path = directory / f"{name}.yaml"
    path.write_text(body, encoding="utf-8")
    return path


VALID_BODY = """
name: test_profile
jurisdiction: ES
vat:
  standard_rate: 10
withholding:
  rate: 7
"""


class TestShippedProfiles:
    """Profiles bundled with the package."""

    def test_default_profile(self, es_freelance_profile):
        assert es_freelance_profile.name == DEFAULT_PROFILE
        assert es_freelance_profile.jurisdiction == "ES"
        assert es_freelance_profile.vat_rate == Decimal("21")
        assert es_freelance_profile.withholding_rate == Decimal("15")
        assert es_freelance_profile.detector_bands == DEFAULT_BANDS

    def test_vat_rates(self, es_freelance_profile):
        assert es_freelance_profile.vat_rates == (Decimal("21"), Decimal("10"), Decimal("4"))
        assert es_freelance_profile.allows_vat_rate(Decimal("10"))
        assert not es_freelance_profile.allows_vat_rate(Decimal("7"))

    def test_vat_only_profile(self):
        profile = get_tax_profile("es_vat_only")

        assert profile.withholding_rate == Decimal("0")
        assert profile.detector_bands == DEFAULT_BANDS

    def test_available_profiles(self):
        assert available_profiles() == ["es_freelance", "es_vat_only"]

    def test_profile_rates_drive_decomposition(self, es_freelance_profile):
        result = compute_base_and_taxes(
            106, es_freelance_profile.vat_rate, es_freelance_profile.withholding_rate,
        )
        assert result.base == Decimal("100")


class TestProfileLookup:

    def test_unknown_profile(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_tax_profile("nope", config_dir=tmp_path)

    def test_unknown_profile_logged(self, tmp_path, log_capture):
        with pytest.raises(FileNotFoundError):
            get_tax_profile("nope", config_dir=tmp_path)

        [record] = log_capture.find("tax_profile_not_found")
        assert record["profile"] == "nope"

    def test_custom_directory(self, tmp_path):
        _write_profile(tmp_path, "test_profile", VALID_BODY)

        profile = get_tax_profile("test_profile", config_dir=tmp_path)

        assert profile.vat_rate == Decimal("10")
        assert profile.withholding_rate == Decimal("7")
        assert available_profiles(tmp_path) == ["test_profile"]

    def test_config_trace_emitted(self, log_capture):
        profile = get_tax_profile()

        [record] = log_capture.find("FISCAL_CONFIG_TRACE")
        assert record["trace_type"] == "FISCAL_CONFIG_TRACE"
        assert record["profile"] == "es_freelance"
        assert record["vat_rate"] == "21"
        assert record["band_count"] == 4
        assert record["checksum"] == profile.checksum


class TestValidation:
    """Malformed profiles surface as InvalidTaxProfileError."""

    @pytest.mark.parametrize("body,reason", [
        ("name: x\njurisdiction: ES\n", "vat"),
        ("name: x\nvat:\n  standard_rate: 21\n", "jurisdiction"),
        ("name: x\njurisdiction: ES\nvat:\n  reduced_rates: [10]\n", "standard_rate"),
        ("name: x\njurisdiction: ES\nvat:\n  standard_rate: -21\n", "negative"),
        ("name: x\njurisdiction: ES\nvat:\n  standard_rate: lots\n", "not a valid number"),
        (
            "name: x\njurisdiction: ES\nvat:\n  standard_rate: 21\n"
            "detector:\n  bands: []\n",
            "must not be empty",
        ),
        (
            "name: x\njurisdiction: ES\nvat:\n  standard_rate: 21\n"
            "detector:\n  bands:\n    - [10, 5]\n",
            "band",
        ),
        ("- just\n- a list\n", "mapping"),
    ])
    def test_invalid_profile(self, tmp_path, body, reason):
        _write_profile(tmp_path, "broken", body)

        with pytest.raises(InvalidTaxProfileError) as exc_info:
            get_tax_profile("broken", config_dir=tmp_path)
        assert reason in exc_info.value.reason
        assert exc_info.value.code == "INVALID_TAX_PROFILE"

    @pytest.mark.parametrize("section,reason", [
        ("vat: 21\n", "vat must be a mapping"),
        ("vat:\n  standard_rate: 21\nwithholding: 15\n", "withholding must be a mapping"),
        ("vat:\n  standard_rate: 21\ndetector: [5, 10]\n", "detector must be a mapping"),
        ("vat:\n  standard_rate: 21\ndetector:\n  bands: 5\n", "detector.bands must be a list"),
        ("vat:\n  standard_rate: 21\n  reduced_rates: 10\n", "vat.reduced_rates must be a list"),
        ("vat:\n  standard_rate: 21\n  reduced_rates: [10, -4]\n", "negative"),
    ])
    def test_wrongly_shaped_section(self, tmp_path, section, reason):
        _write_profile(tmp_path, "broken", "name: x\njurisdiction: ES\n" + section)

        with pytest.raises(InvalidTaxProfileError) as exc_info:
            get_tax_profile("broken", config_dir=tmp_path)
        assert reason in exc_info.value.reason

    def test_invalid_profile_is_config_error(self):
        with pytest.raises(ConfigError):
            parse_tax_profile({"name": "x"})

    def test_malformed_yaml(self, tmp_path):
        _write_profile(tmp_path, "broken", "name: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            get_tax_profile("broken", config_dir=tmp_path)

    def test_empty_file(self, tmp_path):
        _write_profile(tmp_path, "empty", "")

        with pytest.raises(InvalidTaxProfileError):
            get_tax_profile("empty", config_dir=tmp_path)


class TestBands:

    def test_pair_and_mapping_forms(self):
        assert parse_band([5, 10], "p") == DetectorBand(5, 10)
        assert parse_band({"low": 30, "high": 35}, "p") == DetectorBand(30, 35)

    @pytest.mark.parametrize("raw", [
        [5], "5-10", [5.0, 10], {"low": 5},
        [True, 5], {"low": 5, "high": False},
    ])
    def test_bad_band_shapes(self, raw):
        with pytest.raises(InvalidTaxProfileError):
            parse_band(raw, "p")

    def test_profile_bands_reach_detector(self, tmp_path):
        _write_profile(tmp_path, "narrow", VALID_BODY + "detector:\n  bands:\n    - [20, 25]\n")
        profile = get_tax_profile("narrow", config_dir=tmp_path)

        assert detect_withholding(121, profile.detector_bands).likely
        assert not detect_withholding(106, profile.detector_bands).likely


class TestChecksum:

    def test_deterministic_and_order_independent(self):
        a = compute_checksum({"name": "x", "vat": {"standard_rate": 21}})
        b = compute_checksum({"vat": {"standard_rate": 21}, "name": "x"})
        assert a == b
        assert len(a) == 64

    def test_changes_with_content(self):
        assert compute_checksum({"rate": 21}) != compute_checksum({"rate": 10})

    def test_checksum_not_part_of_equality(self):
        data = {"name": "x", "jurisdiction": "ES", "vat": {"standard_rate": 21}}
        assert parse_tax_profile(data, checksum="a") == parse_tax_profile(data, checksum="b")
