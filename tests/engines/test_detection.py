"""
Tests for the withholding detector.

Covers:
- Known totals with and without withholding
- Inclusive band boundaries
- Whole-unit residues, sign, half-up cent rounding
- Custom bands and the advisory signal object
"""

from decimal import Decimal

import pytest

from fiscal_engines.detection import (
    DEFAULT_BANDS,
    DetectorBand,
    WithholdingSignal,
    detect_withholding,
    looks_like_withholding_applied,
)
from fiscal_kernel.exceptions import NonFiniteAmountError


class TestKnownTotals:
    """Totals seen on real invoices."""

    @pytest.mark.parametrize("total", [106, 530, 1060, 318.32])
    def test_withholding_pattern_detected(self, total):
        assert looks_like_withholding_applied(total) is True

    @pytest.mark.parametrize("total", [121, 100, 150, 212.45])
    def test_plain_totals_not_flagged(self, total):
        assert looks_like_withholding_applied(total) is False


class TestBandBoundaries:
    """Bands are inclusive at both ends."""

    @pytest.mark.parametrize("cents", ["05", "10", "30", "35", "55", "60", "80", "85"])
    def test_edges_inside(self, cents):
        assert looks_like_withholding_applied(f"12.{cents}")

    @pytest.mark.parametrize("cents", ["04", "11", "29", "36", "54", "61", "79", "86"])
    def test_edges_outside(self, cents):
        assert not looks_like_withholding_applied(f"12.{cents}")


class TestResidue:
    """How the two trailing digits are chosen."""

    def test_cent_residue(self):
        signal = detect_withholding("318.32")

        assert signal.residue == 32
        assert signal.from_whole_units is False
        assert signal.band == DetectorBand(30, 35)

    def test_whole_amount_uses_units(self):
        signal = detect_withholding(106)

        assert signal.residue == 6
        assert signal.from_whole_units is True
        assert signal.band == DetectorBand(5, 10)

    def test_whole_amount_ending_in_hundreds(self):
        signal = detect_withholding(100)

        assert signal.residue == 0
        assert signal.likely is False

    def test_trailing_zero_decimals_count_as_whole(self):
        assert detect_withholding(Decimal("530.00")).from_whole_units

    def test_negative_total_reads_like_positive(self):
        """A rectifying invoice of -106 keeps the pattern of 106."""
        assert looks_like_withholding_applied(-106)
        assert looks_like_withholding_applied("-318.32")

    def test_sub_cent_rounds_half_up(self):
        assert detect_withholding("0.045").residue == 5
        assert detect_withholding("0.0449").residue == 4

    def test_amounts_beyond_default_precision(self):
        assert looks_like_withholding_applied(1e30) is False
        assert detect_withholding("123456789012345678901234567890.32").residue == 32
        assert detect_withholding("123456789012345678901234567806").residue == 6

    def test_non_finite_rejected(self):
        with pytest.raises(NonFiniteAmountError):
            looks_like_withholding_applied(float("inf"))


class TestCustomBands:
    """Bands come from the caller, typically a tax profile."""

    def test_custom_band(self):
        bands = (DetectorBand(20, 25),)

        assert detect_withholding(121, bands).likely
        assert not detect_withholding(106, bands).likely

    def test_no_bands_never_flags(self):
        assert not detect_withholding(106, ()).likely

    def test_default_bands(self):
        assert [str(b) for b in DEFAULT_BANDS] == ["05-10", "30-35", "55-60", "80-85"]

    @pytest.mark.parametrize("low,high", [(-1, 5), (10, 5), (90, 100)])
    def test_invalid_band_rejected(self, low, high):
        with pytest.raises(ValueError):
            DetectorBand(low, high)


class TestWithholdingSignal:
    """The advisory result object."""

    def test_truthiness_follows_likely(self):
        assert bool(detect_withholding(106)) is True
        assert bool(detect_withholding(121)) is False

    def test_no_band_when_not_likely(self):
        signal = detect_withholding(121)

        assert signal == WithholdingSignal(likely=False, residue=21, band=None, from_whole_units=True)

    def test_signal_matches_boolean_helper(self):
        for total in (106, 121, "318.32", "212.45"):
            assert detect_withholding(total).likely == looks_like_withholding_applied(total)

    def test_detection_logged(self, log_capture):
        detect_withholding("318.32")

        [record] = log_capture.find("withholding_detection_completed")
        assert record["residue"] == 32
        assert record["band"] == "30-35"
        assert record["likely"] is True
