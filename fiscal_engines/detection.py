"""
fiscal_engines.detection -- Guess whether a gross total already has withholding deducted.

Responsibility:
    Look only at the trailing digits of a total and report whether they
    fall in the residue bands that a round base produces once 21% VAT is
    added and 15% (or a similar) withholding is subtracted.  Used by
    invoice and expense forms to warn "this total probably has IRPF
    baked in" when the user has typed a total but no rates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The result is ADVISORY.  ``WithholdingSignal`` is a best-effort
      signal, never a tax determination; false positives and negatives
      are expected.
    - Band boundaries are inclusive and fixed:
      [5,10], [30,35], [55,60], [80,85].
    - The residue is the cent part of the total, rounded half-up.  A
      whole amount (cent part ``00``) is judged on the last two digits of
      its whole units instead, so 106 reads as ``06`` and 530 as ``30``.
    - Sign is ignored: a rectifying invoice of -106 reads like 106.

Usage:
    from fiscal_engines.detection import looks_like_withholding_applied

    looks_like_withholding_applied("318.32")  # True
    looks_like_withholding_applied(121)       # False
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from fiscal_engines.tracer import traced_engine
from fiscal_kernel.domain.amounts import Number, to_cents, to_decimal
from fiscal_kernel.logging_config import get_logger

logger = get_logger("engines.detection")


@dataclass(frozen=True)
class DetectorBand:
    """Inclusive range of two-digit residues, e.g. 05-10."""

    low: int
    high: int

    def __post_init__(self) -> None:
        if not (0 <= self.low <= self.high <= 99):
            raise ValueError(
                f"Detector band must satisfy 0 <= low <= high <= 99, "
                f"got {self.low}-{self.high}"
            )

    def contains(self, residue: int) -> bool:
        return self.low <= residue <= self.high

    def __str__(self) -> str:
        return f"{self.low:02d}-{self.high:02d}"


DEFAULT_BANDS: tuple[DetectorBand, ...] = (
    DetectorBand(5, 10),
    DetectorBand(30, 35),
    DetectorBand(55, 60),
    DetectorBand(80, 85),
)


@dataclass(frozen=True)
class WithholdingSignal:
    """
    Advisory verdict of the withholding detector.

    Truthiness follows ``likely`` so the signal can be used directly in
    a condition, but callers surfacing it should present it as a hint.
    """

    likely: bool
    residue: int  # two trailing digits that were examined
    band: DetectorBand | None = None  # band the residue fell in
    from_whole_units: bool = False  # residue taken from units, not cents

    def __bool__(self) -> bool:
        return self.likely


def _residue(total: Number) -> tuple[int, bool]:
    cents = abs(to_cents(to_decimal(total, "total")))
    residue = cents % 100
    if residue == 0:
        return (cents // 100) % 100, True
    return residue, False


@traced_engine("detection.withholding", "1.0", fingerprint_fields=("total",))
def detect_withholding(
    total: Number,
    bands: Sequence[DetectorBand] = DEFAULT_BANDS,
) -> WithholdingSignal:
    """
    Inspect a gross total for the residue pattern of VAT plus withholding.

    Args:
        total: Gross amount as charged or paid.
        bands: Residue bands that indicate withholding; defaults to the
            21% VAT / 15% IRPF pattern.

    Returns:
        WithholdingSignal (advisory).
    """
    residue, from_units = _residue(total)
    band = next((b for b in bands if b.contains(residue)), None)

    signal = WithholdingSignal(
        likely=band is not None,
        residue=residue,
        band=band,
        from_whole_units=from_units,
    )
    logger.debug("withholding_detection_completed", extra={
        "residue": residue,
        "from_whole_units": from_units,
        "band": str(band) if band else None,
        "likely": signal.likely,
    })
    return signal


def looks_like_withholding_applied(total: Number) -> bool:
    """True if ``total`` probably has a withholding deducted (advisory)."""
    return detect_withholding(total).likely
