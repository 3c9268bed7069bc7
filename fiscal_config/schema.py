"""
Tax profile schema.

A ``TaxProfile`` is the human-authored, reviewable description of one
invoicing regime: the default VAT and withholding percentages an
invoice form pre-fills, the reduced VAT rates it offers, and the residue
bands the withholding detector looks for.  YAML files under
``fiscal_config/profiles/`` are parsed into these types by the loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from fiscal_engines.detection import DEFAULT_BANDS, DetectorBand


@dataclass(frozen=True)
class TaxProfile:
    """Default rates and detector settings for one invoicing regime."""

    name: str
    jurisdiction: str
    vat_rate: Decimal  # percentage, e.g. 21
    withholding_rate: Decimal  # percentage, e.g. 15; 0 when not applicable
    reduced_vat_rates: tuple[Decimal, ...] = ()
    detector_bands: tuple[DetectorBand, ...] = DEFAULT_BANDS
    description: str = ""
    checksum: str = field(default="", compare=False)

    @property
    def vat_rates(self) -> tuple[Decimal, ...]:
        """Standard rate first, then reduced rates in declared order."""
        return (self.vat_rate, *self.reduced_vat_rates)

    def allows_vat_rate(self, rate: Decimal) -> bool:
        return rate in self.vat_rates
