"""
fiscal_engines.decomposition -- Reconstruct base, VAT and withholding of a line item.

Responsibility:
    Invert the invoice arithmetic ``total = base + VAT - withholding``:
    recover the taxable base from a gross total and either the known tax
    amounts or the tax rates, and run the same arithmetic forwards for
    invoice forms.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fiscal_kernel.  Rates are supplied by the caller
    (usually from a ``fiscal_config`` tax profile); no tax tables here.

Invariants enforced:
    - Decimal-only arithmetic; inputs coerced by ``fiscal_kernel.domain``.
    - ``compute_base`` applies no rounding: cent-exact inputs give a
      cent-exact base.
    - ``compute_base_and_taxes`` rounds the base to cents FIRST and
      derives the tax amounts from the rounded base, each rounded
      independently (ROUND_HALF_UP).  ``base + vat - withholding`` may
      differ from the input total by at most one cent when withholding
      applies; without withholding it is exact.
    - Identical inputs produce identical outputs; no caches, no state.

Failure modes:
    - NonFiniteAmountError / InvalidAmountError for NaN, Infinity or
      non-numeric input.
    - NegativeRateError for a negative VAT or withholding rate.
    - DegenerateRateCombinationError when ``vat_rate - withholding_rate``
      is exactly -100 (zero divisor).
    - Negative totals are accepted (rectifying invoices).

Usage:
    from fiscal_engines.decomposition import compute_base_and_taxes

    result = compute_base_and_taxes("106.00", 21, 15)
    result.base                # Decimal("100.00")
    result.vat_amount          # Decimal("21.00")
    result.withholding_amount  # Decimal("15.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fiscal_engines.tracer import traced_engine
from fiscal_kernel.domain.amounts import (
    HUNDRED,
    ZERO,
    Number,
    rate_factor,
    round_cents,
    to_decimal,
    to_rate,
)
from fiscal_kernel.exceptions import (
    DegenerateRateCombinationError,
    NegativeRateError,
)
from fiscal_kernel.logging_config import get_logger

logger = get_logger("engines.decomposition")


@dataclass(frozen=True)
class TaxDecomposition:
    """
    Base, VAT and withholding of one line item.

    Immutable value object.  Amounts are cent-rounded Decimals; rates are
    the percentages the amounts were derived from (zero when unknown).
    """

    base: Decimal
    vat_amount: Decimal
    withholding_amount: Decimal
    vat_rate: Decimal = ZERO
    withholding_rate: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        """Gross total recomposed from the parts."""
        return self.base + self.vat_amount - self.withholding_amount

    @property
    def has_withholding(self) -> bool:
        return self.withholding_amount != ZERO

    def drift_from(self, total: Number) -> Decimal:
        """Recomposed total minus ``total``; zero or one cent in practice."""
        return self.total - to_decimal(total, "total")


def _coerce_rates(vat_rate: Number, withholding_rate: Number) -> tuple[Decimal, Decimal]:
    try:
        vat = to_rate(vat_rate, "vat_rate")
        withholding = to_rate(withholding_rate, "withholding_rate")
    except NegativeRateError as e:
        logger.error("tax_rate_rejected", extra={
            "code": e.code,
            "field": e.field,
            "rate": e.rate,
        })
        raise
    return vat, withholding


def _check_invertible(vat: Decimal, withholding: Decimal) -> None:
    # 1 + v/100 - w/100 == 0 lies outside any real tax regime
    if vat - withholding == -HUNDRED:
        logger.error("tax_rate_combination_degenerate", extra={
            "code": DegenerateRateCombinationError.code,
            "vat_rate": str(vat),
            "withholding_rate": str(withholding),
        })
        raise DegenerateRateCombinationError(str(vat), str(withholding))


@traced_engine(
    "decomposition.amounts", "1.0",
    fingerprint_fields=("total", "vat_amount", "withholding_amount"),
)
def compute_base(
    total: Number,
    vat_amount: Number,
    withholding_amount: Number = 0,
) -> Decimal:
    """
    Taxable base from a gross total and already-known tax amounts.

    ``base = total - vat_amount + withholding_amount``.  Exact; no rounding
    and no sign validation (the formula is linear).

    Args:
        total: Gross amount (VAT included, withholding deducted).
        vat_amount: VAT in currency units.
        withholding_amount: Withholding in currency units, as a positive figure.

    Returns:
        The taxable base.
    """
    total_d = to_decimal(total, "total")
    vat_d = to_decimal(vat_amount, "vat_amount")
    withholding_d = to_decimal(withholding_amount, "withholding_amount")

    base = total_d - vat_d + withholding_d

    logger.debug("base_from_amounts_computed", extra={
        "total": str(total_d),
        "vat_amount": str(vat_d),
        "withholding_amount": str(withholding_d),
        "base": str(base),
    })
    return base


@traced_engine(
    "decomposition.rates", "1.0",
    fingerprint_fields=("total", "vat_rate", "withholding_rate"),
)
def compute_base_and_taxes(
    total: Number,
    vat_rate: Number,
    withholding_rate: Number = 0,
) -> TaxDecomposition:
    """
    Base, VAT amount and withholding amount from a gross total and rates.

    Without withholding this is the plain VAT inversion
    ``base = total / (1 + v/100)`` and the VAT is whatever remains of the
    total.  With withholding, both taxes are computed on the base, so
    ``total = base * (1 + v/100 - w/100)`` and the base is the total
    divided by that factor; the tax amounts are then taken from the
    cent-rounded base.

    Args:
        total: Gross amount.
        vat_rate: VAT percentage (e.g. 21).
        withholding_rate: Withholding percentage (e.g. 15); 0 for none.

    Returns:
        TaxDecomposition with every amount rounded to cents.

    Raises:
        NegativeRateError: If either rate is negative.
        DegenerateRateCombinationError: If vat_rate - withholding_rate == -100.
    """
    total_d = to_decimal(total, "total")
    vat, withholding = _coerce_rates(vat_rate, withholding_rate)
    _check_invertible(vat, withholding)
    vat_f = rate_factor(vat)
    withholding_f = rate_factor(withholding)

    logger.debug("base_from_rates_started", extra={
        "total": str(total_d),
        "vat_rate": str(vat),
        "withholding_rate": str(withholding),
    })

    if withholding == ZERO:
        base = round_cents(total_d / (1 + vat_f))
        vat_amount = round_cents(total_d - base)
        withholding_amount = round_cents(ZERO)
    else:
        base = round_cents(total_d / (1 + vat_f - withholding_f))
        vat_amount = round_cents(base * vat_f)
        withholding_amount = round_cents(base * withholding_f)

    result = TaxDecomposition(
        base=base,
        vat_amount=vat_amount,
        withholding_amount=withholding_amount,
        vat_rate=vat,
        withholding_rate=withholding,
    )

    logger.info("base_from_rates_completed", extra={
        "total": str(total_d),
        "base": str(base),
        "vat_amount": str(vat_amount),
        "withholding_amount": str(withholding_amount),
        "drift": str(result.total - total_d),
    })
    return result


@traced_engine(
    "decomposition.forward", "1.0",
    fingerprint_fields=("base", "vat_rate", "withholding_rate"),
)
def compute_totals(
    base: Number,
    vat_rate: Number,
    withholding_rate: Number = 0,
) -> TaxDecomposition:
    """
    Forward calculation: taxes and total from a taxable base.

    The base is rounded to cents, then VAT and withholding are each taken
    from it and rounded; ``result.total`` is the amount to invoice.
    """
    base_d = round_cents(to_decimal(base, "base"))
    vat, withholding = _coerce_rates(vat_rate, withholding_rate)

    result = TaxDecomposition(
        base=base_d,
        vat_amount=round_cents(base_d * rate_factor(vat)),
        withholding_amount=round_cents(base_d * rate_factor(withholding)),
        vat_rate=vat,
        withholding_rate=withholding,
    )

    logger.debug("totals_from_base_computed", extra={
        "base": str(base_d),
        "vat_amount": str(result.vat_amount),
        "withholding_amount": str(result.withholding_amount),
        "total": str(result.total),
    })
    return result
