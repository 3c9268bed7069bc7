"""
fiscal_engines.resolver -- Decompose a line item from whatever figures it carries.

Responsibility:
    Stored invoices and expenses arrive with an uneven mix of figures: some
    carry the VAT amount, some a declared base, some only a rate, some
    nothing but the total.  ``resolve_line_item`` picks the decomposition
    strategy from what is present and reports which one it used.
    ``classify_additional_taxes`` reads the VAT and withholding rates out
    of an invoice's additional-tax list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Composes fiscal_engines.decomposition and fiscal_engines.detection.

Strategy precedence (first match wins):
    1. AMOUNTS        -- VAT amount known: base = total - VAT + withholding,
                         or (total - VAT) / (1 - w/100) when only the
                         withholding rate is known.
    2. DECLARED_BASE  -- base known: taxes are what separates it from the total.
    3. RATES          -- VAT rate known: rate-based inversion.
    4. DEFAULT_RATE   -- caller's default VAT rate (e.g. from the tax profile).
    5. PASSTHROUGH    -- no VAT figures: the total is taken as VAT-free;
                         a withholding rate, if given, is still taken off.

Invariants enforced:
    - Every amount in the result is rounded to cents.
    - ``withholding_suspected`` is only computed when the caller supplied
      neither a withholding amount nor a withholding rate; it is advisory.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from fiscal_engines.decomposition import (
    TaxDecomposition,
    compute_base,
    compute_base_and_taxes,
)
from fiscal_engines.detection import DEFAULT_BANDS, DetectorBand, detect_withholding
from fiscal_kernel.domain.amounts import (
    ZERO,
    Number,
    rate_factor,
    round_cents,
    to_decimal,
    to_rate,
)
from fiscal_kernel.exceptions import DegenerateRateCombinationError
from fiscal_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.resolver")

VAT_KEYWORDS = ("iva", "vat")
WITHHOLDING_KEYWORDS = ("irpf", "withholding", "retención", "retencion")


class ResolutionMethod(str, Enum):
    """Which figures the decomposition was derived from."""

    AMOUNTS = "amounts"
    DECLARED_BASE = "declared_base"
    RATES = "rates"
    DEFAULT_RATE = "default_rate"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class LineItemResolution:
    """Decomposition of a line item plus how it was obtained."""

    decomposition: TaxDecomposition
    method: ResolutionMethod
    withholding_suspected: bool = False


def _optional_rate(value: Number | None, field: str) -> Decimal:
    return ZERO if value is None else to_rate(value, field)


def _from_amounts(
    total: Number,
    vat_amount: Number,
    withholding_amount: Number | None,
    vat_rate: Number | None,
    withholding_rate: Number | None,
) -> TaxDecomposition:
    vat_r = _optional_rate(vat_rate, "vat_rate")
    withholding_r = _optional_rate(withholding_rate, "withholding_rate")

    if withholding_amount is not None or withholding_r == ZERO:
        withholding = withholding_amount if withholding_amount is not None else 0
        base = round_cents(compute_base(total, vat_amount, withholding))
        withholding_d = round_cents(to_decimal(withholding, "withholding_amount"))
    else:
        # total - vat = base * (1 - w/100)
        remainder = 1 - rate_factor(withholding_r)
        if remainder == ZERO:
            logger.error("tax_rate_combination_degenerate", extra={
                "code": DegenerateRateCombinationError.code,
                "vat_rate": str(vat_r),
                "withholding_rate": str(withholding_r),
            })
            raise DegenerateRateCombinationError(str(vat_r), str(withholding_r))
        net = to_decimal(total, "total") - to_decimal(vat_amount, "vat_amount")
        base = round_cents(net / remainder)
        withholding_d = round_cents(base * rate_factor(withholding_r))

    return TaxDecomposition(
        base=base,
        vat_amount=round_cents(to_decimal(vat_amount, "vat_amount")),
        withholding_amount=withholding_d,
        vat_rate=vat_r,
        withholding_rate=withholding_r,
    )


def _from_declared_base(
    total: Number,
    base: Number,
    withholding_amount: Number | None,
    vat_rate: Number | None,
    withholding_rate: Number | None,
) -> TaxDecomposition:
    total_d = to_decimal(total, "total")
    base_d = round_cents(to_decimal(base, "base"))
    withholding_r = _optional_rate(withholding_rate, "withholding_rate")

    if withholding_amount is not None:
        withholding = round_cents(to_decimal(withholding_amount, "withholding_amount"))
    else:
        withholding = round_cents(base_d * rate_factor(withholding_r))

    # VAT is whatever separates base from total once withholding is put back
    vat_amount = round_cents(total_d - base_d + withholding)

    return TaxDecomposition(
        base=base_d,
        vat_amount=vat_amount,
        withholding_amount=withholding,
        vat_rate=_optional_rate(vat_rate, "vat_rate"),
        withholding_rate=withholding_r,
    )


def _decompose(
    total: Number,
    base: Number | None,
    vat_amount: Number | None,
    withholding_amount: Number | None,
    vat_rate: Number | None,
    withholding_rate: Number | None,
    default_vat_rate: Number | None,
) -> tuple[ResolutionMethod, TaxDecomposition]:
    withholding_r = withholding_rate if withholding_rate is not None else 0

    if vat_amount is not None:
        return ResolutionMethod.AMOUNTS, _from_amounts(
            total, vat_amount, withholding_amount, vat_rate, withholding_rate,
        )
    if base is not None:
        return ResolutionMethod.DECLARED_BASE, _from_declared_base(
            total, base, withholding_amount, vat_rate, withholding_rate,
        )
    if vat_rate is not None:
        return ResolutionMethod.RATES, compute_base_and_taxes(
            total, vat_rate, withholding_r,
        )
    if default_vat_rate is not None:
        return ResolutionMethod.DEFAULT_RATE, compute_base_and_taxes(
            total, default_vat_rate, withholding_r,
        )
    if withholding_rate is not None:
        # no VAT figures: the total carries no VAT, withholding still comes off
        return ResolutionMethod.PASSTHROUGH, compute_base_and_taxes(
            total, 0, withholding_rate,
        )
    return ResolutionMethod.PASSTHROUGH, TaxDecomposition(
        base=round_cents(to_decimal(total, "total")),
        vat_amount=round_cents(ZERO),
        withholding_amount=round_cents(ZERO),
    )


def resolve_line_item(
    total: Number,
    *,
    base: Number | None = None,
    vat_amount: Number | None = None,
    withholding_amount: Number | None = None,
    vat_rate: Number | None = None,
    withholding_rate: Number | None = None,
    default_vat_rate: Number | None = None,
    bands: Sequence[DetectorBand] = DEFAULT_BANDS,
    document_id: str | None = None,
    document_type: str | None = None,
) -> LineItemResolution:
    """
    Decompose a line item using the most direct figures available.

    Args:
        total: Gross amount of the line item.
        base: Declared taxable base, if stored.
        vat_amount: VAT in currency units, if stored.
        withholding_amount: Withholding in currency units, if stored.
        vat_rate: VAT percentage, if known.
        withholding_rate: Withholding percentage, if known.
        default_vat_rate: Rate to assume when nothing else is known.
        bands: Detector bands for ``withholding_suspected``.
        document_id: Invoice or expense number, attached to every log
            record emitted while resolving.
        document_type: ``"invoice"``, ``"expense"``, ...; logged likewise.

    Returns:
        LineItemResolution with the decomposition and the method used.
    """
    with LogContext.bind(document_id=document_id, document_type=document_type):
        method, decomposition = _decompose(
            total, base, vat_amount, withholding_amount,
            vat_rate, withholding_rate, default_vat_rate,
        )

        suspected = False
        if withholding_amount is None and withholding_rate is None:
            suspected = detect_withholding(total, bands).likely

        logger.info("line_item_resolved", extra={
            "method": method.value,
            "base": str(decomposition.base),
            "vat_amount": str(decomposition.vat_amount),
            "withholding_amount": str(decomposition.withholding_amount),
            "withholding_suspected": suspected,
        })

    return LineItemResolution(
        decomposition=decomposition,
        method=method,
        withholding_suspected=suspected,
    )


def classify_additional_taxes(
    taxes: Iterable[Mapping[str, Any] | None],
) -> tuple[Decimal | None, Decimal | None]:
    """
    Extract ``(vat_rate, withholding_rate)`` from an additional-tax list.

    Each entry is a mapping with a ``name`` and a ``rate`` (or ``amount``)
    key, as invoices store them.  Entries flagged ``isPercentage: False``
    are fixed amounts and are skipped.  Withholding is recognised by name
    or by a negative rate and is returned as a positive percentage.  When
    several entries match the same tax, the first one wins.
    """
    vat_rate: Decimal | None = None
    withholding_rate: Decimal | None = None

    for tax in taxes:
        if not tax:
            continue
        if tax.get("isPercentage") is False:
            continue
        raw = tax.get("rate", tax.get("amount"))
        if raw is None:
            continue

        name = str(tax.get("name", "")).lower()
        rate = to_decimal(raw, "rate")

        if rate < ZERO or any(k in name for k in WITHHOLDING_KEYWORDS):
            if withholding_rate is None:
                withholding_rate = abs(rate)
            else:
                logger.warning("additional_tax_duplicate_withholding", extra={
                    "tax_name": name,
                    "rate": str(rate),
                    "kept_rate": str(withholding_rate),
                })
        elif any(k in name for k in VAT_KEYWORDS):
            if vat_rate is None:
                vat_rate = rate
            else:
                logger.warning("additional_tax_duplicate_vat", extra={
                    "tax_name": name,
                    "rate": str(rate),
                    "kept_rate": str(vat_rate),
                })
        else:
            logger.debug("additional_tax_unclassified", extra={
                "tax_name": name,
                "rate": str(rate),
            })

    return vat_rate, withholding_rate
