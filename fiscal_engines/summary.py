"""
fiscal_engines.summary -- Period tax summary over decomposed invoices and expenses.

Responsibility:
    Add up the decompositions of a period's issued invoices (income) and
    expenses into the figures a quarterly VAT/IRPF return needs: output
    VAT (IVA repercutido), input VAT (IVA soportado), withholdings, the
    VAT to settle and the net result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Input is already-decomposed ``TaxDecomposition`` values; selecting
    which documents belong to the period is the caller's job.

Invariants enforced:
    - Sums of cent-rounded amounts are exact; nothing is re-rounded.
    - ``vat_payable = output_vat - input_vat`` (negative means refundable).
    - ``net_result = income_base - expense_base - withholding_total``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from fiscal_engines.decomposition import TaxDecomposition
from fiscal_engines.tracer import traced_engine
from fiscal_kernel.domain.amounts import ZERO, round_cents
from fiscal_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.summary")

_ZERO_CENTS = round_cents(ZERO)


@dataclass(frozen=True)
class _Totals:
    count: int = 0
    base: Decimal = _ZERO_CENTS
    vat: Decimal = _ZERO_CENTS
    withholding: Decimal = _ZERO_CENTS
    gross: Decimal = _ZERO_CENTS


def _accumulate(items: Iterable[TaxDecomposition]) -> _Totals:
    count = 0
    base = vat = withholding = gross = _ZERO_CENTS
    for item in items:
        count += 1
        base += item.base
        vat += item.vat_amount
        withholding += item.withholding_amount
        gross += item.total
    return _Totals(count, base, vat, withholding, gross)


@dataclass(frozen=True)
class TaxPeriodSummary:
    """
    Tax figures of one reporting period.

    Immutable value object built by ``summarize_period``.
    """

    income_count: int
    income_base: Decimal
    output_vat: Decimal  # IVA repercutido
    income_withholding: Decimal  # withheld by our clients
    income_total: Decimal
    expense_count: int
    expense_base: Decimal
    input_vat: Decimal  # IVA soportado
    expense_withholding: Decimal  # withheld by us from suppliers
    expense_total: Decimal

    @property
    def vat_payable(self) -> Decimal:
        """VAT to settle; negative when input VAT exceeds output VAT."""
        return self.output_vat - self.input_vat

    @property
    def withholding_total(self) -> Decimal:
        return self.income_withholding + self.expense_withholding

    @property
    def net_result(self) -> Decimal:
        """Income base minus expense base minus all withholdings."""
        return self.income_base - self.expense_base - self.withholding_total


@traced_engine("summary.period", "1.0")
def summarize_period(
    income: Iterable[TaxDecomposition],
    expenses: Iterable[TaxDecomposition] = (),
    *,
    period: str | None = None,
) -> TaxPeriodSummary:
    """
    Aggregate decomposed income and expense line items.

    Args:
        income: Decompositions of issued (paid) invoices.
        expenses: Decompositions of expense documents.
        period: Label such as ``"2024-Q2"``, attached to the log records.

    Returns:
        TaxPeriodSummary for the period.
    """
    with LogContext.bind(period=period):
        inc = _accumulate(income)
        exp = _accumulate(expenses)

        summary = TaxPeriodSummary(
            income_count=inc.count,
            income_base=inc.base,
            output_vat=inc.vat,
            income_withholding=inc.withholding,
            income_total=inc.gross,
            expense_count=exp.count,
            expense_base=exp.base,
            input_vat=exp.vat,
            expense_withholding=exp.withholding,
            expense_total=exp.gross,
        )

        logger.info("period_summary_completed", extra={
            "income_count": inc.count,
            "expense_count": exp.count,
            "output_vat": str(summary.output_vat),
            "input_vat": str(summary.input_vat),
            "vat_payable": str(summary.vat_payable),
            "withholding_total": str(summary.withholding_total),
            "net_result": str(summary.net_result),
        })
    return summary
