"""
Module: fiscal_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure tax
    decomposition engines.  This is the canonical import surface for
    invoice/expense forms, dashboards and report generators.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fiscal_kernel (and sibling engine modules).
    MUST NOT read configuration; rates and detector bands are parameters.

Invariants enforced:
    - Decimal-only arithmetic; floats are accepted at the boundary and
      converted through ``str``.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from fiscal_engines import (
        compute_base,
        compute_base_and_taxes,
        looks_like_withholding_applied,
    )

    compute_base(121, 21)                       # Decimal("100")
    compute_base_and_taxes(106, 21, 15).base    # Decimal("100.00")
    looks_like_withholding_applied("318.32")    # True (advisory)
"""

from fiscal_engines.decomposition import (
    TaxDecomposition,
    compute_base,
    compute_base_and_taxes,
    compute_totals,
)
from fiscal_engines.detection import (
    DEFAULT_BANDS,
    DetectorBand,
    WithholdingSignal,
    detect_withholding,
    looks_like_withholding_applied,
)
from fiscal_engines.resolver import (
    LineItemResolution,
    ResolutionMethod,
    classify_additional_taxes,
    resolve_line_item,
)
from fiscal_engines.summary import TaxPeriodSummary, summarize_period
from fiscal_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # decomposition
    "TaxDecomposition",
    "compute_base",
    "compute_base_and_taxes",
    "compute_totals",
    # detection
    "DEFAULT_BANDS",
    "DetectorBand",
    "WithholdingSignal",
    "detect_withholding",
    "looks_like_withholding_applied",
    # resolver
    "LineItemResolution",
    "ResolutionMethod",
    "classify_additional_taxes",
    "resolve_line_item",
    # summary
    "TaxPeriodSummary",
    "summarize_period",
    # tracer
    "compute_input_fingerprint",
    "traced_engine",
]
