"""
Amounts -- Decimal coercion and cent rounding for the fiscal engines.

Responsibility:
    Turn caller-supplied figures (Decimal, int, str, float) into finite
    ``Decimal`` values and round them to cents with a single, shared
    policy.  Every engine goes through these helpers, so the rounding
    rule lives in exactly one place.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by fiscal_engines and fiscal_config.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str`` so
      ``93.17`` becomes ``Decimal("93.17")``, never its binary expansion.
    - Rounding is ROUND_HALF_UP to the cent (``0.01``).
    - Results are always finite; NaN and Infinity are rejected.
    - Rates are percentages (``21`` means 21%) and never negative.

Failure modes:
    - InvalidAmountError for values that are not numbers (including bool).
    - NonFiniteAmountError for NaN / Infinity.
    - NegativeRateError from ``to_rate`` for rates below zero.
"""

from __future__ import annotations

from decimal import (
    ROUND_HALF_UP,
    Context,
    Decimal,
    InvalidOperation,
    getcontext,
    localcontext,
)

from fiscal_kernel.exceptions import (
    InvalidAmountError,
    NegativeRateError,
    NonFiniteAmountError,
)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")

Number = Decimal | int | float | str


def to_decimal(value: Number, field: str = "amount") -> Decimal:
    """
    Coerce a caller-supplied figure to a finite Decimal.

    Preconditions:
        - ``value`` is a Decimal, int, float or numeric string.
    Postconditions:
        - Returns a finite Decimal; no rounding is applied.

    Raises:
        InvalidAmountError: value is not numeric (bool counts as non-numeric).
        NonFiniteAmountError: value is NaN or infinite.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(field, repr(value))
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidAmountError(field, str(value)) from e
    else:
        raise InvalidAmountError(field, repr(value))

    if not result.is_finite():
        raise NonFiniteAmountError(field, str(result))
    return result


def to_rate(value: Number, field: str = "rate") -> Decimal:
    """Coerce a percentage rate; rejects negatives."""
    rate = to_decimal(value, field)
    if rate < ZERO:
        raise NegativeRateError(field, str(rate))
    return rate


def _cent_context(value: Decimal) -> Context:
    # quantize fails once the cent-resolution coefficient outgrows the
    # context precision, so widen it to fit the integer part plus cents
    ctx = getcontext().copy()
    ctx.prec = max(ctx.prec, value.adjusted() + 4)
    return ctx


def round_cents(value: Decimal) -> Decimal:
    """Round to the cent, half away from zero.

    Works for any finite magnitude; the default 28-digit context is
    widened locally when the amount needs more digits.

    Raises:
        InvalidAmountError: value cannot be represented at cent resolution.
    """
    with localcontext(_cent_context(value)):
        try:
            return value.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation as e:
            raise InvalidAmountError("amount", str(value)) from e


def rate_factor(rate: Decimal) -> Decimal:
    """Percentage to fraction: ``21`` -> ``0.21``."""
    return rate / HUNDRED


def to_cents(value: Decimal) -> int:
    """Whole number of cents in ``value`` after cent rounding."""
    cents = round_cents(value)
    with localcontext(_cent_context(cents)):
        return int(cents.scaleb(2))
