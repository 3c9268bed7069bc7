"""Pure domain helpers shared by the fiscal engines."""

from fiscal_kernel.domain.amounts import (
    CENT,
    HUNDRED,
    ZERO,
    Number,
    rate_factor,
    round_cents,
    to_cents,
    to_decimal,
    to_rate,
)

__all__ = [
    "CENT",
    "HUNDRED",
    "ZERO",
    "Number",
    "rate_factor",
    "round_cents",
    "to_cents",
    "to_decimal",
    "to_rate",
]
