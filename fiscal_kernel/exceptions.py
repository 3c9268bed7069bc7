"""
Typed Exception Hierarchy for the fiscal decomposition engine.

Every error is a typed class with a machine-readable ``code`` class
attribute and structured attributes, so callers catch by type and read
fields instead of parsing messages:

    try:
        result = compute_base_and_taxes(total, vat_rate, withholding_rate)
    except NegativeRateError as e:
        form_errors[e.field] = e.code
    except RateError as e:
        log.warning("rate_rejected", extra={"code": e.code})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FiscalError (base)
    |
    +-- AmountError
    |   +-- NonFiniteAmountError
    |   +-- InvalidAmountError
    |
    +-- RateError
    |   +-- NegativeRateError
    |   +-- DegenerateRateCombinationError
    |
    +-- ConfigError
        +-- InvalidTaxProfileError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                         | When Raised
-----------|------------------------------|--------------------------------------
Amount     | NON_FINITE_AMOUNT            | NaN or Infinity supplied
           | INVALID_AMOUNT               | Value is not a number (or is a bool)
-----------|------------------------------|--------------------------------------
Rate       | NEGATIVE_RATE                | VAT or withholding rate below zero
           | DEGENERATE_RATE_COMBINATION  | vat_rate - withholding_rate == -100
-----------|------------------------------|--------------------------------------
Config     | INVALID_TAX_PROFILE          | Tax profile fails validation

Negative totals are NOT an error: rectifying invoices carry negative
amounts and the arithmetic is linear.
"""


class FiscalError(Exception):
    """
    Base exception for all fiscal engine errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "FISCAL_ERROR"


# Amount-related exceptions


class AmountError(FiscalError):
    """Base exception for amount coercion errors."""

    code: str = "AMOUNT_ERROR"


class NonFiniteAmountError(AmountError):
    """NaN or Infinity supplied where a finite amount is required."""

    code: str = "NON_FINITE_AMOUNT"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a finite number, got {value}")


class InvalidAmountError(AmountError):
    """Value cannot be interpreted as a decimal number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"{field} is not a valid number: {value!r}")


# Rate-related exceptions


class RateError(FiscalError):
    """Base exception for tax rate errors."""

    code: str = "RATE_ERROR"


class NegativeRateError(RateError):
    """A VAT or withholding percentage below zero."""

    code: str = "NEGATIVE_RATE"

    def __init__(self, field: str, rate: str):
        self.field = field
        self.rate = rate
        super().__init__(f"{field} cannot be negative: {rate}")


class DegenerateRateCombinationError(RateError):
    """
    Rates whose combined factor is zero.

    ``1 + vat_rate/100 - withholding_rate/100`` is the divisor of the
    rate-based inversion; it vanishes when the withholding exceeds the VAT
    by exactly 100 points.
    """

    code: str = "DEGENERATE_RATE_COMBINATION"

    def __init__(self, vat_rate: str, withholding_rate: str):
        self.vat_rate = vat_rate
        self.withholding_rate = withholding_rate
        super().__init__(
            f"VAT {vat_rate}% with withholding {withholding_rate}% "
            f"leaves no taxable base"
        )


# Configuration exceptions


class ConfigError(FiscalError):
    """Base exception for tax profile configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidTaxProfileError(ConfigError):
    """Tax profile failed validation."""

    code: str = "INVALID_TAX_PROFILE"

    def __init__(self, profile: str, reason: str):
        self.profile = profile
        self.reason = reason
        super().__init__(f"Invalid tax profile '{profile}': {reason}")
