"""Exception types raised by the rate comparison engine."""

from __future__ import annotations


class RateCompareError(Exception):
    """Base class for all rate_compare errors."""


class TariffError(RateCompareError):
    """Raised when rate configuration is missing or malformed."""


class InvalidUsageInput(RateCompareError):
    """Raised when usage readings cannot be aggregated."""


class UsageSourceError(RateCompareError):
    """Raised when the usage source cannot be read at all."""


__all__ = [
    "InvalidUsageInput",
    "RateCompareError",
    "TariffError",
    "UsageSourceError",
]
