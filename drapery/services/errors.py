"""Calculation errors — all recoverable at the request boundary."""
from __future__ import annotations


class CalculationError(Exception):
    """Base class for every error raised by the calculation services."""


class MissingSelectionError(CalculationError):
    """A product template or heading was not chosen before calculating."""


class InvalidInputError(CalculationError, ValueError):
    """A dimension or width is zero/negative and would break the arithmetic."""


class UnrecognizedGridFormatError(CalculationError):
    """Pricing grid payload matches none of the known shapes."""

    def __init__(self, present_keys: list[str]):
        self.present_keys = present_keys
        keys = ", ".join(present_keys) if present_keys else "none"
        super().__init__(f"Unrecognized pricing grid format (keys present: {keys})")


class LayoutConsistencyError(CalculationError):
    """Derived quantities contradict each other, e.g. a negative offcut."""
