"""
Errors raised by delay configurations and samplers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .options import DelayOptions


class DelayError(Exception):
    """Base class for errors tied to a specific delay configuration.

    Attributes:
        options: The configuration in effect when the error was raised.
    """

    def __init__(self, options: DelayOptions, message: str):
        super().__init__(message)
        self.options = options


class ConfigurationInvalidError(DelayError, ValueError):
    """A configuration violates one of its invariants.

    Raised by ``validate()`` and by sampler construction. Never recovered
    automatically; the caller has to supply a corrected configuration.
    """


class ResamplingExhaustedError(DelayError, RuntimeError):
    """A bounded rejection loop ran out of attempts.

    Feasibility is checked at validation time, so this points at a broken
    invariant elsewhere rather than at bad input.

    Attributes:
        attempts: Number of candidates drawn before giving up.
    """

    def __init__(self, options: DelayOptions, attempts: int, message: str | None = None):
        super().__init__(
            options,
            message
            or f"No in-range value after {attempts} attempts for {options!r}",
        )
        self.attempts = attempts
