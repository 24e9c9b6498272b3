"""
Bounded random delays drawn from a cryptographically secure source.

Most callers only need ``tarry.delays``; the engine lives in
``tarry.sampling`` and sampling statistics in ``tarry.monte_carlo``.
"""

from . import delays, monte_carlo
from .sampling import *  # noqa: F401,F403
from .sampling import __all__ as _sampling_all

__version__ = "0.1.0"

__all__ = ["delays", "monte_carlo", *_sampling_all]
