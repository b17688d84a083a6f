"""Multiple testing correction for per-feature significance."""

from .base import benjamini_hochberg_correction

__all__ = ["benjamini_hochberg_correction"]
