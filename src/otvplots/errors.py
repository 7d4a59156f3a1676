from __future__ import annotations


class InvalidInput(ValueError):
    """Raised when a caller passes rows or options this module cannot aggregate."""


class DegenerateInput(ValueError):
    """Raised when the input has no categories or no time periods to report on."""
