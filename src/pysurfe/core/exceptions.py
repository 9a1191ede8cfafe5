"""Custom exceptions for pysurfe package."""

from __future__ import annotations


class PySurfeError(Exception):
    """Base exception for all pysurfe errors."""

    pass


class ConstraintError(PySurfeError):
    """Error related to constraint data."""

    pass


class KernelError(PySurfeError):
    """Error raised when a basis function cannot be constructed."""

    pass


class SolverError(PySurfeError):
    """Error raised when the interpolation system cannot be solved."""

    pass


class ConfigurationError(PySurfeError):
    """Error raised when a feature is requested without its supporting data."""

    pass


class ValidationError(PySurfeError):
    """Error raised when input validation fails."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []
