"""
Exception hierarchy for pyMixedSolve.

Fatal conditions raise a subclass of MixedSolveError; non-fatal numerical
conditions are reported with NumericalWarning and attached to the result.
"""

from typing import Optional, Tuple


class MixedSolveError(Exception):
    """Base exception for all pyMixedSolve errors."""
    pass


class ValidationError(MixedSolveError, ValueError):
    """
    Input validation failed.

    Raised when user-provided matrices or control options fail a
    precondition check before any decomposition is attempted.
    """
    pass


class DimensionMismatchError(ValidationError):
    """
    Shapes of y, X, Z and K are inconsistent.

    Attributes
    ----------
    name : str
        Name of the offending argument
    expected : tuple
        Expected shape (None for a free dimension)
    actual : tuple
        Observed shape
    """

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        expected: Optional[Tuple] = None,
        actual: Optional[Tuple] = None
    ):
        super().__init__(message)
        self.name = name
        self.expected = expected
        self.actual = actual


class RankDeficiencyError(ValidationError):
    """
    Fixed-effect design X is not full column rank.

    Attributes
    ----------
    rank : int
        Numerical rank of X'X
    expected_rank : int
        Number of columns of X
    """

    def __init__(self, message: str, rank: Optional[int] = None,
                 expected_rank: Optional[int] = None):
        super().__init__(message)
        self.rank = rank
        self.expected_rank = expected_rank


class ComputationError(MixedSolveError, RuntimeError):
    """
    A numerical stage of the solver failed.

    Attributes
    ----------
    stage : str
        Pipeline stage that failed ('spectral', 'optimizer', 'finalize')
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class NotPositiveSemiDefiniteError(ComputationError):
    """
    K (or Z K Z') is not positive semi-definite.

    Attributes
    ----------
    min_eigenvalue : float
        Smallest eigenvalue found, if computed
    """

    def __init__(self, message: str, min_eigenvalue: Optional[float] = None):
        super().__init__(message, stage="spectral")
        self.min_eigenvalue = min_eigenvalue


class NumericalWarning(UserWarning):
    """
    Non-fatal numerical issue.

    Issued when the optimal variance ratio sits on a search bound, when a
    variance component is negative from rounding, or when a standard-error
    diagonal is negative.
    """
    pass
