"""
Eigenvalue Solver Result Types

Standardized result containers, computation status and error types for the
eigenvalue computations.
"""

from enum import Enum, auto, unique
from typing import Optional, NamedTuple

import numpy as np
from numpy.typing import NDArray

# ---------------------------------------------------------------------------------
#! Status
# ---------------------------------------------------------------------------------

@unique
class CompInfo(Enum):
    """
    Status of an iterative eigen computation.
    """
    SUCCESSFUL      = auto()    # all requested eigenvalues converged
    NOT_COMPUTED    = auto()    # compute() has not been called yet
    NOT_CONVERGING  = auto()    # iteration budget exhausted before convergence
    NUMERICAL_ISSUE = auto()    # a dense kernel failed

    def __str__(self):
        return self.name.replace('_', ' ').lower()

# ---------------------------------------------------------------------------------
#! Errors
# ---------------------------------------------------------------------------------

class EigenErrorMsg(Enum):
    '''
    Enumeration class for eigensolver error messages.
    '''
    NOT_SQUARE          = 201
    NOT_COMPUTED        = 202
    NOT_INITIALIZED     = 203
    SCHUR_FAILED        = 204
    INVALID_NEV         = 205
    INVALID_NCV         = 206
    ZERO_RESIDUAL       = 207
    DIM_MISMATCH        = 208
    INVALID_RULE        = 209
    FACTORIZATION_STATE = 210
    INVALID_DTYPE       = 211
    SINGULAR_SHIFT      = 212

    def __str__(self):
        return self.name.replace('_', ' ').title()

    def __repr__(self):
        return f"<{self.__class__.__name__}.{self.name}: '{str(self)}'>"

class EigenSolverError(Exception):
    '''
    Base class for exceptions raised by the eigensolvers.
    '''
    def __init__(self, code: EigenErrorMsg, message: Optional[str] = None):
        self.code       = code
        self.message    = message if message else str(code)
        super().__init__(self.message)

    def __str__(self):
        return f"[EigenSolverError {self.code.name} ({self.code.value})]: {self.message}"

    def __repr__(self):
        return self.__str__()

class EigenArgumentError(EigenSolverError, ValueError):
    '''
    Invalid argument: malformed nev/ncv, non-square input, zero starting vector.
    '''

class HessenbergLogicError(EigenSolverError, RuntimeError):
    '''
    Results were queried before they were computed.
    '''

class HessenbergEigenError(EigenSolverError, RuntimeError):
    '''
    The dense Schur reduction did not converge.
    '''

# ---------------------------------------------------------------------------------
#! Solver marker
# ---------------------------------------------------------------------------------

class EigenSolver:
    """
    Marker class for eigenvalue solver types.
    """

    @staticmethod
    def is_dense_solver() -> bool:
        """Indicate if the solver is for dense matrices."""
        return False

    @staticmethod
    def is_sparse_solver() -> bool:
        """Indicate if the solver is for sparse matrices."""
        return False

    @staticmethod
    def is_iterative_solver() -> bool:
        """Indicate if the solver is iterative."""
        return False

    # ----------------------------------------------------------------------------

    def solve(self, *args, **kwargs) -> 'EigenResult':
        """
        Solve the eigenvalue problem.

        Returns:
            EigenResult: Standardized result container.
        """
        raise NotImplementedError("This method should be implemented by subclasses.")

# ---------------------------------------------------------------------------------

class EigenResult(NamedTuple):
    r"""
    Standardized result from eigenvalue solvers.

    Attributes:
        eigenvalues:
            Converged eigenvalues, ordered by the requested sort rule
        eigenvectors:
            Corresponding eigenvectors as columns
        subspacevectors:
            Krylov basis used in the last restart (for iterative methods)
        iterations:
            Number of outer (restart) iterations performed
        converged:
            Whether all requested eigenvalues converged
        residual_norms:
            Residual norms ||A v - \lambda v|| for each eigenpair (optional)
        operations:
            Number of operator applications (optional)
    """
    eigenvalues     : NDArray
    eigenvectors    : NDArray
    subspacevectors : Optional[NDArray] = None
    iterations      : Optional[int]     = None
    converged       : bool              = True
    residual_norms  : Optional[NDArray] = None
    operations      : Optional[int]     = None

    def __repr__(self):
        n_eigs      = len(self.eigenvalues) if self.eigenvalues is not None else 0
        iter_str    = f"{self.iterations}" if self.iterations is not None else "N/A"
        return (f"EigenResult(n_eigenvalues={n_eigs}, "
                f"converged={self.converged}, iterations={iter_str})")

    def __str__(self):
        return f'converged={self.converged}, iterations={self.iterations}'

    @property
    def max_residual(self) -> float:
        ''' Largest residual norm, NaN when residuals were not computed. '''
        if self.residual_norms is None or len(self.residual_norms) == 0:
            return float('nan')
        return float(np.max(self.residual_norms))

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
