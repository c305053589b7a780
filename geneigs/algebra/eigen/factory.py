"""
Unified Eigenvalue Solver Interface

Provides a factory function to choose the appropriate eigenvalue solver for a
general (non-symmetric) problem: the restarted Arnoldi method, its
shift-and-invert variant, or the ARPACK reference through SciPy.

This module simplifies the selection of eigenvalue solvers by automatically
choosing the most appropriate method based on user requirements.
"""

from typing import Optional, Callable, Literal

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from .result        import EigenResult, EigenArgumentError, EigenErrorMsg
from .arnoldi       import ArnoldiEigensolver, ArnoldiEigensolverScipy
from .shift_invert  import ShiftInvertEigensolver

# ----------------------------------------------------------------------------------------
#! Unified Eigenvalue Solver Factory Function
# ----------------------------------------------------------------------------------------

_METHODS = ('arnoldi', 'shift-invert', 'scipy-eigs', 'auto')

def choose_eigensolver(
        method          : Literal['arnoldi', 'shift-invert', 'scipy-eigs', 'auto'] = 'auto',
        A               : Optional[NDArray]                                         = None,
        matvec          : Optional[Callable[[NDArray], NDArray]]                    = None,
        n               : Optional[int]                                             = None,
        k               : int                                                       = 6,
        which           : Literal['LM', 'SM', 'LR', 'SR', 'LI', 'SI']               = 'LM',
        sigma           : Optional[float]                                           = None,
        **kwargs) -> EigenResult:
    r"""
    Unified interface for the general eigenvalue solvers.

    Parameters:
    -----------
        method: Which solver to use
            - 'arnoldi'         : Implicitly restarted Arnoldi (``ArnoldiEigensolver``)
            - 'shift-invert'    : Eigenvalues nearest to ``sigma`` (``ShiftInvertEigensolver``)
            - 'scipy-eigs'      : ARPACK through scipy.sparse.linalg.eigs
            - 'auto'            : 'shift-invert' when sigma is given and A is explicit,
                                  'arnoldi' otherwise
        A :
            Matrix, sparse matrix or LinearOperator (optional if matvec provided)
        matvec :
            Matrix-vector product function (optional if A provided)
        n :
            Dimension of problem (required if matvec provided without A)
        k :
            Number of eigenvalues to compute
        which:
            Selection rule: 'LM', 'SM', 'LR', 'SR', 'LI', 'SI'
        sigma:
            Real shift for 'shift-invert' (and for ARPACK's shift-invert mode)
        **kwargs: Additional arguments passed to the solver
            - ncv               : int   - Krylov subspace dimension
            - tol               : float - Convergence tolerance
            - max_iter          : int   - Maximum number of restarts
            - sort              : str   - Order of the returned eigenvalues
            - v0                : array - Starting vector
            - seed, logger, verbose

    Returns:
        EigenResult with eigenvalues and eigenvectors

    Examples:
        >>> A = np.random.randn(300, 300)
        >>> result = choose_eigensolver('arnoldi', A, k=5, which='LR')

        >>> # Interior eigenvalues
        >>> result = choose_eigensolver('shift-invert', A, k=4, sigma=0.5)

        >>> # Matrix-free
        >>> result = choose_eigensolver('arnoldi', matvec=lambda x: A @ x, n=300, k=3)
    """

    if A is None and matvec is None:
        raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "Must provide either matrix A or matvec function")
    if A is None and n is None:
        raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "Must provide dimension n when using matvec without A")

    if method == 'auto':
        method = decide_method(explicit=A is not None and (isinstance(A, np.ndarray) or sp.issparse(A)), sigma=sigma)

    v0 = kwargs.pop('v0', None)

    # ----------------------------------------------
    if method == 'arnoldi':
        solver = ArnoldiEigensolver(k=k, which=which, **kwargs)
        return solver.solve(A=A, matvec=matvec, n=n, v0=v0)

    # ----------------------------------------------
    elif method == 'shift-invert':
        if A is None:
            raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "Shift-invert requires explicit matrix A")
        if sigma is None:
            raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "Shift-invert requires a shift sigma")
        solver = ShiftInvertEigensolver(k=k, sigma=sigma, which=which, **kwargs)
        return solver.solve(A, v0=v0)

    # ----------------------------------------------
    elif method == 'scipy-eigs':
        solver = ArnoldiEigensolverScipy(
            k       = k,
            which   = which,
            tol     = kwargs.get('tol', 0.0),
            maxiter = kwargs.get('max_iter', None),
            v0      = v0,
            sigma   = sigma
        )
        return solver.solve(A=A, matvec=matvec, n=n)

    # ----------------------------------------------
    raise EigenArgumentError(EigenErrorMsg.INVALID_RULE, f"Unknown method: {method}. Choose from: {', '.join(repr(m) for m in _METHODS)}")

# --------------------------------------------------

def decide_method(explicit: bool = True, sigma: Optional[float] = None) -> str:
    """
    Decide which eigenvalue method to use.

    Parameters:
    -----------
        explicit:
            Whether the matrix is available as a dense or sparse matrix (needed
            for the LU decomposition of shift-and-invert)
        sigma:
            Requested shift, None for extremal eigenvalues

    Returns:
        'shift-invert' or 'arnoldi'

    Example:
        >>> decide_method(explicit=True, sigma=0.5)
        'shift-invert'
    """
    if sigma is not None and explicit:
        return 'shift-invert'
    return 'arnoldi'

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
