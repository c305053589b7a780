r"""
Shift-and-invert mode

Eigenvalues of A closest to a real shift sigma are the largest (in magnitude)
eigenvalues nu of the operator (A - sigma I)^{-1}, with

    lambda = 1 / nu + sigma,

and the same eigenvectors. ``GenEigsRealShiftSolver`` runs the restarted
Arnoldi iteration on the shift-solve operator and maps the Ritz values back
before the final sort.

Example:
    >>> solver = GenEigsRealShiftSolver(A, nev=3, ncv=10, sigma=0.5)
    >>> solver.init()
    >>> solver.compute(selection='LM')     # nu of largest magnitude = lambda nearest 0.5
    >>> solver.eigenvalues()               # eigenvalues of A
"""

from typing import Optional, Literal, Union, Tuple

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from ..utils import SimpleRandom
from ...common.flog import Logger, get_global_logger, log_solver_summary
from .result import EigenResult, EigenSolver, CompInfo, EigenArgumentError, EigenErrorMsg
from .rules import RuleLike, as_sort_rule
from .operators import DenseGenRealShiftSolve, SparseGenRealShiftSolve
from .ritz_sort import ShiftInvertRitzSort
from .arnoldi import GenEigsSolver, ArnoldiEigensolver

# ----------------------------------------------------------------------------------------

def as_shift_solve_operator(op):
    '''
    Shift-solve adapter for a dense array or a sparse matrix. Objects that
    already provide ``set_shift`` and ``perform_op`` are returned unchanged.
    '''
    if hasattr(op, 'set_shift') and hasattr(op, 'perform_op'):
        return op
    if sp.issparse(op):
        return SparseGenRealShiftSolve(op)
    if isinstance(op, np.ndarray) or isinstance(op, (list, tuple)):
        return DenseGenRealShiftSolve(op)
    raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH,
            f"cannot build a shift-solve operator from {type(op).__name__}, provide set_shift() and perform_op()")

class GenEigsRealShiftSolver(GenEigsSolver):
    """
    Restarted Arnoldi solver in shift-and-invert mode with a real shift.

    Args:
        op:
            Dense array, sparse matrix or an object with ``set_shift(sigma)``,
            ``rows``, ``dtype`` and ``perform_op(x)`` computing (A - sigma I)^{-1} x.
        nev, ncv:
            As in ``GenEigsSolver``.
        sigma:
            Real shift.
        logger, verbose:
            As in ``GenEigsSolver``.

    Raises:
        EigenArgumentError (ValueError): for invalid nev / ncv or a singular A - sigma I.
    """

    def __init__(self, op, nev: int, ncv: int, sigma: float,
                logger: Optional[Logger] = None, verbose: bool = False):
        op          = as_shift_solve_operator(op)
        op.set_shift(sigma)
        self._sigma = float(sigma)
        super().__init__(op, nev, ncv, sort_strategy=ShiftInvertRitzSort(sigma), logger=logger, verbose=verbose)

    @property
    def sigma(self) -> float:
        return self._sigma

# ----------------------------------------------------------------------------------------
#! Keyword front end
# ----------------------------------------------------------------------------------------

class ShiftInvertEigensolver(EigenSolver):
    """
    Eigenvalues of a general matrix closest to a real shift.

    Args:
        k: Number of eigenvalues to compute
        sigma: Real shift
        which: Selection rule applied to the inverted values nu (default 'LM', nearest to sigma)
        ncv: Dimension of the Krylov subspace (default: min(n, max(2*k+1, 20)))
        max_iter: Maximum number of restarts (default: 1000)
        tol: Relative convergence tolerance (default: 1e-10)
        sort: Order of the returned eigenvalues lambda (default: 'LM')
        seed: Seed of the random starting vector (default: PY_GLOBAL_SEED)

    Example:
        >>> result = ShiftInvertEigensolver(k=4, sigma=1.0).solve(A)
    """

    def __init__(
        self,
        k           : int                                           = 6,
        sigma       : float                                         = 0.0,
        which       : Literal['LM', 'SM', 'LR', 'SR', 'LI', 'SI']   = 'LM',
        ncv         : Optional[int]                                 = None,
        max_iter    : int                                           = 1000,
        tol         : float                                         = 1e-10,
        sort        : Optional[RuleLike]                            = None,
        seed        : Optional[int]                                 = None,
        logger      : Optional[Logger]                              = None,
        verbose     : bool                                          = False
    ):
        if k < 1:
            raise EigenArgumentError(EigenErrorMsg.INVALID_NEV, f"k must be >= 1, got {k}")
        self.k          = k
        self.sigma      = float(sigma)
        self.which      = as_sort_rule(which)
        self.ncv        = ncv
        self.max_iter   = max_iter
        self.tol        = tol
        self.sort       = as_sort_rule(sort) if sort is not None else as_sort_rule('LM')
        self.seed       = seed
        self.logger     = logger if logger is not None else get_global_logger()
        self.verbose    = verbose

    @staticmethod
    def is_iterative_solver() -> bool:
        return True

    def solve(self, A, v0: Optional[NDArray] = None, return_krylov: bool = False) -> Union[EigenResult, Tuple[EigenResult, NDArray]]:
        """
        Solve for the k eigenpairs of ``A`` closest to sigma.

        Args:
            A: Dense array or sparse matrix
            v0: Initial vector (random if None)
            return_krylov: Whether to return Krylov basis vectors
        """
        n       = A.shape[0]
        ncv     = self.ncv if self.ncv is not None else ArnoldiEigensolver.default_ncv(n, self.k)
        solver  = GenEigsRealShiftSolver(A, self.k, ncv, self.sigma, logger=self.logger)
        if v0 is None:
            v0 = SimpleRandom(self.seed).random_vec(n, solver.dtype)
        solver.init(v0)
        solver.compute(selection=self.which, maxit=self.max_iter, tol=self.tol, sorting=self.sort)

        eigenvalues     = solver.eigenvalues()
        eigenvectors    = solver.eigenvectors()

        # residuals of the original problem: ||A v - \lambda v||
        residual_norms  = np.array([np.linalg.norm(A @ vec - lam * vec) for lam, vec in zip(eigenvalues, eigenvectors.T)], dtype=float)

        krylov  = solver.krylov_basis()
        result  = EigenResult(
            eigenvalues     = eigenvalues,
            eigenvectors    = eigenvectors,
            subspacevectors = krylov,
            iterations      = solver.num_iterations(),
            converged       = solver.info() is CompInfo.SUCCESSFUL,
            residual_norms  = residual_norms,
            operations      = solver.num_operations()
        )

        if self.verbose:
            log_solver_summary(self.logger, {
                    'n'             : n,
                    'nev / ncv'     : f"{self.k} / {ncv}",
                    'sigma'         : self.sigma,
                    'status'        : str(solver.info()),
                    'converged'     : len(eigenvalues),
                    'iterations'    : result.iterations,
                    'operations'    : result.operations,
                    'max residual'  : f"{result.max_residual:.3e}",
                }, title="Shift-Invert Summary")

        if return_krylov:
            return result, krylov
        return result

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
