r"""
Arnoldi Eigenvalue Solver

Implements the implicitly restarted Arnoldi method (IRAM) for finding a few
eigenvalues and eigenvectors of general (non-symmetric, possibly complex)
operators using only matrix-vector products.

Key Features:
    - Finds nev eigenvalues of general real or complex operators
    - Selection by magnitude, real part or imaginary part (largest / smallest)
    - Implicit restarts with exact shifts (double shifts for conjugate pairs)
    - DGKS re-orthogonalization, random restart on invariant subspaces
    - Optional B inner product for generalized problems
    - SciPy (ARPACK) wrapper for reference

Mathematical Background:
    Starting from v_1, build the Krylov subspace K_m(A, v_1) and the Arnoldi factorization
        A V_m = V_m H_m + f_m e_m^T
    with V_m orthonormal and H_m upper Hessenberg. The eigenpairs (theta, y) of H_m
    give Ritz pairs (theta, V_m y) whose residual is
        ||A V_m y - theta V_m y|| = ||f_m|| |e_m^T y|.
    A pair is accepted when this residual is below tol * max(eps^(2/3), |theta|).
    Otherwise the factorization is compressed to k < m columns by m - k shifted QR
    steps, using the unwanted Ritz values as shifts, and expanded again to m.

References:
    [1] Sorensen, "Implicit application of polynomial filters in a k-step Arnoldi
        method", SIAM J. Matrix Anal. Appl. 13 (1992)
    [2] Lehoucq, Sorensen & Yang, "ARPACK Users' Guide", SIAM (1998)

----------------------------------------
----------------------------------------

"""

from typing import Optional, Callable, Tuple, Literal, Union

import numpy as np
from numpy.typing import NDArray

from scipy.sparse.linalg import eigs, ArpackNoConvergence, LinearOperator

from ..utils import num_traits, complex_dtype, SimpleRandom
from ...common.flog import Logger, get_global_logger, log_solver_summary
from .result import (EigenResult, EigenSolver, CompInfo, EigenArgumentError,
                     HessenbergLogicError, HessenbergEigenError, EigenErrorMsg)
from .rules import RuleLike, SortRule, as_sort_rule, sort_eigenvalues
from .hessenberg import hessenberg_eigen_for
from .krylov import ArnoldiFactorization, OpCounter
from .operators import ArnoldiOp, as_operator
from .restart import restart_strategy_for
from .ritz_sort import RitzSortStrategy

# ----------------------------------------------------------------------------------------
#! Implicitly restarted Arnoldi
# ----------------------------------------------------------------------------------------

class GenEigsSolver:
    """
    Implicitly restarted Arnoldi solver for general eigenvalue problems.

    Computes ``nev`` eigenvalues (and eigenvectors) of a general real or complex
    operator. Real operators are handled in real arithmetic; complex Ritz values
    then come in exact conjugate pairs.

    Args:
        op:
            Operator: dense array, sparse matrix, ``LinearOperator`` or any object with
            ``rows``, ``dtype`` and ``perform_op``.
        nev:
            Number of eigenvalues requested, 1 <= nev <= n - 2.
        ncv:
            Dimension of the Krylov subspace, nev + 2 <= ncv <= n. ncv >= 2 nev + 1
            is recommended.
        Bop:
            Optional operator defining the inner product x^H B y.
        sort_strategy:
            Object ordering the final Ritz pairs (default ``RitzSortStrategy``).
        logger:
            ``Logger`` for progress messages (default: the global logger).
        verbose:
            Log the final summary at INFO level.

    Raises:
        EigenArgumentError (ValueError): for nev or ncv out of range.

    Example:
        >>> solver  = GenEigsSolver(A, nev=3, ncv=10)
        >>> solver.init()
        >>> nconv   = solver.compute(selection='LM')
        >>> if solver.info() is CompInfo.SUCCESSFUL:
        ...     evals = solver.eigenvalues()
        ...     evecs = solver.eigenvectors()
    """

    def __init__(self, op, nev: int, ncv: int, Bop=None,
                sort_strategy: Optional[RitzSortStrategy] = None,
                logger: Optional[Logger] = None,
                verbose: bool = False):
        self._op            = ArnoldiOp(op, Bop)
        self._n             = self._op.rows
        self._nev           = int(nev)
        self._ncv           = int(ncv)

        if self._nev < 1 or self._nev > self._n - 2:
            raise EigenArgumentError(EigenErrorMsg.INVALID_NEV,
                    f"nev must satisfy 1 <= nev <= n - 2, n is the size of matrix (nev = {nev}, n = {self._n})")
        if self._ncv <= self._nev + 1 or self._ncv > self._n:
            raise EigenArgumentError(EigenErrorMsg.INVALID_NCV,
                    f"ncv must satisfy nev + 2 <= ncv <= n, n is the size of matrix (nev = {nev}, ncv = {ncv}, n = {self._n})")

        self._dtype         = self._op.dtype
        self._cdtype        = complex_dtype(self._dtype)
        traits              = num_traits(self._dtype)
        self._eps23         = traits.eps23
        self._near_0        = traits.tiny * 10

        self._fac           = ArnoldiFactorization(self._op, self._ncv)
        self._restart_impl  = restart_strategy_for(self._dtype)()
        self._hess_eigen    = hessenberg_eigen_for(self._dtype)()
        self._sort_strategy = sort_strategy if sort_strategy is not None else RitzSortStrategy()
        self._logger        = logger if logger is not None else get_global_logger()
        self._verbose       = verbose

        self._nmatop        = OpCounter()
        self._niter         = 0
        self._info          = CompInfo.NOT_COMPUTED
        self._initialized   = False

        self._ritz_val      = np.zeros(self._ncv, dtype=self._cdtype)
        self._ritz_vec      = np.zeros((self._ncv, self._nev), dtype=self._cdtype)
        self._ritz_est      = np.zeros(self._ncv, dtype=self._cdtype)
        self._ritz_conv     = np.zeros(self._nev, dtype=bool)

        # accumulated restart transform, reused every outer iteration
        self._mat_Q         = np.eye(self._ncv, dtype=self._dtype)

    # ------------------------------------------------------------------------------------
    #! Properties
    # ------------------------------------------------------------------------------------

    @property
    def n(self) -> int:
        return self._n

    @property
    def nev(self) -> int:
        return self._nev

    @property
    def ncv(self) -> int:
        return self._ncv

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    # ------------------------------------------------------------------------------------
    #! Initialization
    # ------------------------------------------------------------------------------------

    def init(self, init_resid: Optional[NDArray] = None) -> None:
        """
        Reset the solver and build the rank-1 factorization.

        Args:
            init_resid:
                Starting residual of length n. Without it a reproducible random vector
                with entries in (-0.5, 0.5) is used (seed 0).

        Raises:
            EigenArgumentError (ValueError): if the residual is zero or has the wrong length.
        """
        if init_resid is None:
            init_resid = SimpleRandom(seed=0).random_vec(self._n, self._dtype)

        self._ritz_val.fill(0)
        self._ritz_vec.fill(0)
        self._ritz_est.fill(0)
        self._ritz_conv.fill(False)

        self._nmatop.reset()
        self._niter         = 0
        self._info          = CompInfo.NOT_COMPUTED
        self._initialized   = False

        self._fac.init(init_resid, self._nmatop)
        self._initialized   = True

    # ------------------------------------------------------------------------------------
    #! Iteration
    # ------------------------------------------------------------------------------------

    def _retrieve_ritzpair(self, selection: SortRule) -> None:
        ''' Ritz pairs of the current H, sorted by the selection rule. '''
        self._hess_eigen.compute(self._fac.matrix_H)
        evals           = self._hess_eigen.eigenvalues()
        evecs           = self._hess_eigen.eigenvectors()

        ind             = sort_eigenvalues(evals, selection)
        self._ritz_val[:]   = evals[ind]
        # The last row of the eigenvectors gives the residual estimates
        self._ritz_est[:]   = evecs[self._ncv - 1, ind]
        self._ritz_vec[:]   = evecs[:, ind[:self._nev]]

    def _num_converged(self, tol: float) -> int:
        ''' Mark the wanted Ritz values that meet the tolerance. '''
        thresh              = tol * np.maximum(self._eps23, np.abs(self._ritz_val[:self._nev]))
        resid               = np.abs(self._ritz_est[:self._nev]) * self._fac.f_norm
        self._ritz_conv[:]  = resid < thresh
        return int(np.count_nonzero(self._ritz_conv))

    def _nev_adjusted(self, nconv: int) -> int:
        ''' Number of Ritz pairs kept at a restart (ARPACK dnaup2). '''
        ncv     = self._ncv
        nev_new = self._nev

        # Increase nev by one for each unwanted Ritz value with a zero residual estimate
        nev_new += int(np.count_nonzero(np.abs(self._ritz_est[self._nev:ncv]) < self._near_0))

        # Adjust nev_new, according to dnaup2.f line 660~674 in ARPACK
        nev_new += min(nconv, (ncv - nev_new) // 2)
        if nev_new == 1 and ncv >= 6:
            nev_new = ncv // 2
        elif nev_new == 1 and ncv > 3:
            nev_new = 2

        if nev_new > ncv - 2:
            nev_new = ncv - 2

        # Increase nev by one if ritz_val[nev - 1] and ritz_val[nev] are conjugate pairs
        last = self._ritz_val[nev_new - 1]
        if last.imag != 0 and self._ritz_val[nev_new] == np.conj(last):
            nev_new += 1

        return nev_new

    def _restart(self, k: int, selection: SortRule) -> None:
        ''' Compress the factorization to rank k and expand it back to ncv. '''
        if k >= self._ncv:
            return

        mat_Q = self._mat_Q
        mat_Q.fill(0)
        np.fill_diagonal(mat_Q, 1)

        self._restart_impl.run(self._ritz_val, k, self._fac, mat_Q)
        self._fac.compress_V(mat_Q)
        self._fac.factorize_from(k, self._ncv, self._nmatop)

        self._retrieve_ritzpair(selection)

    def _sort_ritzpair(self, sorting: SortRule) -> None:
        ''' Final order of the nev retained Ritz pairs. '''
        nev = self._nev
        self._sort_strategy.transform(self._ritz_val, nev)
        ind = self._sort_strategy.sort(self._ritz_val, nev, sorting)

        self._ritz_val[:nev]    = self._ritz_val[ind]
        self._ritz_vec[:, :]    = self._ritz_vec[:, ind]
        self._ritz_conv[:]      = self._ritz_conv[ind]

    # ------------------------------------------------------------------------------------

    def compute(self, selection: RuleLike = 'LM', maxit: int = 1000, tol: float = 1e-10,
                sorting: RuleLike = 'LM') -> int:
        """
        Run the restarted Arnoldi iteration.

        Args:
            selection:
                Rule deciding which Ritz values are wanted ('LM', 'LR', 'LI', 'SM', 'SR', 'SI').
            maxit:
                Maximum number of outer iterations.
            tol:
                Relative tolerance of the convergence test.
            sorting:
                Rule ordering the returned eigenvalues.

        Returns:
            Number of converged eigenvalues, at most nev.

        Raises:
            HessenbergLogicError (RuntimeError): if ``init`` was not called.
            HessenbergEigenError (RuntimeError): if the dense eigen-decomposition fails.
        """
        if not self._initialized:
            raise HessenbergLogicError(EigenErrorMsg.NOT_INITIALIZED, "GenEigsSolver: need to call init() first")

        selection   = as_sort_rule(selection)
        sorting     = as_sort_rule(sorting)

        try:
            # The m-step Arnoldi factorization
            self._fac.factorize_from(1, self._ncv, self._nmatop)
            self._retrieve_ritzpair(selection)

            # Restarting
            nconv   = 0
            niter   = 0
            for _ in range(maxit):
                niter += 1
                nconv  = self._num_converged(tol)
                self._logger.debug(f"iteration {self._niter + niter}: {nconv}/{self._nev} converged, ||f|| = {self._fac.f_norm:.3e}", lvl=2)
                if nconv >= self._nev:
                    break

                nev_adj = self._nev_adjusted(nconv)
                self._restart(nev_adj, selection)
        except HessenbergEigenError as e:
            self._info = CompInfo.NUMERICAL_ISSUE
            self._logger.error(f"GenEigsSolver: {e.message}", lvl=1)
            raise

        # Sorting results
        self._sort_ritzpair(sorting)

        self._niter += niter
        self._info   = CompInfo.SUCCESSFUL if nconv >= self._nev else CompInfo.NOT_CONVERGING

        if self._info is CompInfo.SUCCESSFUL:
            self._logger.info(f"GenEigsSolver: {min(self._nev, nconv)} eigenvalues converged in {self._niter} iterations "
                            f"({int(self._nmatop)} operations)", lvl=1, verbose=self._verbose)
        else:
            self._logger.warning(f"GenEigsSolver: only {nconv}/{self._nev} eigenvalues converged after {self._niter} iterations", lvl=1)
        return min(self._nev, nconv)

    # ------------------------------------------------------------------------------------
    #! Results
    # ------------------------------------------------------------------------------------

    def info(self) -> CompInfo:
        ''' Status of the last computation. '''
        return self._info

    def num_iterations(self) -> int:
        '''
        Number of outer iterations, counting the pass that ran the final convergence test.
        Equals ``maxit`` when the iteration budget ran out (Spectra reports ``maxit + 1``).
        '''
        return self._niter

    def num_operations(self) -> int:
        ''' Number of operator applications. '''
        return int(self._nmatop)

    def num_converged(self) -> int:
        return int(np.count_nonzero(self._ritz_conv))

    def ritz_values(self) -> NDArray:
        ''' The nev retained Ritz values, converged or not. '''
        return self._ritz_val[:self._nev].copy()

    def eigenvalues(self) -> NDArray:
        """
        Converged eigenvalues in the order of the sort rule.
        """
        return self._ritz_val[:self._nev][self._ritz_conv].copy()

    def eigenvectors(self, nvec: Optional[int] = None) -> NDArray:
        """
        Eigenvectors of the first ``min(nvec, nconv)`` converged eigenvalues, as columns.
        """
        nvec    = self._nev if nvec is None else int(nvec)
        nconv   = self.num_converged()
        nvec    = min(nvec, nconv)
        if nvec <= 0:
            return np.zeros((self._n, 0), dtype=self._cdtype)

        idx     = np.flatnonzero(self._ritz_conv)[:nvec]
        return self._fac.matrix_V @ self._ritz_vec[:, idx]

    def krylov_basis(self) -> NDArray:
        ''' Current basis V of the Krylov subspace (n x ncv). '''
        return self._fac.matrix_V.copy()

    def __repr__(self):
        return (f"{self.__class__.__name__}(n={self._n}, nev={self._nev}, ncv={self._ncv}, "
                f"dtype={self._dtype}, info={self._info})")

# ----------------------------------------------------------------------------------------
#! Keyword front end
# ----------------------------------------------------------------------------------------

class ArnoldiEigensolver(EigenSolver):
    """
    Arnoldi iteration for general (non-symmetric) eigenvalue problems.

    Computes k eigenvalues and corresponding eigenvectors of a general matrix A
    with the implicitly restarted Arnoldi method (``GenEigsSolver``).

    Args:
        k: Number of eigenvalues to compute
        which: Which eigenvalues to compute
               'LM' = largest magnitude
               'SM' = smallest magnitude
               'LR' = largest real part
               'SR' = smallest real part
               'LI' = largest imaginary part
               'SI' = smallest imaginary part
        ncv: Dimension of the Krylov subspace (default: min(n, max(2*k+1, 20)))
        max_iter: Maximum number of restarts (default: 1000)
        tol: Relative convergence tolerance (default: 1e-10)
        sort: Order of the returned eigenvalues (default: same as which)
        seed: Seed of the random starting vector (default: PY_GLOBAL_SEED)
        logger: Logger for progress and summary
        verbose: Log a summary table after solving

    Example:
        >>> A = np.random.randn(500, 500)
        >>> solver = ArnoldiEigensolver(k=5, which='LM')
        >>> result = solver.solve(A)
        >>> print(f"Eigenvalues: {result.eigenvalues}")
    """

    def __init__(
        self,
        k           : int                                           = 6,
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
        self.which      = as_sort_rule(which)
        self.ncv        = ncv
        self.max_iter   = max_iter
        self.tol        = tol
        self.sort       = as_sort_rule(sort) if sort is not None else self.which
        self.seed       = seed
        self.logger     = logger if logger is not None else get_global_logger()
        self.verbose    = verbose

    @staticmethod
    def is_iterative_solver() -> bool:
        return True

    @staticmethod
    def default_ncv(n: int, k: int) -> int:
        ''' Krylov dimension used when none is given. '''
        return min(n, max(2 * k + 1, 20))

    def solve(
        self,
        A               : Optional[NDArray]                         = None,
        matvec          : Optional[Callable[[NDArray], NDArray]]    = None,
        v0              : Optional[NDArray]                         = None,
        n               : Optional[int]                             = None,
        B               : Optional[NDArray]                         = None,
        dtype           = None,
        return_krylov   : bool                                      = False
    ) -> Union[EigenResult, Tuple[EigenResult, NDArray]]:
        """
        Solve for eigenvalues and eigenvectors.

        Args:
            A: Matrix, sparse matrix or LinearOperator
            matvec: Matrix-vector product function (if A not provided)
            v0: Initial vector (random if None)
            n: Dimension of the problem (required if matvec provided without A)
            B: Optional matrix defining the inner product x^H B y
            dtype: Scalar type of a matvec operator (default float64)
            return_krylov: Whether to return Krylov basis vectors

        Returns:
            EigenResult with eigenvalues, eigenvectors, and convergence info
            If return_krylov=True, also returns Krylov basis matrix V
        """
        op      = as_operator(A, matvec, n=n, dtype=dtype)
        n       = op.rows
        ncv     = self.ncv if self.ncv is not None else ArnoldiEigensolver.default_ncv(n, self.k)

        solver  = GenEigsSolver(op, self.k, ncv, Bop=B, logger=self.logger)
        if v0 is None:
            v0 = SimpleRandom(self.seed).random_vec(n, solver.dtype)
        solver.init(v0)
        solver.compute(selection=self.which, maxit=self.max_iter, tol=self.tol, sorting=self.sort)

        eigenvalues     = solver.eigenvalues()
        eigenvectors    = solver.eigenvectors()

        # Compute residual norms: ||A v - \lambda v||
        residual_norms  = np.zeros(len(eigenvalues), dtype=float)
        for i, (lam, vec) in enumerate(zip(eigenvalues, eigenvectors.T)):
            residual            = op.perform_op(vec) - lam * vec
            residual_norms[i]   = np.linalg.norm(residual)

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
                    'rule'          : self.which.value,
                    'status'        : str(solver.info()),
                    'converged'     : len(eigenvalues),
                    'iterations'    : result.iterations,
                    'operations'    : result.operations,
                    'max residual'  : f"{result.max_residual:.3e}",
                }, title="Arnoldi Summary")

        if return_krylov:
            return result, krylov
        return result

# ----------------------------------------------------------------------------------------
#! SciPy reference
# ----------------------------------------------------------------------------------------

class ArnoldiEigensolverScipy(EigenSolver):
    """
    SciPy wrapper for the Arnoldi eigenvalue solver.

    Uses scipy.sparse.linalg.eigs (ARPACK), the reference implementation of the
    implicitly restarted Arnoldi method. Useful to cross-check ``ArnoldiEigensolver``.

    Args:
        k: Number of eigenvalues to compute
        which: Which eigenvalues ('LM', 'SM', 'LR', 'SR', 'LI', 'SI')
        tol: Convergence tolerance (default: 0, machine precision)
        maxiter: Maximum iterations (default: None, uses SciPy default)
        v0: Initial vector (default: None, random)
        sigma: Optional shift for ARPACK's shift-invert mode

    Example:
        >>> solver = ArnoldiEigensolverScipy(k=10, which='LM')
        >>> result = solver.solve(A)
    """

    def __init__(
        self,
        k       : int                                           = 6,
        which   : Literal['LM', 'SM', 'LR', 'SR', 'LI', 'SI']   = 'LM',
        tol     : float                                         = 0.0,
        maxiter : Optional[int]                                 = None,
        v0      : Optional[NDArray]                             = None,
        sigma   : Optional[float]                               = None
    ):
        self.k          = k
        self.which      = as_sort_rule(which).value
        self.tol        = tol
        self.maxiter    = maxiter
        self.v0         = v0
        self.sigma      = sigma

    @staticmethod
    def is_iterative_solver() -> bool:
        return True

    def solve(
        self,
        A       : Optional[NDArray]                         = None,
        matvec  : Optional[Callable[[NDArray], NDArray]]    = None,
        n       : Optional[int]                             = None
    ) -> EigenResult:
        """
        Solve for eigenvalues using SciPy's eigs (ARPACK).

        Args:
            A: Matrix or LinearOperator
            matvec: Matrix-vector product function (if A not provided)
            n: Dimension (required if matvec provided)

        Returns:
            EigenResult with eigenvalues and eigenvectors
        """
        # Create LinearOperator if matvec provided
        if A is None and matvec is not None:
            if n is None:
                raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "n must be provided when using matvec")
            A = LinearOperator((n, n), matvec=matvec)
        elif A is None:
            raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "Either A or matvec must be provided")

        try:
            eigenvalues, eigenvectors = eigs(
                A,
                k                   = self.k,
                which               = self.which,
                sigma               = self.sigma,
                tol                 = self.tol,
                maxiter             = self.maxiter,
                v0                  = self.v0,
                return_eigenvectors = True
            )
            converged = True
        except ArpackNoConvergence as e:
            eigenvalues, eigenvectors   = e.eigenvalues, e.eigenvectors
            converged                   = False

        return EigenResult(
            eigenvalues     = eigenvalues,
            eigenvectors    = eigenvectors,
            iterations      = None,     # SciPy doesn't return the iteration count
            converged       = converged,
            residual_norms  = None
        )

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
