"""
Test suite for the implicitly restarted Arnoldi solver.

Checks the restarted iteration on matrices with a prescribed spectrum
(real values and complex conjugate pairs), for every selection rule, for
complex operators, for a B inner product and against ARPACK.
Also covers the status reporting, the argument validation and the logging.
"""

import numpy as np
import pytest
import scipy.sparse as sp
from scipy.sparse.linalg import LinearOperator

from geneigs.algebra.eigen.arnoldi import GenEigsSolver, ArnoldiEigensolver, ArnoldiEigensolverScipy
from geneigs.algebra.eigen.operators import DenseGenMatProd, SparseGenMatProd, FunctionMatProd
from geneigs.algebra.eigen.result import CompInfo, HessenbergEigenError, EigenErrorMsg

# ----------------------------------
#! Helper functions
# ----------------------------------

PAIRS   = [8 + 4j, 1 + 6j, -2 + 5j, -5 + 1j]
REALS   = [10.0, -7.0]

def designed_matrix(n=50, seed=7):
    """
    Real matrix Q D Q^T with known spectrum: the conjugate pairs of ``PAIRS``,
    the values of ``REALS`` and fillers in [-0.9, 0.9].
    """
    rng     = np.random.default_rng(seed)
    D       = np.zeros((n, n))
    i       = 0
    for lam in PAIRS:
        a, b                = lam.real, lam.imag
        D[i:i + 2, i:i + 2] = [[a, b], [-b, a]]
        i                  += 2
    for lam in REALS:
        D[i, i]             = lam
        i                  += 1
    fillers                 = rng.uniform(-0.9, 0.9, n - i)
    D[i:, i:]               = np.diag(fillers)

    Q, _    = np.linalg.qr(rng.standard_normal((n, n)))
    A       = Q @ D @ Q.T
    spectrum = np.concatenate([PAIRS, np.conj(PAIRS), REALS, fillers])
    return A, spectrum

def assert_same_set(found, expected, atol):
    found       = list(np.asarray(found))
    assert len(found) == len(expected)
    for lam in expected:
        dist    = [abs(lam - f) for f in found]
        j       = int(np.argmin(dist))
        assert dist[j] < atol, f"eigenvalue {lam} not found (closest distance {dist[j]:.2e})"
        found.pop(j)

def assert_eigenpairs(A, evals, evecs, rtol=1e-8):
    normA = np.linalg.norm(A)
    for lam, v in zip(evals, evecs.T):
        assert np.linalg.norm(A @ v - lam * v) < rtol * normA

class RecordingLogger:
    """Collects the messages sent by a solver."""

    def __init__(self):
        self.records = []

    def _record(self, level, msg, verbose):
        if verbose:
            self.records.append((level, msg))

    def debug(self, msg, lvl=0, verbose=True, color=None):
        self._record('debug', msg, verbose)

    def info(self, msg, lvl=0, verbose=True, color=None):
        self._record('info', msg, verbose)

    def warning(self, msg, lvl=0, verbose=True, color=None):
        self._record('warning', msg, verbose)

    def error(self, msg, lvl=0, verbose=True, color=None):
        self._record('error', msg, verbose)

    def title(self, tail, desired_size=50, fill='=', lvl=0, verbose=True, color=None):
        self._record('info', tail, verbose)

    def levels(self):
        return [level for level, _ in self.records]

# ----------------------------------
#! Basic behaviour
# ----------------------------------

class TestGenEigsSolverBasics:

    def test_diagonal(self):
        A       = np.diag(np.arange(1.0, 11.0))
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=3, ncv=6)
        solver.init()
        nconv   = solver.compute(selection='LM')

        assert nconv == 3
        assert solver.info() is CompInfo.SUCCESSFUL
        np.testing.assert_allclose(solver.eigenvalues(), [10.0, 9.0, 8.0], atol=1e-10)
        evecs   = solver.eigenvectors()
        assert evecs.shape == (10, 3)
        for j, idx in enumerate([9, 8, 7]):
            assert abs(abs(evecs[idx, j]) - 1.0) < 1e-8
        assert solver.num_iterations() >= 1
        assert solver.num_operations() >= 6

    def test_accepts_plain_arrays(self):
        A       = np.diag(np.arange(1.0, 11.0))
        solver  = GenEigsSolver(A, nev=2, ncv=6)
        solver.init()
        solver.compute('SM')
        np.testing.assert_allclose(np.sort(solver.eigenvalues().real), [1.0, 2.0], atol=1e-10)

    @pytest.mark.parametrize("nev, ncv", [(0, 5), (9, 10), (3, 4), (3, 11)])
    def test_invalid_dimensions(self, nev, ncv):
        with pytest.raises(ValueError):
            GenEigsSolver(DenseGenMatProd(np.eye(10)), nev=nev, ncv=ncv)

    def test_error_codes(self):
        with pytest.raises(ValueError) as excinfo:
            GenEigsSolver(DenseGenMatProd(np.eye(10)), nev=3, ncv=4)
        assert excinfo.value.code is EigenErrorMsg.INVALID_NCV

    def test_compute_before_init(self):
        solver = GenEigsSolver(DenseGenMatProd(np.eye(10)), nev=2, ncv=5)
        assert solver.info() is CompInfo.NOT_COMPUTED
        with pytest.raises(RuntimeError):
            solver.compute()

    def test_zero_initial_residual(self):
        solver = GenEigsSolver(DenseGenMatProd(np.eye(10)), nev=2, ncv=5)
        with pytest.raises(ValueError):
            solver.init(np.zeros(10))

    def test_unknown_rule(self):
        solver = GenEigsSolver(DenseGenMatProd(np.diag(np.arange(1.0, 11.0))), nev=2, ncv=5)
        solver.init()
        with pytest.raises(ValueError):
            solver.compute(selection='XX')

    def test_repr(self):
        solver = GenEigsSolver(DenseGenMatProd(np.eye(10)), nev=2, ncv=5)
        assert repr(solver).startswith("GenEigsSolver(n=10, nev=2, ncv=5")

# ----------------------------------
#! Prescribed spectrum
# ----------------------------------

class TestDesignedSpectrum:

    @pytest.mark.parametrize("rule, nev, expected", [
        ('LM', 4, [10.0, 8 + 4j, 8 - 4j, -7.0]),
        ('LR', 3, [10.0, 8 + 4j, 8 - 4j]),
        ('LI', 4, [1 + 6j, 1 - 6j, -2 + 5j, -2 - 5j]),
        ('SR', 3, [-7.0, -5 + 1j, -5 - 1j]),
    ])
    def test_selection_rules(self, rule, nev, expected):
        A, _    = designed_matrix()
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=nev, ncv=20)
        solver.init()
        nconv   = solver.compute(selection=rule, tol=1e-12, sorting=rule)

        assert nconv == nev
        assert solver.info() is CompInfo.SUCCESSFUL
        evals   = solver.eigenvalues()
        assert_same_set(evals, expected, atol=1e-8)
        assert_eigenpairs(A, evals, solver.eigenvectors())

    def test_conjugate_pairs_are_exact(self):
        A, _    = designed_matrix()
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=4, ncv=20)
        solver.init()
        solver.compute('LM')
        evals   = solver.eigenvalues()
        evecs   = solver.eigenvectors()

        for j, lam in enumerate(evals):
            if lam.imag == 0:
                continue
            partner = np.flatnonzero(evals == np.conj(lam))
            assert len(partner) == 1
            np.testing.assert_allclose(evecs[:, partner[0]], np.conj(evecs[:, j]), atol=1e-13)

    def test_sorting_differs_from_selection(self):
        A, _    = designed_matrix()
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=4, ncv=20)
        solver.init()
        solver.compute(selection='LM', sorting='SR')
        evals   = solver.eigenvalues()

        assert np.all(np.diff(evals.real) >= 0)
        assert_same_set(evals, [10.0, 8 + 4j, 8 - 4j, -7.0], atol=1e-8)

    def test_agrees_with_arpack(self):
        A, _    = designed_matrix()
        ours    = ArnoldiEigensolver(k=4, which='LM', ncv=20).solve(A)
        ref     = ArnoldiEigensolverScipy(k=4, which='LM').solve(A)

        assert ours.converged and ref.converged
        assert_same_set(ours.eigenvalues, ref.eigenvalues, atol=1e-8)

    def test_eigenvectors_subset(self):
        A, _    = designed_matrix()
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=4, ncv=20)
        solver.init()
        solver.compute('LM')
        assert solver.eigenvectors(2).shape == (50, 2)
        assert solver.eigenvectors(10).shape == (50, 4)
        assert solver.ritz_values().shape == (4,)

# ----------------------------------
#! Complex, sparse, matrix-free and generalized operators
# ----------------------------------

class TestOperatorKinds:

    def test_complex_operator(self):
        n       = 40
        rng     = np.random.default_rng(11)
        U, _    = np.linalg.qr(rng.standard_normal((n, n)) + 1j * rng.standard_normal((n, n)))
        d       = rng.standard_normal(n) + 1j * rng.standard_normal(n)
        d[:3]   = [6.0 + 1.0j, -5.0j, 4.0 - 3.5j]
        A       = U @ np.diag(d) @ U.conj().T

        solver  = GenEigsSolver(DenseGenMatProd(A), nev=3, ncv=15)
        solver.init()
        nconv   = solver.compute('LM')

        assert nconv == 3
        assert solver.dtype == np.complex128
        evals   = solver.eigenvalues()
        assert_same_set(evals, d[:3], atol=1e-8)
        assert_eigenpairs(A, evals, solver.eigenvectors())
        # ordered by decreasing magnitude
        assert np.all(np.diff(np.abs(evals)) <= 1e-12)

    def test_sparse_operator(self):
        n       = 200
        main    = np.arange(1.0, n + 1)
        A       = sp.diags([main, 0.3 * np.ones(n - 1), 0.1 * np.ones(n - 1)], [0, 1, -1], format="csr")
        solver  = GenEigsSolver(SparseGenMatProd(A), nev=3, ncv=20)
        solver.init()
        solver.compute('LR')

        expect  = np.linalg.eigvals(A.toarray())
        expect  = expect[np.argsort(-expect.real)][:3]
        assert_same_set(solver.eigenvalues(), expect, atol=1e-7)

    def test_linear_operator(self):
        A, _    = designed_matrix()
        lin     = LinearOperator(A.shape, matvec=lambda x: A @ x, dtype=A.dtype)
        solver  = GenEigsSolver(FunctionMatProd(lin), nev=3, ncv=20)
        solver.init()
        solver.compute('LR')
        assert_same_set(solver.eigenvalues(), [10.0, 8 + 4j, 8 - 4j], atol=1e-8)

    def test_generalized_inner_product(self):
        # B^{-1} A x = lambda x with A = B M, solved in the B inner product
        n       = 30
        rng     = np.random.default_rng(12)
        M       = np.diag(np.arange(1.0, n + 1)) + 0.2 * np.triu(rng.standard_normal((n, n)), 1)
        B       = np.diag(rng.uniform(1.0, 4.0, n))
        A       = B @ M
        op      = DenseGenMatProd(np.linalg.solve(B, A))

        solver  = GenEigsSolver(op, nev=3, ncv=12, Bop=DenseGenMatProd(B))
        solver.init()
        nconv   = solver.compute('LM')

        assert nconv == 3
        np.testing.assert_allclose(np.sort(solver.eigenvalues().real), [28.0, 29.0, 30.0], atol=1e-8)
        V       = solver.krylov_basis()
        np.testing.assert_allclose(V.T @ B @ V, np.eye(12), atol=1e-10)
        for v in solver.eigenvectors().T:
            assert abs(np.vdot(v, B @ v) - 1.0) < 1e-8

# ----------------------------------
#! Number of Ritz pairs kept at a restart
# ----------------------------------

class TestNevAdjusted:

    @staticmethod
    def make_solver(nev, ncv, n=20):
        """ Solver with distinct real Ritz values and nonzero residual estimates. """
        solver                  = GenEigsSolver(np.diag(np.arange(1.0, n + 1)), nev=nev, ncv=ncv)
        solver._ritz_val[:]     = np.arange(ncv, 0, -1) + 0j
        solver._ritz_est[:]     = 1.0
        return solver

    @pytest.mark.parametrize("ncv, expected", [(6, 3), (8, 4), (11, 5)])
    def test_single_wanted_large_subspace(self, ncv, expected):
        # nev = 1 and ncv >= 6 keeps half the subspace
        assert self.make_solver(1, ncv)._nev_adjusted(0) == expected

    @pytest.mark.parametrize("ncv", [4, 5])
    def test_single_wanted_small_subspace(self, ncv):
        assert self.make_solver(1, ncv)._nev_adjusted(0) == 2

    def test_single_wanted_minimal_subspace(self):
        assert self.make_solver(1, 3)._nev_adjusted(0) == 1

    def test_converged_values_extend_rank(self):
        solver = self.make_solver(3, 10)
        assert solver._nev_adjusted(0) == 3
        assert solver._nev_adjusted(2) == 5
        # limited by half of the unused subspace
        assert solver._nev_adjusted(9) == 6

    def test_locked_estimates_extend_rank(self):
        solver                  = self.make_solver(3, 10)
        solver._ritz_est[5]     = 0.0
        assert solver._nev_adjusted(0) == 4
        assert solver._nev_adjusted(2) == 6

        # wanted estimates do not count
        solver._ritz_est[5]     = 1.0
        solver._ritz_est[1]     = 0.0
        assert solver._nev_adjusted(0) == 3

    def test_clamped_to_ncv_minus_two(self):
        solver                  = self.make_solver(3, 5)
        solver._ritz_est[3:]    = 0.0
        assert solver._nev_adjusted(2) == 3

    def test_conjugate_pair_not_split(self):
        solver                  = self.make_solver(3, 10)
        solver._ritz_val[2]     = 1 + 2j
        solver._ritz_val[3]     = 1 - 2j
        assert solver._nev_adjusted(0) == 4

        # a complex value followed by something other than its conjugate
        solver._ritz_val[3]     = 1 + 2j
        assert solver._nev_adjusted(0) == 3

# ----------------------------------
#! Status, restart budget and logging
# ----------------------------------

class TestStatusAndLogging:

    def test_not_converging(self):
        logger  = RecordingLogger()
        A       = np.diag(np.arange(1.0, 101.0))
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=3, ncv=7, logger=logger)
        solver.init()
        nconv   = solver.compute('LM', maxit=1, tol=1e-14)

        assert solver.info() is CompInfo.NOT_CONVERGING
        assert nconv < 3
        assert solver.num_iterations() == 1
        assert len(solver.eigenvalues()) == nconv
        assert solver.eigenvectors().shape == (100, nconv)
        assert 'warning' in logger.levels()

    def test_iteration_count_at_budget(self):
        A       = np.diag(np.arange(1.0, 101.0))
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=3, ncv=7)
        solver.init()
        solver.compute('LM', maxit=3, tol=1e-14)

        assert solver.info() is CompInfo.NOT_CONVERGING
        assert solver.num_iterations() == 3

    def test_progress_and_summary(self):
        logger  = RecordingLogger()
        A       = np.diag(np.arange(1.0, 11.0))
        solver  = GenEigsSolver(DenseGenMatProd(A), nev=3, ncv=6, logger=logger, verbose=True)
        solver.init()
        solver.compute('LM')

        assert logger.levels().count('debug') == solver.num_iterations()
        assert logger.records[-1][0] == 'info'
        assert 'converged' in logger.records[-1][1]

    def test_quiet_by_default(self):
        logger  = RecordingLogger()
        solver  = GenEigsSolver(DenseGenMatProd(np.diag(np.arange(1.0, 11.0))), nev=3, ncv=6, logger=logger)
        solver.init()
        solver.compute('LM')
        assert 'info' not in logger.levels()

    def test_numerical_issue(self, monkeypatch):
        logger  = RecordingLogger()
        solver  = GenEigsSolver(DenseGenMatProd(np.diag(np.arange(1.0, 11.0))), nev=3, ncv=6, logger=logger)
        solver.init()

        def failing_compute(mat):
            raise HessenbergEigenError(EigenErrorMsg.SCHUR_FAILED, "Schur reduction did not converge")

        monkeypatch.setattr(solver._hess_eigen, 'compute', failing_compute)
        with pytest.raises(HessenbergEigenError):
            solver.compute('LM')
        assert solver.info() is CompInfo.NUMERICAL_ISSUE
        assert 'error' in logger.levels()

    def test_reinit_resets_counters(self):
        solver  = GenEigsSolver(DenseGenMatProd(np.diag(np.arange(1.0, 11.0))), nev=3, ncv=6)
        solver.init()
        solver.compute('LM')
        solver.init()
        assert solver.num_iterations() == 0
        assert solver.num_operations() == 1
        assert solver.info() is CompInfo.NOT_COMPUTED

# ----------------------------------
#! Keyword front end
# ----------------------------------

class TestArnoldiEigensolver:

    def test_solve_dense(self):
        A, _    = designed_matrix()
        result  = ArnoldiEigensolver(k=3, which='LR', seed=3).solve(A)

        assert result.converged
        assert result.iterations >= 1
        assert result.operations >= 20
        assert np.all(result.residual_norms < 1e-8 * np.linalg.norm(A))
        assert_same_set(result.eigenvalues, [10.0, 8 + 4j, 8 - 4j], atol=1e-8)

    def test_solve_matvec(self):
        A, _    = designed_matrix()
        result  = ArnoldiEigensolver(k=2, which='LI').solve(matvec=lambda x: A @ x, n=A.shape[0])
        assert_same_set(result.eigenvalues, [1 + 6j, 1 - 6j], atol=1e-8)

    def test_matvec_requires_n(self):
        with pytest.raises(ValueError):
            ArnoldiEigensolver(k=2).solve(matvec=lambda x: x)

    def test_return_krylov(self):
        A, _            = designed_matrix()
        result, V       = ArnoldiEigensolver(k=2, ncv=12).solve(A, return_krylov=True)
        assert V.shape == (50, 12)
        np.testing.assert_allclose(V.T @ V, np.eye(12), atol=1e-10)
        assert result.subspacevectors.shape == (50, 12)

    def test_default_ncv(self):
        assert ArnoldiEigensolver.default_ncv(100, 3) == 20
        assert ArnoldiEigensolver.default_ncv(100, 15) == 31
        assert ArnoldiEigensolver.default_ncv(12, 3) == 12

    def test_verbose_summary(self):
        logger  = RecordingLogger()
        A       = np.diag(np.arange(1.0, 31.0))
        ArnoldiEigensolver(k=2, logger=logger, verbose=True).solve(A)
        messages = [msg for _, msg in logger.records]
        assert any("Arnoldi Summary" in m for m in messages)
        assert any("iterations" in m for m in messages)

    def test_invalid_k(self):
        with pytest.raises(ValueError):
            ArnoldiEigensolver(k=0)

# ---------------
#! End of file
# ---------------
