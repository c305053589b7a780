"""
Test suite for the shift-and-invert mode.

The solver works on (A - sigma I)^{-1}; the eigenvalues it reports must be
those of A closest to sigma, with eigenvectors of A.
"""

import numpy as np
import pytest
import scipy.sparse as sp

from geneigs.algebra.eigen.shift_invert import (GenEigsRealShiftSolver, ShiftInvertEigensolver,
                                                as_shift_solve_operator)
from geneigs.algebra.eigen.operators import DenseGenRealShiftSolve, SparseGenRealShiftSolve
from geneigs.algebra.eigen.ritz_sort import RitzSortStrategy, ShiftInvertRitzSort
from geneigs.algebra.eigen.result import CompInfo, EigenErrorMsg, HessenbergLogicError

# ----------------------------------
#! Helper functions
# ----------------------------------

def shifted_test_matrix(n=50, seed=5):
    """Upper triangular matrix with eigenvalues 1, 2, ..., n."""
    rng = np.random.default_rng(seed)
    return np.diag(np.arange(1.0, n + 1)) + 0.1 * np.triu(rng.standard_normal((n, n)), 1)

# ----------------------------------
#! Ritz value transform
# ----------------------------------

class TestShiftInvertRitzSort:

    def test_transform_first_nev(self):
        ritz    = np.array([2.0, -0.5, 0.25j, 7.0], dtype=complex)
        ShiftInvertRitzSort(1.5).transform(ritz, 3)
        np.testing.assert_allclose(ritz, [2.0, -0.5, 1.5 - 4.0j, 7.0])

    def test_default_strategy_keeps_values(self):
        ritz    = np.array([3.0, 1.0, 2.0], dtype=complex)
        strat   = RitzSortStrategy()
        strat.transform(ritz, 3)
        np.testing.assert_array_equal(ritz, [3.0, 1.0, 2.0])
        np.testing.assert_array_equal(strat.sort(ritz, 3, 'SR'), [1, 2, 0])

# ----------------------------------
#! Shift-solve operators
# ----------------------------------

class TestShiftSolveOperators:

    @pytest.mark.parametrize("sparse", [False, True])
    def test_solves_shifted_system(self, sparse):
        A       = shifted_test_matrix(20)
        op      = SparseGenRealShiftSolve(sp.csr_matrix(A)) if sparse else DenseGenRealShiftSolve(A)
        op.set_shift(3.3)
        x       = np.random.default_rng(0).standard_normal(20)
        y       = op.perform_op(x)
        np.testing.assert_allclose((A - 3.3 * np.eye(20)) @ y, x, atol=1e-10)

    @pytest.mark.parametrize("sparse", [False, True])
    def test_singular_shift(self, sparse):
        A       = np.diag(np.arange(1.0, 11.0))
        op      = SparseGenRealShiftSolve(sp.csr_matrix(A)) if sparse else DenseGenRealShiftSolve(A)
        with pytest.raises(ValueError) as excinfo:
            op.set_shift(5.0)
        assert excinfo.value.code is EigenErrorMsg.SINGULAR_SHIFT

    def test_solve_before_shift(self):
        with pytest.raises(HessenbergLogicError):
            DenseGenRealShiftSolve(np.eye(4)).perform_op(np.ones(4))

    def test_dispatch(self):
        assert isinstance(as_shift_solve_operator(np.eye(4)), DenseGenRealShiftSolve)
        assert isinstance(as_shift_solve_operator(sp.eye(4, format='csr')), SparseGenRealShiftSolve)
        with pytest.raises(ValueError):
            as_shift_solve_operator(lambda x: x)

# ----------------------------------
#! Solver
# ----------------------------------

class TestGenEigsRealShiftSolver:

    @pytest.mark.parametrize("sparse", [False, True])
    def test_nearest_eigenvalues(self, sparse):
        A       = shifted_test_matrix()
        op      = sp.csr_matrix(A) if sparse else A
        solver  = GenEigsRealShiftSolver(op, nev=3, ncv=12, sigma=10.2)
        solver.init()
        nconv   = solver.compute(selection='LM', tol=1e-12, sorting='SM')

        assert nconv == 3
        assert solver.info() is CompInfo.SUCCESSFUL
        assert solver.sigma == 10.2
        evals   = solver.eigenvalues()
        np.testing.assert_allclose(np.sort(evals.real), [9.0, 10.0, 11.0], atol=1e-8)
        np.testing.assert_allclose(evals.imag, 0.0, atol=1e-10)
        for lam, v in zip(evals, solver.eigenvectors().T):
            assert np.linalg.norm(A @ v - lam * v) < 1e-8

    def test_order_by_magnitude(self):
        A       = shifted_test_matrix()
        solver  = GenEigsRealShiftSolver(A, nev=3, ncv=12, sigma=10.2)
        solver.init()
        solver.compute(selection='LM', sorting='LM')
        np.testing.assert_allclose(solver.eigenvalues().real, [11.0, 10.0, 9.0], atol=1e-8)

    def test_singular_shift(self):
        with pytest.raises(ValueError):
            GenEigsRealShiftSolver(np.diag(np.arange(1.0, 11.0)), nev=2, ncv=6, sigma=5.0)

# ----------------------------------
#! Keyword front end
# ----------------------------------

class TestShiftInvertEigensolver:

    def test_solve(self):
        A       = shifted_test_matrix()
        result  = ShiftInvertEigensolver(k=4, sigma=25.4, tol=1e-12, seed=1).solve(A)

        assert result.converged
        np.testing.assert_allclose(np.sort(result.eigenvalues.real), [24.0, 25.0, 26.0, 27.0], atol=1e-8)
        assert np.all(result.residual_norms < 1e-8)
        assert result.max_residual < 1e-8

    def test_sparse_with_krylov(self):
        A               = sp.csr_matrix(shifted_test_matrix())
        result, V       = ShiftInvertEigensolver(k=2, sigma=0.0, ncv=10).solve(A, return_krylov=True)
        np.testing.assert_allclose(np.sort(result.eigenvalues.real), [1.0, 2.0], atol=1e-8)
        assert V.shape == (50, 10)

# ---------------
#! End of file
# ---------------
