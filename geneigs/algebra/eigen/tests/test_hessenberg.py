"""
Test suite for the upper Hessenberg eigen-decomposition.

Checks the eigenpairs against the defining relation H v = lambda v, compares
the spectrum with numpy.linalg.eigvals, and validates the exact conjugate
pairing and ordering guarantees of the real and complex paths.
"""

import numpy as np
import pytest

from geneigs.algebra.eigen.hessenberg import (UpperHessenbergEigen, RealHessenbergEigen,
                                              ComplexHessenbergEigen, hessenberg_eigen_for)
from geneigs.algebra.eigen.result import HessenbergLogicError, EigenSolverError

# ----------------------------------
#! Helper functions
# ----------------------------------

def random_hessenberg(n, seed=42, complex_=False):
    """Random upper Hessenberg matrix."""
    rng = np.random.default_rng(seed)
    H   = rng.standard_normal((n, n))
    if complex_:
        H = H + 1j * rng.standard_normal((n, n))
    return np.triu(H, -1)

def assert_same_spectrum(found, expected, atol):
    """Greedy matching of two multisets of complex numbers."""
    found       = list(np.asarray(found))
    assert len(found) == len(expected)
    for lam in expected:
        dist    = [abs(lam - f) for f in found]
        j       = int(np.argmin(dist))
        assert dist[j] < atol, f"eigenvalue {lam} not found (closest distance {dist[j]:.2e})"
        found.pop(j)

# ----------------------------------
#! Real path
# ----------------------------------

class TestRealHessenbergEigen:
    """Real upper Hessenberg matrices."""

    @pytest.mark.parametrize("n", [1, 2, 3, 10, 30])
    def test_eigenpairs(self, n):
        H       = random_hessenberg(n, seed=n)
        decomp  = UpperHessenbergEigen(H)
        evals   = decomp.eigenvalues()
        evecs   = decomp.eigenvectors()
        normH   = np.linalg.norm(H)

        assert evals.shape == (n,)
        assert evecs.shape == (n, n)
        assert np.iscomplexobj(evals) and np.iscomplexobj(evecs)
        for j in range(n):
            resid = np.linalg.norm(H @ evecs[:, j] - evals[j] * evecs[:, j])
            assert resid <= 1e-10 * max(normH, 1.0)
        np.testing.assert_allclose(np.linalg.norm(evecs, axis=0), 1.0, atol=1e-12)

        assert_same_spectrum(evals, np.linalg.eigvals(H), atol=1e-9 * max(normH, 1.0))

    def test_conjugate_pairs_are_exact(self):
        H       = random_hessenberg(20, seed=7)
        decomp  = RealHessenbergEigen(H)
        evals   = decomp.eigenvalues()
        evecs   = decomp.eigenvectors()

        assert np.any(evals.imag != 0), "test matrix should have complex eigenvalues"
        j = 0
        while j < len(evals):
            if evals[j].imag == 0:
                j += 1
                continue
            # positive imaginary part first, partner is the exact conjugate
            assert evals[j].imag > 0
            assert evals[j + 1] == np.conj(evals[j])
            np.testing.assert_array_equal(evecs[:, j + 1], np.conj(evecs[:, j]))
            j += 2

    def test_rotation_block(self):
        H       = np.array([[0.0, -1.0], [1.0, 0.0]])
        evals   = UpperHessenbergEigen(H).eigenvalues()
        assert evals[0].imag > 0
        assert evals[1] == np.conj(evals[0])
        np.testing.assert_allclose(evals, [1j, -1j], atol=1e-14)

    def test_triangular_matrix(self):
        H       = np.triu(np.arange(1.0, 26.0).reshape(5, 5))
        decomp  = UpperHessenbergEigen(H)
        evals   = decomp.eigenvalues()
        assert np.all(evals.imag == 0)
        assert_same_spectrum(evals, np.diag(H), atol=1e-10)

    def test_scaling_is_undone(self):
        H       = 1e6 * random_hessenberg(8, seed=3)
        evals   = UpperHessenbergEigen(H).eigenvalues()
        assert_same_spectrum(evals, np.linalg.eigvals(H), atol=1e-8 * np.linalg.norm(H))

    def test_zero_matrix(self):
        H       = np.zeros((4, 4))
        decomp  = UpperHessenbergEigen(H)
        np.testing.assert_array_equal(decomp.eigenvalues(), np.zeros(4))
        np.testing.assert_allclose(np.linalg.norm(decomp.eigenvectors(), axis=0), 1.0)

    def test_integer_input(self):
        H       = np.array([[2, 1, 0], [1, 3, 1], [0, 1, 4]])
        evals   = UpperHessenbergEigen(H).eigenvalues()
        assert_same_spectrum(evals, np.linalg.eigvals(H.astype(float)), atol=1e-12)

# ----------------------------------
#! Complex path
# ----------------------------------

class TestComplexHessenbergEigen:
    """Complex upper Hessenberg matrices."""

    @pytest.mark.parametrize("n", [1, 4, 12, 25])
    def test_eigenpairs(self, n):
        H       = random_hessenberg(n, seed=100 + n, complex_=True)
        decomp  = UpperHessenbergEigen(H)
        evals   = decomp.eigenvalues()
        evecs   = decomp.eigenvectors()
        normH   = np.linalg.norm(H)

        for j in range(n):
            resid = np.linalg.norm(H @ evecs[:, j] - evals[j] * evecs[:, j])
            assert resid <= 1e-10 * normH
        np.testing.assert_allclose(np.linalg.norm(evecs, axis=0), 1.0, atol=1e-12)
        assert_same_spectrum(evals, np.linalg.eigvals(H), atol=1e-9 * normH)

    def test_ascending_magnitude(self):
        H       = random_hessenberg(15, seed=5, complex_=True)
        evals   = ComplexHessenbergEigen(H).eigenvalues()
        assert np.all(np.diff(np.abs(evals)) >= 0)

    def test_repeated_eigenvalue(self):
        # defective matrix: eigenvalue 2 twice with a single eigenvector
        H       = np.array([[2.0, 1.0], [0.0, 2.0]], dtype=complex)
        decomp  = ComplexHessenbergEigen(H)
        evecs   = decomp.eigenvectors()
        np.testing.assert_allclose(decomp.eigenvalues(), [2.0, 2.0])
        assert np.all(np.isfinite(evecs))
        np.testing.assert_allclose(np.linalg.norm(evecs, axis=0), 1.0)

# ----------------------------------
#! Errors and dispatch
# ----------------------------------

class TestHessenbergErrors:

    @pytest.mark.parametrize("cls", [UpperHessenbergEigen, RealHessenbergEigen, ComplexHessenbergEigen])
    def test_query_before_compute(self, cls):
        decomp = cls()
        with pytest.raises(HessenbergLogicError):
            decomp.eigenvalues()
        with pytest.raises(RuntimeError):
            decomp.eigenvectors()

    @pytest.mark.parametrize("cls", [UpperHessenbergEigen, RealHessenbergEigen, ComplexHessenbergEigen])
    def test_not_square(self, cls):
        with pytest.raises(ValueError):
            cls(np.zeros((3, 4)))

    def test_error_carries_code(self):
        with pytest.raises(EigenSolverError) as excinfo:
            UpperHessenbergEigen().eigenvalues()
        assert excinfo.value.code.name == 'NOT_COMPUTED'

    def test_dispatch_by_dtype(self):
        assert hessenberg_eigen_for(np.float64) is RealHessenbergEigen
        assert hessenberg_eigen_for(np.float32) is RealHessenbergEigen
        assert hessenberg_eigen_for(np.complex128) is ComplexHessenbergEigen

# ---------------
#! End of file
# ---------------
