r"""
Eigen-decomposition of upper Hessenberg matrices

Computes all eigenvalues and unit-norm eigenvectors of a small dense square
matrix that is known to be upper Hessenberg (zero below the first
sub-diagonal). This is the projected matrix $H$ of an Arnoldi factorization,
decomposed once per outer iteration of the restarted solvers.

Real matrices:
    1. $H$ is scaled by its largest absolute entry.
    2. Real Schur form $H = U T U^T$ (quasi-triangular $T$ with 1x1 and 2x2
       diagonal blocks).
    3. 1x1 blocks give real eigenvalues, 2x2 blocks give an exactly conjugate
       pair $(a + ib, a - ib)$, the one with positive imaginary part first.
    4. Eigenvectors of $T$ by back-substitution, then multiplied by $U$.

    Real eigenvalues have an imaginary part that is exactly zero and the two
    members of a complex pair are exact conjugates. Callers may therefore test
    ``v.imag != 0`` and ``v2 == conj(v1)`` without tolerances.

Complex matrices:
    1. Complex Schur form $H = U T U^H$ with upper-triangular $T$.
    2. Eigenvalues are ``diag(T)``, eigenvectors $U X$ with $X$ unit upper
       triangular and $T X = X \, \mathrm{diag}(T)$.
    3. Eigenpairs are ordered by ascending magnitude.

References:
    - Golub & Van Loan, "Matrix Computations" (4th ed.), Chapter 7
    - Wilkinson & Reinsch, "Handbook for Automatic Computation", hqr2
"""

from typing import Optional, Type, Union

import numpy as np
import scipy.linalg as scipy_linalg
from numpy.typing import NDArray

from ..utils import num_traits, working_dtype, real_dtype, complex_dtype, is_complex_dtype
from .result import (EigenArgumentError, HessenbergLogicError, HessenbergEigenError,
                     EigenErrorMsg)

# ----------------------------------------------------------------------------------------
#! Helpers
# ----------------------------------------------------------------------------------------

def _check_square(mat: NDArray, who: str) -> None:
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise EigenArgumentError(EigenErrorMsg.NOT_SQUARE, f"{who}: matrix must be square, got shape {mat.shape}")

def _normalize_columns(mat: NDArray) -> NDArray:
    ''' Normalize each column in place, zero columns are left untouched. '''
    norms               = np.linalg.norm(mat, axis=0)
    norms[norms == 0]   = 1.0
    mat                /= norms
    return mat

# ----------------------------------------------------------------------------------------
#! Real matrices
# ----------------------------------------------------------------------------------------

class RealHessenbergEigen:
    """
    Eigenvalues and eigenvectors of a real upper Hessenberg matrix.

    Args:
        mat: Optional matrix, decomposed immediately when given.

    Example:
        >>> H       = np.triu(np.random.randn(6, 6), -1)
        >>> decomp  = RealHessenbergEigen(H)
        >>> evals   = decomp.eigenvalues()     # complex, length 6
        >>> evecs   = decomp.eigenvectors()    # complex, 6 x 6, unit columns
    """

    def __init__(self, mat: Optional[NDArray] = None):
        self._n         : int               = 0
        self._mat_T     : Optional[NDArray] = None  # real Schur form, overwritten by the back-substitution
        self._eivec     : Optional[NDArray] = None  # Schur vectors, then eigenvectors in real storage
        self._eivalues  : Optional[NDArray] = None
        self._computed  : bool              = False
        if mat is not None:
            self.compute(mat)

    # ------------------------------------------------------------------------------------

    def compute(self, mat: NDArray) -> 'RealHessenbergEigen':
        """
        Decompose ``mat``.

        Raises:
            EigenArgumentError (ValueError):
                If ``mat`` is not square.
            HessenbergEigenError (RuntimeError):
                If the Schur reduction fails.
        """
        mat = np.asarray(mat)
        _check_square(mat, "RealHessenbergEigen")
        if is_complex_dtype(mat.dtype):
            raise EigenArgumentError(EigenErrorMsg.INVALID_DTYPE, "RealHessenbergEigen: matrix must be real, use ComplexHessenbergEigen")

        dtype           = working_dtype(mat.dtype)
        self._n         = mat.shape[0]
        self._computed  = False

        # Scale matrix prior to the Schur decomposition
        scale           = float(np.max(np.abs(mat))) if self._n > 0 else 0.0
        if scale == 0.0:
            scale = 1.0

        try:
            mat_T, mat_U = scipy_linalg.schur(mat.astype(dtype) / scale, output='real')
        except np.linalg.LinAlgError as e:
            raise HessenbergEigenError(EigenErrorMsg.SCHUR_FAILED, f"UpperHessenbergEigen: eigen decomposition failed ({e})") from e

        self._mat_T     = np.array(mat_T, dtype=dtype, order='C')
        self._eivec     = np.array(mat_U, dtype=dtype, order='C')
        self._eivalues  = self._eigenvalues_from_schur(self._mat_T, complex_dtype(dtype))

        self._compute_eigenvectors(num_traits(dtype).eps)

        # Scale eigenvalues back
        self._eivalues *= scale
        self._computed  = True
        return self

    # ------------------------------------------------------------------------------------

    @staticmethod
    def _eigenvalues_from_schur(mat_T: NDArray, cdtype) -> NDArray:
        '''
        Read the eigenvalues off the diagonal blocks of the real Schur form.
        '''
        n           = mat_T.shape[0]
        eivalues    = np.zeros(n, dtype=cdtype)
        i           = 0
        while i < n:
            if i == n - 1 or mat_T[i + 1, i] == 0:
                eivalues[i] = mat_T[i, i]
                i          += 1
                continue

            p       = 0.5 * (mat_T[i, i] - mat_T[i + 1, i + 1])
            # z = sqrt(|p^2 + T[i+1, i] * T[i, i+1]|) without overflow
            t0      = mat_T[i + 1, i]
            t1      = mat_T[i, i + 1]
            maxval  = max(abs(p), abs(t0), abs(t1))
            t0     /= maxval
            t1     /= maxval
            p0      = p / maxval
            z       = maxval * np.sqrt(abs(p0 * p0 + t0 * t1))

            eivalues[i]     = complex(mat_T[i + 1, i + 1] + p,  z)
            eivalues[i + 1] = complex(mat_T[i + 1, i + 1] + p, -z)
            i              += 2
        return eivalues

    # ------------------------------------------------------------------------------------

    def _compute_eigenvectors(self, eps: float) -> None:
        '''
        Back-substitution on the quasi-triangular T, from the last column upward.
        Column j of the result holds the eigenvector of eigenvalue j for real
        eigenvalues, and (real part, imaginary part) in columns (j, j+1) for a
        complex pair.
        '''
        T       = self._mat_T
        ev      = self._eivalues
        size    = self._n

        norm    = 0.0
        for j in range(size):
            norm += float(np.sum(np.abs(T[j, max(j - 1, 0):])))

        # Nothing to back-substitute, keep the Schur vectors
        if norm == 0.0:
            return

        n = size - 1
        while n >= 0:
            p = ev[n].real
            q = ev[n].imag

            if q == 0:
                self._real_column(T, ev, n, p, eps, norm)
            elif q < 0 and n > 0:
                self._complex_columns(T, ev, n, p, q, eps, norm)
                # a conjugate pair occupies two columns
                n -= 1
            n -= 1

        # Back transformation to get eigenvectors of the original matrix
        self._eivec = self._eivec @ np.triu(T)

    @staticmethod
    def _real_column(T: NDArray, ev: NDArray, n: int, p: float, eps: float, norm: float) -> None:
        size        = T.shape[0]
        lastr       = 0.0
        lastw       = 0.0
        l           = n
        T[n, n]     = 1.0
        for i in range(n - 1, -1, -1):
            w = T[i, i] - p
            r = T[i, l:n + 1] @ T[l:n + 1, n]

            if ev[i].imag < 0:
                lastw = w
                lastr = r
                continue

            l = i
            if ev[i].imag == 0:
                T[i, n] = -r / w if w != 0 else -r / (eps * norm)
            else:
                # Solve the real 2x2 system of the block (i, i+1)
                x       = T[i, i + 1]
                y       = T[i + 1, i]
                denom   = (ev[i].real - p) * (ev[i].real - p) + ev[i].imag * ev[i].imag
                t       = (x * lastr - lastw * r) / denom
                T[i, n] = t
                if abs(x) > abs(lastw):
                    T[i + 1, n] = (-r - w * t) / x
                else:
                    T[i + 1, n] = (-lastr - y * t) / lastw

            # Overflow control
            t = abs(T[i, n])
            if (eps * t) * t > 1:
                T[i:size, n] /= t

    @staticmethod
    def _complex_columns(T: NDArray, ev: NDArray, n: int, p: float, q: float, eps: float, norm: float) -> None:
        size    = T.shape[0]
        lastra  = 0.0
        lastsa  = 0.0
        lastw   = 0.0
        l       = n - 1

        # Last vector component imaginary so matrix is triangular
        if abs(T[n, n - 1]) > abs(T[n - 1, n]):
            T[n - 1, n - 1] = q / T[n, n - 1]
            T[n - 1, n]     = -(T[n, n] - p) / T[n, n - 1]
        else:
            cc              = complex(0.0, -T[n - 1, n]) / complex(T[n - 1, n - 1] - p, q)
            T[n - 1, n - 1] = cc.real
            T[n - 1, n]     = cc.imag
        T[n, n - 1] = 0.0
        T[n, n]     = 1.0

        for i in range(n - 2, -1, -1):
            ra  = T[i, l:n + 1] @ T[l:n + 1, n - 1]
            sa  = T[i, l:n + 1] @ T[l:n + 1, n]
            w   = T[i, i] - p

            if ev[i].imag < 0:
                lastw   = w
                lastra  = ra
                lastsa  = sa
                continue

            l = i
            if ev[i].imag == 0:
                cc          = complex(-ra, -sa) / complex(w, q)
                T[i, n - 1] = cc.real
                T[i, n]     = cc.imag
            else:
                # Solve the complex 2x2 system of the block (i, i+1)
                x   = T[i, i + 1]
                y   = T[i + 1, i]
                vr  = (ev[i].real - p) * (ev[i].real - p) + ev[i].imag * ev[i].imag - q * q
                vi  = (ev[i].real - p) * 2.0 * q
                if vr == 0 and vi == 0:
                    vr = eps * norm * (abs(w) + abs(q) + abs(x) + abs(y) + abs(lastw))

                cc          = complex(x * lastra - lastw * ra + q * sa, x * lastsa - lastw * sa - q * ra) / complex(vr, vi)
                T[i, n - 1] = cc.real
                T[i, n]     = cc.imag
                if abs(x) > (abs(lastw) + abs(q)):
                    T[i + 1, n - 1] = (-ra - w * T[i, n - 1] + q * T[i, n]) / x
                    T[i + 1, n]     = (-sa - w * T[i, n] - q * T[i, n - 1]) / x
                else:
                    cc              = complex(-lastra - y * T[i, n - 1], -lastsa - y * T[i, n]) / complex(lastw, q)
                    T[i + 1, n - 1] = cc.real
                    T[i + 1, n]     = cc.imag

            # Overflow control
            t = max(abs(T[i, n - 1]), abs(T[i, n]))
            if (eps * t) * t > 1:
                T[i:size, n - 1:n + 1] /= t

    # ------------------------------------------------------------------------------------

    def eigenvalues(self) -> NDArray:
        """
        Complex eigenvalues, conjugate pairs adjacent (positive imaginary part first).
        """
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergEigen: need to call compute() first")
        return self._eivalues

    def eigenvectors(self) -> NDArray:
        """
        Complex unit-norm eigenvectors as columns, matching ``eigenvalues()``.
        """
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergEigen: need to call compute() first")

        n       = self._n
        ev      = self._eivalues
        evec    = self._eivec
        mat_V   = np.empty((n, n), dtype=ev.dtype)
        j       = 0
        while j < n:
            # imaginary part of a real eigenvalue is exactly zero
            if ev[j].imag == 0 or j + 1 == n:
                mat_V[:, j] = evec[:, j]
                j          += 1
            else:
                mat_V[:, j]     = evec[:, j] + 1j * evec[:, j + 1]
                mat_V[:, j + 1] = evec[:, j] - 1j * evec[:, j + 1]
                j              += 2
        return _normalize_columns(mat_V)

# ----------------------------------------------------------------------------------------
#! Complex matrices
# ----------------------------------------------------------------------------------------

class ComplexHessenbergEigen:
    """
    Eigenvalues and eigenvectors of a complex upper Hessenberg matrix.

    Eigenpairs are returned in ascending order of eigenvalue magnitude.
    """

    def __init__(self, mat: Optional[NDArray] = None):
        self._n         : int               = 0
        self._eivec     : Optional[NDArray] = None
        self._eivalues  : Optional[NDArray] = None
        self._computed  : bool              = False
        if mat is not None:
            self.compute(mat)

    # ------------------------------------------------------------------------------------

    def compute(self, mat: NDArray) -> 'ComplexHessenbergEigen':
        """
        Decompose ``mat``.

        Raises:
            EigenArgumentError (ValueError):
                If ``mat`` is not square.
            HessenbergEigenError (RuntimeError):
                If the complex Schur reduction fails.
        """
        mat = np.asarray(mat)
        _check_square(mat, "ComplexHessenbergEigen")

        cdtype          = complex_dtype(mat.dtype)
        self._n         = mat.shape[0]
        self._computed  = False

        try:
            mat_T, mat_U = scipy_linalg.schur(mat.astype(cdtype), output='complex')
        except np.linalg.LinAlgError as e:
            raise HessenbergEigenError(EigenErrorMsg.SCHUR_FAILED, f"UpperHessenbergEigen: eigen decomposition failed ({e})") from e

        traits          = num_traits(cdtype)
        self._eivalues  = np.array(np.diag(mat_T), dtype=cdtype)
        self._eivec     = self._compute_eigenvectors(mat_T, mat_U, float(np.linalg.norm(mat_T)), traits.eps, traits.tiny)
        self._sort_eigenvalues()
        self._computed  = True
        return self

    @staticmethod
    def _compute_eigenvectors(mat_T: NDArray, mat_U: NDArray, matrixnorm: float, eps: float, tiny: float) -> NDArray:
        '''
        X unit upper triangular with T X = X D, D = diag(T); eigenvectors are U X.
        '''
        n           = mat_T.shape[0]
        matrixnorm  = max(matrixnorm, tiny)
        mat_X       = np.zeros((n, n), dtype=mat_T.dtype)
        for k in range(n - 1, -1, -1):
            mat_X[k, k] = 1.0
            for i in range(k - 1, -1, -1):
                xik = -mat_T[i, k]
                if k - i - 1 > 0:
                    xik -= mat_T[i, i + 1:k] @ mat_X[i + 1:k, k]
                z = mat_T[i, i] - mat_T[k, k]
                if z == 0:
                    # equal eigenvalues, use a small value to prevent division by zero
                    z = eps * matrixnorm
                mat_X[i, k] = xik / z

        return _normalize_columns(mat_U @ mat_X)

    def _sort_eigenvalues(self) -> None:
        ''' Selection sort by ascending magnitude, eigenvectors follow. '''
        ev  = self._eivalues
        vec = self._eivec
        n   = ev.shape[0]
        for i in range(n):
            k = int(np.argmin(np.abs(ev[i:])))
            if k != 0:
                k              += i
                ev[[i, k]]      = ev[[k, i]]
                vec[:, [i, k]]  = vec[:, [k, i]]

    # ------------------------------------------------------------------------------------

    def eigenvalues(self) -> NDArray:
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergEigen: need to call compute() first")
        return self._eivalues

    def eigenvectors(self) -> NDArray:
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergEigen: need to call compute() first")
        return self._eivec

# ----------------------------------------------------------------------------------------
#! Dispatch on the scalar type
# ----------------------------------------------------------------------------------------

HessenbergEigenType = Union[Type[RealHessenbergEigen], Type[ComplexHessenbergEigen]]

def hessenberg_eigen_for(dtype) -> HessenbergEigenType:
    '''
    Decomposer class for matrices of scalar type ``dtype``.
    '''
    return ComplexHessenbergEigen if is_complex_dtype(dtype) else RealHessenbergEigen

class UpperHessenbergEigen:
    """
    Eigen-decomposition of an upper Hessenberg matrix of either scalar type.

    The real or complex algorithm is chosen from the dtype of the matrix
    passed to ``compute``.

    Example:
        >>> decomp = UpperHessenbergEigen(H)
        >>> lam, V = decomp.eigenvalues(), decomp.eigenvectors()
        >>> np.allclose(H @ V, V * lam)
        True
    """

    def __init__(self, mat: Optional[NDArray] = None):
        self._impl = None
        if mat is not None:
            self.compute(mat)

    def compute(self, mat: NDArray) -> 'UpperHessenbergEigen':
        mat         = np.asarray(mat)
        _check_square(mat, "UpperHessenbergEigen")
        self._impl  = hessenberg_eigen_for(mat.dtype)(mat)
        return self

    def eigenvalues(self) -> NDArray:
        if self._impl is None:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergEigen: need to call compute() first")
        return self._impl.eigenvalues()

    def eigenvectors(self) -> NDArray:
        if self._impl is None:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergEigen: need to call compute() first")
        return self._impl.eigenvectors()

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
