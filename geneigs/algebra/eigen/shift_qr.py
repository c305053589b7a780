r"""
Shifted QR steps on upper Hessenberg matrices

Used by the implicit restart of the Arnoldi method. A step with shift $\mu$
factorizes $H - \mu I = Q R$ and forms $Q^H H Q = R Q + \mu I$, which is again
upper Hessenberg and similar to $H$. The orthogonal factor is accumulated by
the caller through ``apply_YQ``.

Engines:
    - ``UpperHessenbergQR`` : single shift, Givens rotations, real or complex.
    - ``DoubleShiftQR``     : two complex conjugate shifts $\mu, \bar\mu$ in real
                              arithmetic (Francis step), given through
                              $s = 2\,\mathrm{Re}\,\mu$ and $t = |\mu|^2$.

Each engine exposes ``n_shifts``, the number of shifts one step consumes.

References:
    - Golub & Van Loan, "Matrix Computations" (4th ed.), Sections 7.4-7.5
    - Watkins, "Fundamentals of Matrix Computations", Section 5.7
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..utils import num_traits, working_dtype, is_complex_dtype, complex_dtype
from .result import EigenArgumentError, HessenbergLogicError, EigenErrorMsg

# ----------------------------------------------------------------------------------------

def _check_square(mat: NDArray, who: str) -> None:
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise EigenArgumentError(EigenErrorMsg.NOT_SQUARE, f"{who}: matrix must be square, got shape {mat.shape}")

# ----------------------------------------------------------------------------------------
#! Single shift
# ----------------------------------------------------------------------------------------

class UpperHessenbergQR:
    r"""
    QR decomposition of $H - \mu I$ by Givens rotations.

    The rotation acting on rows/columns $(i, i+1)$ is

    $$ G_i = \begin{pmatrix} c & -\bar s \\ s & \bar c \end{pmatrix}, \qquad
       c = a / r, \; s = b / r, \; r = \sqrt{|a|^2 + |b|^2}, $$

    with $a = R_{ii}$, $b = R_{i+1,i}$, so that $G_i^H (a, b)^T = (r, 0)^T$.
    $Q = G_0 G_1 \cdots G_{n-2}$.

    Example:
        >>> qr = UpperHessenbergQR(H, shift=0.5)
        >>> H1 = qr.matrix_QtHQ()       # similar to H, upper Hessenberg
        >>> Y  = np.eye(len(H))
        >>> qr.apply_YQ(Y)              # Y is now Q
    """

    n_shifts = 1

    def __init__(self, mat: Optional[NDArray] = None, shift=0.0):
        self._n         = 0
        self._shift     = 0.0
        self._mat_R     : Optional[NDArray] = None
        self._rot_cos   : Optional[NDArray] = None
        self._rot_sin   : Optional[NDArray] = None
        self._computed  = False
        if mat is not None:
            self.compute(mat, shift)

    def compute(self, mat: NDArray, shift=0.0) -> 'UpperHessenbergQR':
        """
        Factorize ``mat - shift * I``. Only the upper Hessenberg part of ``mat`` is read.
        """
        mat = np.asarray(mat)
        _check_square(mat, "UpperHessenbergQR")

        if is_complex_dtype(mat.dtype) or np.iscomplexobj(shift):
            dtype = complex_dtype(mat.dtype)
        else:
            dtype = working_dtype(mat.dtype)

        n               = mat.shape[0]
        self._n         = n
        self._shift     = shift
        mat_R           = np.triu(mat.astype(dtype), -1)
        mat_R[np.diag_indices(n)] -= shift

        rot_cos         = np.ones(max(n - 1, 0), dtype=dtype)
        rot_sin         = np.zeros(max(n - 1, 0), dtype=dtype)
        for i in range(n - 1):
            a = mat_R[i, i]
            b = mat_R[i + 1, i]
            r = np.hypot(abs(a), abs(b))
            if r == 0:
                # nothing to eliminate, identity rotation
                continue
            c, s        = a / r, b / r
            rot_cos[i]  = c
            rot_sin[i]  = s

            row_i                   = mat_R[i, i:].copy()
            row_j                   = mat_R[i + 1, i:].copy()
            mat_R[i, i:]            = np.conj(c) * row_i + np.conj(s) * row_j
            mat_R[i + 1, i:]        = -s * row_i + c * row_j
            mat_R[i + 1, i]         = 0

        self._mat_R     = mat_R
        self._rot_cos   = rot_cos
        self._rot_sin   = rot_sin
        self._computed  = True
        return self

    # ------------------------------------------------------------------------------------

    def _check_computed(self):
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "UpperHessenbergQR: need to call compute() first")

    def matrix_R(self) -> NDArray:
        ''' Upper triangular factor R. '''
        self._check_computed()
        return self._mat_R

    def matrix_QtHQ(self) -> NDArray:
        r"""
        $Q^H H Q = R Q + \mu I$, exactly upper Hessenberg.
        """
        self._check_computed()
        n       = self._n
        mat_RQ  = self._mat_R.copy()
        for i in range(n - 1):
            c, s                = self._rot_cos[i], self._rot_sin[i]
            col_i               = mat_RQ[:i + 2, i].copy()
            col_j               = mat_RQ[:i + 2, i + 1].copy()
            mat_RQ[:i + 2, i]       = c * col_i + s * col_j
            mat_RQ[:i + 2, i + 1]   = -np.conj(s) * col_i + np.conj(c) * col_j
        mat_RQ[np.diag_indices(n)] += self._shift
        return mat_RQ

    def apply_YQ(self, Y: NDArray) -> NDArray:
        """
        Overwrite ``Y`` (any number of rows, n columns) with ``Y @ Q``.
        """
        self._check_computed()
        for i in range(self._n - 1):
            c, s            = self._rot_cos[i], self._rot_sin[i]
            col_i           = Y[:, i].copy()
            col_j           = Y[:, i + 1].copy()
            Y[:, i]         = c * col_i + s * col_j
            Y[:, i + 1]     = -np.conj(s) * col_i + np.conj(c) * col_j
        return Y

# ----------------------------------------------------------------------------------------
#! Double shift
# ----------------------------------------------------------------------------------------

class DoubleShiftQR:
    r"""
    Francis double-shift QR step on a real upper Hessenberg matrix.

    Performs the implicit step with shifts $\mu, \bar\mu$, i.e. with
    $M = H^2 - s H + t I$, entirely in real arithmetic. Negligible sub-diagonal
    entries ($|h| \le$ tiny or $|h| \le \epsilon (|H_{ii}| + |H_{i+1,i+1}|)$)
    are set to zero and each unreduced block is chased separately with
    3x3 Householder reflectors, closing with a 2x2 reflector.

    Example:
        >>> mu  = 0.3 + 0.7j
        >>> dqr = DoubleShiftQR(H, 2 * mu.real, abs(mu) ** 2)
        >>> H2  = dqr.matrix_QtHQ()
    """

    n_shifts = 2

    def __init__(self, mat: Optional[NDArray] = None, s: float = 0.0, t: float = 0.0):
        self._n         = 0
        self._mat_H     : Optional[NDArray] = None
        self._shift_s   = 0.0
        self._shift_t   = 0.0
        self._ref_u     : Optional[NDArray] = None   # reflector vectors, one column per position
        self._ref_nr    : Optional[NDArray] = None   # 1 (identity), 2 or 3 rows affected
        self._near_0    = 0.0
        self._eps       = 0.0
        self._computed  = False
        if mat is not None:
            self.compute(mat, s, t)

    # ------------------------------------------------------------------------------------

    def compute(self, mat: NDArray, s: float, t: float) -> 'DoubleShiftQR':
        """
        Perform the double-shift step on ``mat`` with shift parameters ``s`` and ``t``.
        """
        mat = np.asarray(mat)
        _check_square(mat, "DoubleShiftQR")
        if is_complex_dtype(mat.dtype):
            raise EigenArgumentError(EigenErrorMsg.INVALID_DTYPE, "DoubleShiftQR: matrix must be real")

        dtype           = working_dtype(mat.dtype)
        traits          = num_traits(dtype)
        n               = mat.shape[0]
        self._n         = n
        self._shift_s   = float(s)
        self._shift_t   = float(t)
        self._near_0    = traits.tiny * 10
        self._eps       = traits.eps
        self._ref_u     = np.zeros((3, n), dtype=dtype)
        self._ref_nr    = np.ones(n, dtype=np.int64)

        # Only the upper Hessenberg part is used
        mat_H           = np.triu(mat.astype(dtype), -1)

        # Deflation of small sub-diagonal elements
        zero_ind = [0]
        for i in range(n - 1):
            h = abs(mat_H[i + 1, i])
            if h <= traits.tiny or h <= self._eps * (abs(mat_H[i, i]) + abs(mat_H[i + 1, i + 1])):
                mat_H[i + 1, i] = 0
                zero_ind.append(i + 1)
        zero_ind.append(n)

        self._mat_H = mat_H
        for start, end in zip(zero_ind[:-1], zero_ind[1:]):
            if end > start:
                self._update_block(start, end - 1)

        # Remove the rounding residue of the bulge
        self._mat_H     = np.triu(self._mat_H, -1)
        self._computed  = True
        return self

    # ------------------------------------------------------------------------------------

    def _compute_reflector(self, x1: float, x2: float, x3: float, ind: int) -> None:
        '''
        Householder reflector P = I - 2 u u^T mapping (x1, x2, x3) to a multiple of e1.
        '''
        self._ref_nr[ind]   = 3
        if abs(x3) < self._near_0:
            # Only the first two rows are affected
            if abs(x2) < self._near_0:
                self._ref_nr[ind] = 1
                return
            self._ref_nr[ind]   = 2
            x3                  = 0.0
            x2x3                = abs(x2)
        else:
            x2x3                = np.hypot(x2, x3)

        sign    = 1.0 if x1 >= 0 else -1.0
        u1      = x1 + sign * np.hypot(x1, x2x3)
        unorm   = np.sqrt(u1 * u1 + x2x3 * x2x3)
        if unorm < self._near_0:
            self._ref_nr[ind] = 1
            return
        self._ref_u[:, ind] = (u1 / unorm, x2 / unorm, x3 / unorm)

    def _apply_PX(self, X: NDArray, oi: int, oj: int, nrow: int, ind: int) -> None:
        ''' Rows oi:oi+nrow of X, columns oj: to the end, multiplied by P from the left. '''
        nr = min(int(self._ref_nr[ind]), nrow)
        if nr == 1:
            return
        u               = self._ref_u[:nr, ind]
        block           = X[oi:oi + nr, oj:]
        X[oi:oi + nr, oj:] = block - 2.0 * np.outer(u, u @ block)

    def _apply_XP(self, X: NDArray, nrow: int, oj: int, ind: int) -> None:
        ''' Rows 0:nrow of X, columns oj:oj+3, multiplied by P from the right. '''
        nr = int(self._ref_nr[ind])
        if nr == 1:
            return
        u               = self._ref_u[:nr, ind]
        block           = X[:nrow, oj:oj + nr]
        X[:nrow, oj:oj + nr] = block - 2.0 * np.outer(block @ u, u)

    def _update_block(self, il: int, iu: int) -> None:
        H       = self._mat_H
        bsize   = iu - il + 1

        # Nothing to do for 1x1 blocks
        if bsize == 1:
            self._ref_nr[il] = 1
            return

        s, t    = self._shift_s, self._shift_t
        x00     = H[il, il]
        x01     = H[il, il + 1]
        x10     = H[il + 1, il]
        x11     = H[il + 1, il + 1]

        # First column of M = H^2 - sH + tI restricted to the block
        m00     = x00 * (x00 - s) + x01 * x10 + t
        m10     = x10 * (x00 + x11 - s)

        if bsize == 2:
            self._compute_reflector(m00, m10, 0.0, il)
            self._apply_PX(H, il, il, 2, il)
            self._apply_XP(H, il + 2, il, il)
            self._ref_nr[il + 1] = 1
            return

        x21     = H[il + 2, il + 1]
        m20     = x21 * x10

        # Introduce the bulge
        self._compute_reflector(m00, m10, m20, il)
        self._apply_PX(H, il, il, 3, il)
        self._apply_XP(H, il + min(bsize, 4), il, il)

        # Chase the bulge down the sub-diagonal
        for i in range(il + 1, iu - 1):
            self._compute_reflector(H[i, i - 1], H[i + 1, i - 1], H[i + 2, i - 1], i)
            self._apply_PX(H, i, i - 1, 3, i)
            self._apply_XP(H, il + min(bsize, i - il + 4), i, i)

        # Last 2x2 reflector
        self._compute_reflector(H[iu - 1, iu - 2], H[iu, iu - 2], 0.0, iu - 1)
        self._apply_PX(H, iu - 1, iu - 2, 2, iu - 1)
        self._apply_XP(H, il + bsize, iu - 1, iu - 1)
        self._ref_nr[iu] = 1

    # ------------------------------------------------------------------------------------

    def matrix_QtHQ(self) -> NDArray:
        r""" $Q^T H Q$, upper Hessenberg. """
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "DoubleShiftQR: need to call compute() first")
        return self._mat_H

    def apply_YQ(self, Y: NDArray) -> NDArray:
        """
        Overwrite ``Y`` (any number of rows, n columns) with ``Y @ Q``.
        """
        if not self._computed:
            raise HessenbergLogicError(EigenErrorMsg.NOT_COMPUTED, "DoubleShiftQR: need to call compute() first")
        for ind in range(self._n - 1):
            nr = int(self._ref_nr[ind])
            if nr == 1:
                continue
            u               = self._ref_u[:nr, ind]
            block           = Y[:, ind:ind + nr]
            Y[:, ind:ind + nr] = block - 2.0 * np.outer(block @ u, u)
        return Y

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
