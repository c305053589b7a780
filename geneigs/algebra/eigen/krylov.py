r"""
Arnoldi factorization

Maintains the rank-k Arnoldi factorization of an operator $A$,

$$ A V_k = V_k H_k + f_k e_k^T, \qquad V_k^H B V_k = I, \qquad V_k^H B f_k = 0, $$

with $V_k$ the (B-)orthonormal Krylov basis, $H_k$ upper Hessenberg and
$f_k$ the residual. The factorization is grown with classical Gram-Schmidt
and DGKS re-orthogonalization, and compressed in place by the implicit
restart (``compress_H`` / ``compress_V``).

When the residual vanishes (an invariant subspace was found) the basis is
extended with a random vector orthogonal to it and the corresponding
sub-diagonal entry of $H$ is set to zero.

References:
    - Daniel, Gragg, Kaufman & Stewart, "Reorthogonalization and stable
      algorithms for updating the Gram-Schmidt QR factorization",
      Math. Comp. 30 (1976)
    - Lehoucq, Sorensen & Yang, "ARPACK Users' Guide", SIAM (1998)
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..utils import num_traits, SimpleRandom
from .result import EigenArgumentError, EigenErrorMsg

# ----------------------------------------------------------------------------------------
#! Operation counter
# ----------------------------------------------------------------------------------------

class OpCounter:
    """
    Mutable counter of operator applications, shared between a solver and its
    factorization.
    """
    __slots__ = ('count',)

    def __init__(self, count: int = 0):
        self.count = int(count)

    def increment(self, by: int = 1) -> None:
        self.count += by

    def reset(self) -> None:
        self.count = 0

    def __int__(self):
        return self.count

    def __repr__(self):
        return f"OpCounter({self.count})"

# ----------------------------------------------------------------------------------------
#! Factorization
# ----------------------------------------------------------------------------------------

class ArnoldiFactorization:
    """
    Arnoldi factorization of maximal rank ``m`` for an ``ArnoldiOp``.

    Args:
        op:
            Operator exposing ``rows``, ``dtype``, ``perform_op``,
            ``inner_product``, ``trans_product`` and ``norm``.
        m:
            Maximal dimension of the Krylov subspace (ncv).

    Example:
        >>> fac     = ArnoldiFactorization(ArnoldiOp(DenseGenMatProd(A)), m=10)
        >>> counter = OpCounter()
        >>> fac.init(v0, counter)
        >>> fac.factorize_from(1, 10, counter)
        >>> V, H, f = fac.matrix_V, fac.matrix_H, fac.vector_f
    """

    def __init__(self, op, m: int):
        self._op        = op
        self._n         = op.rows
        self._m         = int(m)
        self._dtype     = np.dtype(op.dtype)
        traits          = num_traits(self._dtype)
        self._eps       = traits.eps
        self._near_0    = traits.tiny * 10

        self._fac_V     = np.zeros((self._n, self._m), dtype=self._dtype)
        self._fac_H     = np.zeros((self._m, self._m), dtype=self._dtype)
        self._fac_f     = np.zeros(self._n, dtype=self._dtype)
        self._beta      = 0.0
        self._k         = 0

    # ------------------------------------------------------------------------------------
    #! Accessors
    # ------------------------------------------------------------------------------------

    @property
    def matrix_V(self) -> NDArray:
        return self._fac_V

    @property
    def matrix_H(self) -> NDArray:
        return self._fac_H

    @property
    def vector_f(self) -> NDArray:
        return self._fac_f

    @property
    def f_norm(self) -> float:
        return self._beta

    @property
    def subspace_dim(self) -> int:
        return self._k

    @property
    def max_dim(self) -> int:
        return self._m

    # ------------------------------------------------------------------------------------
    #! Construction
    # ------------------------------------------------------------------------------------

    def init(self, v0: NDArray, op_counter: OpCounter) -> None:
        """
        Rank-1 factorization from the starting vector ``v0``.

        Raises:
            EigenArgumentError (ValueError): if ``v0`` is (numerically) zero.
        """
        v0 = np.asarray(v0).astype(self._dtype, copy=True)
        if v0.shape != (self._n,):
            raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, f"Arnoldi: initial residual must have shape ({self._n},), got {v0.shape}")

        self._fac_V.fill(0)
        self._fac_H.fill(0)
        self._fac_f.fill(0)

        v0norm = self._op.norm(v0)
        if v0norm < self._near_0:
            raise EigenArgumentError(EigenErrorMsg.ZERO_RESIDUAL, "Arnoldi: initial residual vector cannot be zero")

        v                   = v0 / v0norm
        w                   = self._op.perform_op(v)
        op_counter.increment()

        self._fac_H[0, 0]   = self._op.inner_product(v, w)
        self._fac_f[:]      = w - v * self._fac_H[0, 0]
        self._fac_V[:, 0]   = v

        # In some cases f is zero in exact arithmetic, but due to rounding errors
        # it may contain tiny fluctuations. When this happens, we force f to be zero
        if np.max(np.abs(self._fac_f)) < self._eps:
            self._fac_f.fill(0)
            self._beta = 0.0
        else:
            self._beta = self._op.norm(self._fac_f)
        self._k = 1

    def _expand_basis(self, Vs: NDArray, seed: int, op_counter: OpCounter) -> None:
        '''
        Replace f by a random vector B-orthogonal to the columns of ``Vs``.
        The first attempt is pushed through the operator so that f lies in its range.
        '''
        thresh = self._eps * np.sqrt(self._n)
        for it in range(5):
            rng = SimpleRandom(seed + 123 * it)
            f   = rng.random_vec(self._n, self._dtype)
            if it == 0:
                f = self._op.perform_op(f)
                op_counter.increment()
            f           = f - Vs @ self._op.trans_product(Vs, f)
            self._beta  = self._op.norm(f)
            self._fac_f[:] = f
            if self._beta >= thresh:
                return

    def factorize_from(self, from_k: int, to_m: int, op_counter: OpCounter) -> None:
        """
        Grow the factorization from rank ``from_k`` to rank ``to_m``.

        Raises:
            EigenArgumentError (ValueError):
                If ``from_k`` exceeds the current rank or ``to_m`` the maximal rank.
        """
        if to_m <= from_k:
            return
        if from_k > self._k:
            raise EigenArgumentError(EigenErrorMsg.FACTORIZATION_STATE,
                    f"Arnoldi: from_k (= {from_k}) is larger than the current subspace dimension (= {self._k})")
        if to_m > self._m:
            raise EigenArgumentError(EigenErrorMsg.FACTORIZATION_STATE,
                    f"Arnoldi: to_m (= {to_m}) exceeds the maximal subspace dimension (= {self._m})")

        beta_thresh = self._eps * np.sqrt(self._n)

        # Pre-allocate the part of H that is rebuilt
        self._fac_H[:, from_k:]         = 0
        self._fac_H[from_k:, :from_k]   = 0

        for i in range(from_k, to_m):
            # If beta = 0, then the next V is not full rank.
            # We need to generate a new residual vector that is orthogonal
            # to the current V, which we call a restart
            restart = False
            if self._beta < self._near_0:
                self._expand_basis(self._fac_V[:, :i], 2 * i, op_counter)
                restart = True

            v                       = self._fac_f / self._beta
            self._fac_V[:, i]       = v
            # H[i, i-1] equals the unrestarted beta
            self._fac_H[i, i - 1]   = 0 if restart else self._beta

            w                       = self._op.perform_op(v)
            op_counter.increment()

            Vs                      = self._fac_V[:, :i + 1]
            h                       = self._op.trans_product(Vs, w)
            self._fac_f[:]          = w - Vs @ h
            self._beta              = self._op.norm(self._fac_f)

            if self._beta > 0.717 * np.linalg.norm(h):
                self._fac_H[:i + 1, i] = h
                continue

            # f / ||f|| is going to be the next column of V, test whether V^H B f ~= 0
            Vf          = self._op.trans_product(Vs, self._fac_f)
            ortho_err   = np.max(np.abs(Vf))
            count       = 0
            while count < 5 and ortho_err > self._eps * self._beta:
                # beta close to zero means f is mostly rounding noise; force a restart
                if self._beta < beta_thresh:
                    self._fac_f.fill(0)
                    self._beta = 0.0
                    break

                self._fac_f    -= Vs @ Vf
                h               = h + Vf
                self._beta      = self._op.norm(self._fac_f)
                Vf              = self._op.trans_product(Vs, self._fac_f)
                ortho_err       = np.max(np.abs(Vf))
                count          += 1

            self._fac_H[:i + 1, i] = h

        self._k = to_m

    # ------------------------------------------------------------------------------------
    #! Restart
    # ------------------------------------------------------------------------------------

    def compress_H(self, decomp) -> None:
        """
        Replace H by Q^H H Q of a shifted QR step and lower the rank by the number
        of shifts the step consumed.
        """
        self._fac_H[:, :]   = decomp.matrix_QtHQ()
        self._k            -= decomp.n_shifts

    def compress_V(self, Q: NDArray) -> None:
        """
        Apply the accumulated restart transform ``Q`` to the basis and update the residual:
        V_k <- (V Q)[:, :k], f <- f Q[m-1, k-1] + (V Q)[:, k] H[k, k-1].
        """
        k                   = self._k
        Vs                  = self._fac_V @ Q[:, :k + 1]
        self._fac_V[:, :k]  = Vs[:, :k]
        self._fac_f[:]      = self._fac_f * Q[self._m - 1, k - 1] + Vs[:, k] * self._fac_H[k, k - 1]
        self._beta          = self._op.norm(self._fac_f)

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
