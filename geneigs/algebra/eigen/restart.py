r"""
Implicit restart strategies

After each outer iteration of the restarted Arnoldi method the unwanted Ritz
values $\mu_k, \dots, \mu_{m-1}$ are used as shifts. Every shifted QR step
replaces $H \leftarrow Q_j^H H Q_j$, lowers the rank of the factorization
by the number of shifts consumed, and accumulates $Q \leftarrow Q Q_j$ so that
the Krylov basis can be compressed afterwards with a single product.

    - ``RealShiftRestart``    : real operators. Complex conjugate pairs of
                                shifts are applied together with a real
                                double-shift step, the rest as real single shifts.
    - ``ComplexShiftRestart`` : complex operators, one complex shift at a time.

The strategy is resolved once from the scalar type with ``restart_strategy_for``.
"""

from typing import Type, Union

import numpy as np
from numpy.typing import NDArray

from ..utils import is_complex_dtype
from .shift_qr import UpperHessenbergQR, DoubleShiftQR

# ----------------------------------------------------------------------------------------

class RealShiftRestart:
    """
    Restart of a real Arnoldi factorization.

    The Ritz values of a real matrix come as real numbers or as exact complex
    conjugate pairs (adjacent, positive imaginary part first). A pair
    $(\\mu, \\bar\\mu)$ is applied as one double-shift step with
    $s = 2\\,\\mathrm{Re}\\,\\mu$ and $t = |\\mu|^2$; every other value as a single
    shift by its real part.
    """

    def __init__(self):
        self._decomp_hb = UpperHessenbergQR()
        self._decomp_ds = DoubleShiftQR()

    def run(self, ritz_val: NDArray, k: int, fac, Q: NDArray) -> None:
        """
        Apply the shifts ``ritz_val[k:ncv]`` to ``fac`` and accumulate them into ``Q``.
        """
        ncv = fac.max_dim
        i   = k
        while i < ncv:
            mu = ritz_val[i]
            if mu.imag != 0 and i + 1 < ncv and ritz_val[i + 1] == np.conj(mu):
                s = 2 * mu.real
                t = mu.real * mu.real + mu.imag * mu.imag
                self._decomp_ds.compute(fac.matrix_H, s, t)
                self._decomp_ds.apply_YQ(Q)
                fac.compress_H(self._decomp_ds)
                i += 2
            else:
                # a lone complex value is applied through its real part
                self._decomp_hb.compute(fac.matrix_H, mu.real)
                self._decomp_hb.apply_YQ(Q)
                fac.compress_H(self._decomp_hb)
                i += 1

class ComplexShiftRestart:
    """
    Restart of a complex Arnoldi factorization with single complex shifts.
    """

    def __init__(self):
        self._decomp_hb = UpperHessenbergQR()

    def run(self, ritz_val: NDArray, k: int, fac, Q: NDArray) -> None:
        """
        Apply the shifts ``ritz_val[k:ncv]`` to ``fac`` and accumulate them into ``Q``.
        """
        for i in range(k, fac.max_dim):
            self._decomp_hb.compute(fac.matrix_H, ritz_val[i])
            self._decomp_hb.apply_YQ(Q)
            fac.compress_H(self._decomp_hb)

# ----------------------------------------------------------------------------------------

RestartStrategy = Union[RealShiftRestart, ComplexShiftRestart]

def restart_strategy_for(dtype) -> Type[RestartStrategy]:
    ''' Restart strategy class for an operator of scalar type ``dtype``. '''
    return ComplexShiftRestart if is_complex_dtype(dtype) else RealShiftRestart

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
