# file        :   geneigs/algebra/utils.py

'''
Numerical helpers shared by the eigensolvers.

Provides:
- Environment driven defaults (global seed, default floating point type).
- ``NumTraits`` : machine epsilon, safe minimum and eps^(2/3) for a scalar type.
- ``SimpleRandom`` : reproducible Uniform(-0.5, 0.5) vectors used as
  starting residuals of the Arnoldi factorization.
- dtype helpers that map a real/complex scalar type to its counterparts.
'''

import os
from functools import lru_cache
from typing import NamedTuple, Optional, Type, Union

import numpy as np

# ---------------------------------------------------------------------
#! Enviroment variable names
# ---------------------------------------------------------------------

PY_GLOBAL_SEED_STR      : str               = "PY_GLOBAL_SEED"
PY_FLOATING_POINT_STR   : str               = "PY_FLOATING_POINT"

DEFAULT_SEED            : int               = 42
DEFAULT_NP_FLOAT_TYPE   : Type              = np.float64
DEFAULT_NP_CPX_TYPE     : Type              = np.complex128

# ---------------------------------------------------------------------
#! SET VARIABLES
# ---------------------------------------------------------------------

PY_GLOBAL_SEED          : int               = int(os.environ.get(PY_GLOBAL_SEED_STR, DEFAULT_SEED))
PREFER_32BIT            : bool              = os.environ.get(PY_FLOATING_POINT_STR, "64bit").lower() in ["32bit", "32", "float32", "float"]
PY_NP_FLOAT_TYPE        : Type              = np.float32 if PREFER_32BIT else DEFAULT_NP_FLOAT_TYPE
PY_NP_CPX_TYPE          : Type              = np.complex64 if PREFER_32BIT else DEFAULT_NP_CPX_TYPE

DTypeLike                                   = Union[np.dtype, Type, str]

# ---------------------------------------------------------------------
#! dtype helpers
# ---------------------------------------------------------------------

def is_complex_dtype(dtype: DTypeLike) -> bool:
    ''' True for complex scalar types. '''
    return np.issubdtype(np.dtype(dtype), np.complexfloating)

def working_dtype(dtype: DTypeLike) -> np.dtype:
    '''
    Floating point type used for the computation with an operator of type
    ``dtype``. Integers and booleans are promoted to the default float type.
    '''
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.complexfloating) or np.issubdtype(dtype, np.floating):
        return dtype
    return np.dtype(PY_NP_FLOAT_TYPE)

def real_dtype(dtype: DTypeLike) -> np.dtype:
    ''' Real counterpart: complex128 -> float64, float32 -> float32. '''
    return np.finfo(working_dtype(dtype)).dtype

def complex_dtype(dtype: DTypeLike) -> np.dtype:
    ''' Complex counterpart: float64 -> complex128, complex64 -> complex64. '''
    return np.result_type(working_dtype(dtype), np.complex64)

# ---------------------------------------------------------------------
#! Numerical traits
# ---------------------------------------------------------------------

class NumTraits(NamedTuple):
    '''
    Machine constants for a real scalar type.

    Attributes:
        eps:
            Machine epsilon, ~2.2e-16 for float64.
        tiny:
            Smallest positive normal number, ~2.2e-308 for float64.
        eps23:
            eps^(2/3), the floor of the relative convergence threshold.
    '''
    eps     : float
    tiny    : float
    eps23   : float

@lru_cache(maxsize=None)
def _num_traits(dtype: np.dtype) -> NumTraits:
    info = np.finfo(dtype)
    eps  = float(info.eps)
    return NumTraits(eps=eps, tiny=float(info.tiny), eps23=eps ** (2.0 / 3.0))

def num_traits(dtype: DTypeLike = DEFAULT_NP_FLOAT_TYPE) -> NumTraits:
    '''
    Machine constants of the real type underlying ``dtype``.

    >>> num_traits(np.complex128).eps == np.finfo(np.float64).eps
    True
    '''
    return _num_traits(real_dtype(dtype))

# ---------------------------------------------------------------------
#! Random vectors
# ---------------------------------------------------------------------

class SimpleRandom:
    '''
    Reproducible generator of Uniform(-0.5, 0.5) vectors.

    For complex scalar types the real and imaginary parts are drawn
    independently. The same seed always yields the same sequence.

    Example:
        >>> rng = SimpleRandom(0)
        >>> v   = rng.random_vec(10, np.float64)
    '''

    def __init__(self, seed: Optional[int] = 0):
        self.seed   = PY_GLOBAL_SEED if seed is None else int(seed)
        self._rng   = np.random.default_rng(self.seed)

    def random(self, size: int) -> np.ndarray:
        ''' ``size`` real numbers in (-0.5, 0.5). '''
        return self._rng.uniform(-0.5, 0.5, size)

    def random_vec(self, n: int, dtype: DTypeLike = DEFAULT_NP_FLOAT_TYPE) -> np.ndarray:
        '''
        Random vector of length ``n`` with scalar type ``dtype``.
        '''
        dtype = working_dtype(dtype)
        if is_complex_dtype(dtype):
            vec = self.random(n) + 1j * self.random(n)
        else:
            vec = self.random(n)
        return vec.astype(dtype, copy=False)

# ---------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------
