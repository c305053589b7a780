"""
Operator adapters

The eigensolvers never look inside the operator; they only need its size,
its scalar type and the product ``y = op(x)``. This module wraps the usual
ways of specifying a linear map into that interface:

    - ``DenseGenMatProd``         : dense NumPy array, y = A x
    - ``SparseGenMatProd``        : SciPy sparse matrix, y = A x
    - ``FunctionMatProd``         : ``scipy.sparse.linalg.LinearOperator`` or a
                                    plain callable, y = matvec(x)
    - ``DenseGenRealShiftSolve``  : y = (A - sigma I)^{-1} x by dense LU
    - ``SparseGenRealShiftSolve`` : y = (A - sigma I)^{-1} x by sparse LU

``ArnoldiOp`` combines an operator with an optional matrix B that defines the
inner product <x, y>_B = x^H B y used by the Arnoldi factorization.

Every adapter exposes ``rows``, ``cols``, ``dtype`` and ``perform_op(x)``.
"""

import warnings
from typing import Callable, Optional, Union

import numpy as np
import scipy.linalg as scipy_linalg
import scipy.sparse as sp
import scipy.sparse.linalg as spla
from numpy.typing import NDArray

from ..utils import working_dtype
from .result import EigenArgumentError, HessenbergLogicError, EigenErrorMsg

# ----------------------------------------------------------------------------------------
#! Matrix-vector products
# ----------------------------------------------------------------------------------------

def _check_square(shape, who: str) -> None:
    if len(shape) != 2 or shape[0] != shape[1]:
        raise EigenArgumentError(EigenErrorMsg.NOT_SQUARE, f"{who}: matrix must be square, got shape {tuple(shape)}")

class DenseGenMatProd:
    """
    Product of a dense general matrix with a vector.
    """

    def __init__(self, mat: NDArray):
        mat = np.asarray(mat)
        _check_square(mat.shape, "DenseGenMatProd")
        self._mat = mat

    @property
    def rows(self) -> int:
        return self._mat.shape[0]

    @property
    def cols(self) -> int:
        return self._mat.shape[1]

    @property
    def dtype(self) -> np.dtype:
        return working_dtype(self._mat.dtype)

    def perform_op(self, x: NDArray) -> NDArray:
        return self._mat @ x

class SparseGenMatProd:
    """
    Product of a SciPy sparse matrix with a vector. The matrix is stored in CSR format.
    """

    def __init__(self, mat):
        _check_square(mat.shape, "SparseGenMatProd")
        self._mat = sp.csr_matrix(mat)

    @property
    def rows(self) -> int:
        return self._mat.shape[0]

    @property
    def cols(self) -> int:
        return self._mat.shape[1]

    @property
    def dtype(self) -> np.dtype:
        return working_dtype(self._mat.dtype)

    def perform_op(self, x: NDArray) -> NDArray:
        return self._mat @ x

class FunctionMatProd:
    """
    Matrix-free operator given by a ``LinearOperator`` or a callable.

    Args:
        matvec:
            ``scipy.sparse.linalg.LinearOperator`` or function ``x -> A x``.
        n:
            Dimension, required for callables.
        dtype:
            Scalar type of the operator. Taken from the ``LinearOperator`` when
            available, otherwise float64.
    """

    def __init__(self, matvec: Union[spla.LinearOperator, Callable[[NDArray], NDArray]],
                n: Optional[int] = None, dtype=None):
        if isinstance(matvec, spla.LinearOperator):
            _check_square(matvec.shape, "FunctionMatProd")
            self._n         = matvec.shape[0]
            self._matvec    = matvec.matvec
            dtype           = dtype if dtype is not None else matvec.dtype
        elif callable(matvec):
            if n is None:
                raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "n (dimension) must be provided when using matvec")
            self._n         = int(n)
            self._matvec    = matvec
        else:
            raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, f"cannot build an operator from {type(matvec).__name__}")
        self._dtype = working_dtype(dtype if dtype is not None else np.float64)

    @property
    def rows(self) -> int:
        return self._n

    @property
    def cols(self) -> int:
        return self._n

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    def perform_op(self, x: NDArray) -> NDArray:
        return np.asarray(self._matvec(x)).reshape(self._n)

# ----------------------------------------------------------------------------------------
#! Shift-and-invert
# ----------------------------------------------------------------------------------------

class DenseGenRealShiftSolve:
    """
    y = (A - sigma I)^{-1} x for a dense general matrix A and a real shift sigma.

    ``set_shift`` must be called before ``perform_op``; it factorizes
    A - sigma I with ``scipy.linalg.lu_factor``.

    Example:
        >>> op = DenseGenRealShiftSolve(A)
        >>> op.set_shift(1.5)
        >>> y  = op.perform_op(x)          # solves (A - 1.5 I) y = x
    """

    def __init__(self, mat: NDArray):
        mat = np.asarray(mat)
        _check_square(mat.shape, "DenseGenRealShiftSolve")
        self._mat   = mat
        self._lu    = None

    @property
    def rows(self) -> int:
        return self._mat.shape[0]

    @property
    def cols(self) -> int:
        return self._mat.shape[1]

    @property
    def dtype(self) -> np.dtype:
        return working_dtype(self._mat.dtype)

    def set_shift(self, sigma: float) -> None:
        """
        Factorize A - sigma I.

        Raises:
            EigenArgumentError (ValueError): if A - sigma I is singular.
        """
        shifted = self._mat.astype(self.dtype) - float(sigma) * np.eye(self.rows, dtype=self.dtype)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", scipy_linalg.LinAlgWarning)
            lu, piv = scipy_linalg.lu_factor(shifted)
        if np.any(np.diag(lu) == 0):
            raise EigenArgumentError(EigenErrorMsg.SINGULAR_SHIFT,
                    f"DenseGenRealShiftSolve: A - sigma I is singular for sigma = {sigma}")
        self._lu = (lu, piv)

    def perform_op(self, x: NDArray) -> NDArray:
        if self._lu is None:
            raise HessenbergLogicError(EigenErrorMsg.NOT_INITIALIZED, "DenseGenRealShiftSolve: need to call set_shift() first")
        return scipy_linalg.lu_solve(self._lu, x)

class SparseGenRealShiftSolve:
    """
    y = (A - sigma I)^{-1} x for a SciPy sparse matrix A and a real shift sigma,
    using the sparse LU decomposition ``scipy.sparse.linalg.splu``.
    """

    def __init__(self, mat):
        _check_square(mat.shape, "SparseGenRealShiftSolve")
        self._mat   = sp.csc_matrix(mat)
        self._lu    = None

    @property
    def rows(self) -> int:
        return self._mat.shape[0]

    @property
    def cols(self) -> int:
        return self._mat.shape[1]

    @property
    def dtype(self) -> np.dtype:
        return working_dtype(self._mat.dtype)

    def set_shift(self, sigma: float) -> None:
        """
        Factorize A - sigma I.

        Raises:
            EigenArgumentError (ValueError): if A - sigma I is singular.
        """
        shifted = (self._mat.astype(self.dtype) - float(sigma) * sp.identity(self.rows, dtype=self.dtype, format='csc')).tocsc()
        try:
            self._lu = spla.splu(shifted)
        except RuntimeError as e:
            raise EigenArgumentError(EigenErrorMsg.SINGULAR_SHIFT,
                    f"SparseGenRealShiftSolve: A - sigma I is singular for sigma = {sigma}") from e

    def perform_op(self, x: NDArray) -> NDArray:
        if self._lu is None:
            raise HessenbergLogicError(EigenErrorMsg.NOT_INITIALIZED, "SparseGenRealShiftSolve: need to call set_shift() first")
        return self._lu.solve(np.asarray(x, dtype=self.dtype))

# ----------------------------------------------------------------------------------------
#! Dispatch
# ----------------------------------------------------------------------------------------

def as_operator(A=None, matvec=None, n: Optional[int] = None, dtype=None):
    """
    Wrap a dense array, a sparse matrix, a ``LinearOperator`` or a callable
    into a matrix-vector product adapter. Objects that already provide
    ``perform_op`` are returned unchanged.
    """
    if A is not None:
        if hasattr(A, 'perform_op'):
            return A
        if sp.issparse(A):
            return SparseGenMatProd(A)
        if isinstance(A, spla.LinearOperator) or callable(A):
            return FunctionMatProd(A, n=n, dtype=dtype)
        return DenseGenMatProd(A)
    if matvec is not None:
        return FunctionMatProd(matvec, n=n, dtype=dtype)
    raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH, "Either A or matvec must be provided")

# ----------------------------------------------------------------------------------------
#! Arnoldi operator
# ----------------------------------------------------------------------------------------

class ArnoldiOp:
    r"""
    Operator seen by the Arnoldi factorization.

    Without B the inner product is the Euclidean one, $\langle x, y \rangle = x^H y$.
    With B (Hermitian positive definite) it is $\langle x, y \rangle_B = x^H B y$,
    and every length is measured in the B-norm.

    Args:
        op:
            Operator adapter, see ``as_operator``.
        Bop:
            Optional operator adapter (or matrix) defining the inner product.
    """

    def __init__(self, op, Bop=None):
        self._op    = as_operator(op)
        self._bop   = as_operator(Bop) if Bop is not None else None
        if self._bop is not None and self._bop.rows != self._op.rows:
            raise EigenArgumentError(EigenErrorMsg.DIM_MISMATCH,
                    f"ArnoldiOp: B has {self._bop.rows} rows, the operator has {self._op.rows}")
        dtype       = self._op.dtype if self._bop is None else np.result_type(self._op.dtype, self._bop.dtype)
        self._dtype = working_dtype(dtype)

    @property
    def rows(self) -> int:
        return self._op.rows

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def has_B(self) -> bool:
        return self._bop is not None

    def perform_op(self, x: NDArray) -> NDArray:
        return self._op.perform_op(x)

    def _apply_B(self, x: NDArray) -> NDArray:
        return x if self._bop is None else self._bop.perform_op(x)

    def inner_product(self, x: NDArray, y: NDArray):
        ''' <x, y> = x^H B y '''
        return np.vdot(x, self._apply_B(y))

    def trans_product(self, V: NDArray, x: NDArray) -> NDArray:
        ''' V^H B x '''
        return V.conj().T @ self._apply_B(x)

    def norm(self, x: NDArray) -> float:
        ''' ||x||_B '''
        if self._bop is None:
            return float(np.linalg.norm(x))
        return float(np.sqrt(abs(self.inner_product(x, x))))

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
