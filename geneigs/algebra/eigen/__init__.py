"""
Eigenvalue Solvers Module

This module provides the implicitly restarted Arnoldi method for a few
eigenvalues of large general (non-symmetric, possibly complex) operators,
using only matrix-vector products.

Available Solvers:
    - GenEigsSolver: Restarted Arnoldi, selection by magnitude, real or imaginary part
    - GenEigsRealShiftSolver: Shift-and-invert mode, eigenvalues nearest a real shift
    - ArnoldiEigensolver / ShiftInvertEigensolver: keyword front ends returning EigenResult
    - ArnoldiEigensolverScipy: ARPACK reference through SciPy

Building blocks:
    - UpperHessenbergEigen: eigen-decomposition of the projected Hessenberg matrix
    - UpperHessenbergQR / DoubleShiftQR: shifted QR steps of the implicit restart
    - ArnoldiFactorization: the Krylov factorization A V = V H + f e^T
    - Operator adapters: dense, sparse, LinearOperator, shift-solve

Factory Function:
    - choose_eigensolver: Unified interface for the solvers
    - decide_method: Choose a method from the problem characteristics

Standard Result:
    - EigenResult: Standardized return type (eigenvalues, eigenvectors, iterations, converged)

This module uses lazy imports to minimize startup overhead.
"""

from typing import TYPE_CHECKING
import importlib

# -----------------------------------------------------------------------------------------------
# Lazy Import Configuration
# -----------------------------------------------------------------------------------------------

_LAZY_IMPORTS = {
    # Restarted Arnoldi
    'GenEigsSolver'                 : ('.arnoldi', 'GenEigsSolver'),
    'ArnoldiEigensolver'            : ('.arnoldi', 'ArnoldiEigensolver'),
    'ArnoldiEigensolverScipy'       : ('.arnoldi', 'ArnoldiEigensolverScipy'),
    # Shift-and-invert
    'GenEigsRealShiftSolver'        : ('.shift_invert', 'GenEigsRealShiftSolver'),
    'ShiftInvertEigensolver'        : ('.shift_invert', 'ShiftInvertEigensolver'),
    # Dense kernels
    'UpperHessenbergEigen'          : ('.hessenberg', 'UpperHessenbergEigen'),
    'RealHessenbergEigen'           : ('.hessenberg', 'RealHessenbergEigen'),
    'ComplexHessenbergEigen'        : ('.hessenberg', 'ComplexHessenbergEigen'),
    'UpperHessenbergQR'             : ('.shift_qr', 'UpperHessenbergQR'),
    'DoubleShiftQR'                 : ('.shift_qr', 'DoubleShiftQR'),
    # Krylov factorization
    'ArnoldiFactorization'          : ('.krylov', 'ArnoldiFactorization'),
    'OpCounter'                     : ('.krylov', 'OpCounter'),
    # Operators
    'DenseGenMatProd'               : ('.operators', 'DenseGenMatProd'),
    'SparseGenMatProd'              : ('.operators', 'SparseGenMatProd'),
    'FunctionMatProd'               : ('.operators', 'FunctionMatProd'),
    'DenseGenRealShiftSolve'        : ('.operators', 'DenseGenRealShiftSolve'),
    'SparseGenRealShiftSolve'       : ('.operators', 'SparseGenRealShiftSolve'),
    'ArnoldiOp'                     : ('.operators', 'ArnoldiOp'),
    # Restart and sorting
    'RealShiftRestart'              : ('.restart', 'RealShiftRestart'),
    'ComplexShiftRestart'           : ('.restart', 'ComplexShiftRestart'),
    'RitzSortStrategy'              : ('.ritz_sort', 'RitzSortStrategy'),
    'ShiftInvertRitzSort'           : ('.ritz_sort', 'ShiftInvertRitzSort'),
    'SortRule'                      : ('.rules', 'SortRule'),
    'sort_eigenvalues'              : ('.rules', 'sort_eigenvalues'),
    # Factory interface
    'choose_eigensolver'            : ('.factory', 'choose_eigensolver'),
    'decide_method'                 : ('.factory', 'decide_method'),
    # Result type
    'EigenResult'                   : ('.result', 'EigenResult'),
    'CompInfo'                      : ('.result', 'CompInfo'),
    'EigenSolverError'              : ('.result', 'EigenSolverError'),
    'HessenbergLogicError'          : ('.result', 'HessenbergLogicError'),
    'HessenbergEigenError'          : ('.result', 'HessenbergEigenError'),
}

_LAZY_CACHE = {}

# For type checking only
if TYPE_CHECKING:
    from .arnoldi       import GenEigsSolver, ArnoldiEigensolver, ArnoldiEigensolverScipy
    from .shift_invert  import GenEigsRealShiftSolver, ShiftInvertEigensolver
    from .hessenberg    import UpperHessenbergEigen, RealHessenbergEigen, ComplexHessenbergEigen
    from .shift_qr      import UpperHessenbergQR, DoubleShiftQR
    from .krylov        import ArnoldiFactorization, OpCounter
    from .operators     import (DenseGenMatProd, SparseGenMatProd, FunctionMatProd,
                                DenseGenRealShiftSolve, SparseGenRealShiftSolve, ArnoldiOp)
    from .restart       import RealShiftRestart, ComplexShiftRestart
    from .ritz_sort     import RitzSortStrategy, ShiftInvertRitzSort
    from .rules         import SortRule, sort_eigenvalues
    from .factory       import choose_eigensolver, decide_method
    from .result        import (EigenResult, CompInfo, EigenSolverError,
                                HessenbergLogicError, HessenbergEigenError)

# -----------------------------------------------------------------------------------------------

def __getattr__(name: str):
    """
    Module-level __getattr__ for lazy imports.
    """
    if name in _LAZY_CACHE:
        return _LAZY_CACHE[name]

    if name not in _LAZY_IMPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_path, attr_name = _LAZY_IMPORTS[name]
    module = importlib.import_module(module_path, package=__name__)

    if attr_name is None:
        result = module
    else:
        result = getattr(module, attr_name)

    _LAZY_CACHE[name] = result
    return result

def __dir__():
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))

__all__ = list(_LAZY_IMPORTS.keys())

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
