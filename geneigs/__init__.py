# geneigs/__init__.py

"""
geneigs - implicitly restarted Arnoldi eigensolvers for general operators.

This package computes a few eigenvalues (largest/smallest by magnitude,
real part or imaginary part) and the matching eigenvectors of a large
non-symmetric, possibly complex, linear operator. Only matrix-vector
products with the operator are required.

Modules:
--------
- algebra   : Hessenberg eigen-decomposition, shifted QR kernels, the Arnoldi
              factorization and the implicitly restarted solvers
- common    : Logging utilities shared by the solvers

Examples:
---------
>>> import numpy as np
>>> from geneigs.algebra.eigen import GenEigsSolver, DenseGenMatProd
>>> op      = DenseGenMatProd(np.diag(np.arange(1.0, 11.0)))
>>> solver  = GenEigsSolver(op, nev=3, ncv=6)
>>> solver.init()
>>> nconv   = solver.compute('LM')
>>> solver.eigenvalues()
array([10.+0.j,  9.+0.j,  8.+0.j])

File    : geneigs/__init__.py
Version : 0.1.0
License : MIT
"""

import importlib

# Package metadata
__version__         = "0.1.0"
__license__         = "MIT"

MODULE_DESCRIPTION  = "Implicitly restarted Arnoldi eigensolvers: Hessenberg eigen-decomposition, shifted QR, Krylov factorization."

# List of available modules (not imported by default)
__all__             = ["algebra", "common"]

def get_module_description(module_name):
    """
    Get the description of a specific module in the geneigs package.
    
    Parameters
    ----------
    module_name : str
        The name of the module.
    
    Returns
    -------
    str
        The description of the module.
    """
    descriptions = {
        "algebra"   : "Dense Hessenberg eigen-decomposition, shifted QR kernels, Arnoldi factorization and IRAM solvers.",
        "common"    : "Console and file logging with verbosity control.",
    }
    return descriptions.get(module_name, "Module not found.")

def list_available_modules():
    """
    List all available modules in the geneigs package.
    
    Returns
    -------
    list
        List of available module names.
    """
    return __all__

# Lazy import subpackages on attribute access (PEP 562)
def __getattr__(name):  # pragma: no cover - simple indirection
    if name == "eigen":
        return importlib.import_module(".algebra.eigen", __name__)
    if name in __all__:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

def __dir__():  # pragma: no cover
    return sorted(list(globals().keys()) + __all__)

# ---------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------
