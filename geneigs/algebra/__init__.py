"""
Linear algebra for the implicitly restarted Arnoldi method.

Key functionalities provided include:
    - Numerical traits per scalar type (machine epsilon, safe minimum).
    - Reproducible random starting vectors.
    - The ``eigen`` subpackage: Hessenberg eigen-decomposition, shifted QR
      kernels, the Arnoldi factorization and the IRAM solvers.

This module uses lazy imports to minimize startup overhead.

# -----------------------------------------------------------------------------------------------
Version         : 0.1
Description     : Algebra module with lazy imports
# -----------------------------------------------------------------------------------------------
"""

from typing import TYPE_CHECKING
import importlib

# -----------------------------------------------------------------------------------------------
# Lazy Import Configuration
# -----------------------------------------------------------------------------------------------

_LAZY_IMPORTS = {
    'NumTraits'             : ('.utils', 'NumTraits'),
    'num_traits'            : ('.utils', 'num_traits'),
    'SimpleRandom'          : ('.utils', 'SimpleRandom'),
    'get_logger'            : ('..common.flog', 'get_global_logger'),
    # Submodules (lazy)
    'eigen'                 : ('.eigen', None),
    'utils'                 : ('.utils', None),
}

_LAZY_CACHE = {}

if TYPE_CHECKING:
    from .utils import NumTraits, num_traits, SimpleRandom
    from . import eigen, utils

def __getattr__(name: str):
    """
    Module-level __getattr__ for lazy imports.
    """
    if name in _LAZY_CACHE:
        return _LAZY_CACHE[name]

    if name not in _LAZY_IMPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_path, attr_name  = _LAZY_IMPORTS[name]
    module                  = importlib.import_module(module_path, package=__name__)
    result                  = module if attr_name is None else getattr(module, attr_name)
    _LAZY_CACHE[name]       = result
    return result

def __dir__():
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))

__all__ = list(_LAZY_IMPORTS.keys())

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
