"""
Common utilities shared by the eigensolvers.

**Logging and Monitoring:**
- Console logging with indentation levels and optional colors
- Optional file logging (enabled through the ``PYLOGFILE`` environment variable)
- Timing decorator for expensive calls

Example:
    >>> from geneigs.common import get_global_logger
    >>> logger = get_global_logger()
    >>> logger.info("Arnoldi restart", lvl=1)
"""

import  importlib
from    typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .flog          import Logger, Colors, get_global_logger

# Lazy loading registry
_LAZY_IMPORTS = {
    'Logger'                    : ('.flog', 'Logger'),
    'Colors'                    : ('.flog', 'Colors'),
    'get_global_logger'         : ('.flog', 'get_global_logger'),
    'flog'                      : ('.flog', None),
}

_LAZY_CACHE = {}

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

# ---------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------
