"""
Selection and sorting rules for eigenvalues.

A rule is used twice by the restarted Arnoldi solvers: as the *selection*
rule it decides which Ritz values are wanted during the iteration, as the
*sort* rule it orders the final result. The two may differ.

Rules rank eigenvalues by an ascending key:

    ======  ===============  ============
    alias   rule             key
    ======  ===============  ============
    'LM'    LARGEST_MAGN     -|x|
    'LR'    LARGEST_REAL     -Re(x)
    'LI'    LARGEST_IMAG     -|Im(x)|
    'SM'    SMALLEST_MAGN    |x|
    'SR'    SMALLEST_REAL    Re(x)
    'SI'    SMALLEST_IMAG    |Im(x)|
    ======  ===============  ============

The imaginary rules use the magnitude of the imaginary part, so that both
members of a complex conjugate pair receive the same key and stay adjacent.
Ties keep their original order.
"""

from enum import Enum, unique
from typing import Union

import numpy as np
from numpy.typing import NDArray

from .result import EigenArgumentError, EigenErrorMsg

# ----------------------------------------------------------------------------------------

@unique
class SortRule(Enum):
    """
    Rules for selecting and sorting eigenvalues.
    """
    LARGEST_MAGN    = 'LM'
    LARGEST_REAL    = 'LR'
    LARGEST_IMAG    = 'LI'
    SMALLEST_MAGN   = 'SM'
    SMALLEST_REAL   = 'SR'
    SMALLEST_IMAG   = 'SI'

    def key(self, values: NDArray) -> NDArray:
        ''' Sort key of ``values``, smaller keys come first. '''
        values = np.asarray(values)
        if self is SortRule.LARGEST_MAGN:
            return -np.abs(values)
        if self is SortRule.LARGEST_REAL:
            return -np.real(values)
        if self is SortRule.LARGEST_IMAG:
            return -np.abs(np.imag(values))
        if self is SortRule.SMALLEST_MAGN:
            return np.abs(values)
        if self is SortRule.SMALLEST_REAL:
            return np.real(values)
        return np.abs(np.imag(values))

RuleLike = Union[SortRule, str]

def as_sort_rule(rule: RuleLike) -> SortRule:
    '''
    Convert 'LM', 'largest_magn' or a ``SortRule`` into a ``SortRule``.

    Raises:
        EigenArgumentError (ValueError): for unknown rules.
    '''
    if isinstance(rule, SortRule):
        return rule
    if isinstance(rule, str):
        name = rule.strip()
        try:
            return SortRule(name.upper())
        except ValueError:
            pass
        try:
            return SortRule[name.upper()]
        except KeyError:
            pass
    raise EigenArgumentError(EigenErrorMsg.INVALID_RULE,
            f"unsupported sorting rule {rule!r}, use one of {[r.value for r in SortRule]}")

def sort_eigenvalues(values: NDArray, rule: RuleLike, n: int = None) -> NDArray:
    '''
    Indices that order the first ``n`` entries of ``values`` by ``rule``.

    The sort is stable: values with equal keys keep their relative order.

    Args:
        values:
            Eigenvalues (real or complex).
        rule:
            Sort rule or its alias.
        n:
            Only the leading ``n`` values take part (default: all).

    Returns:
        Integer array of length ``n``.
    '''
    values  = np.asarray(values)
    n       = len(values) if n is None else int(n)
    keys    = as_sort_rule(rule).key(values[:n])
    return np.argsort(keys, kind='stable')

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
