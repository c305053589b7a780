"""
Final ordering of the Ritz pairs.

A solver owns one strategy object and calls, at the end of ``compute``,

    strategy.transform(ritz_val, nev)           # in place, may map the values
    ind = strategy.sort(ritz_val, nev, rule)    # order of the first nev pairs

The default strategy leaves the values alone. ``ShiftInvertRitzSort`` maps the
Ritz values nu of (A - sigma I)^{-1} back to eigenvalues of A,
lambda = 1 / nu + sigma, before sorting them.
"""

from numpy.typing import NDArray

from .rules import RuleLike, sort_eigenvalues

# ----------------------------------------------------------------------------------------

class RitzSortStrategy:
    """
    Sort the first ``nev`` Ritz values by a rule, values unchanged.
    """

    def transform(self, ritz_val: NDArray, nev: int) -> None:
        pass

    def sort(self, ritz_val: NDArray, nev: int, rule: RuleLike) -> NDArray:
        return sort_eigenvalues(ritz_val, rule, nev)

    def __repr__(self):
        return f"{self.__class__.__name__}()"

class ShiftInvertRitzSort(RitzSortStrategy):
    """
    Map nu -> 1 / nu + sigma on the first ``nev`` Ritz values, then sort.

    Args:
        sigma: the real shift of the shift-and-invert operator.
    """

    def __init__(self, sigma: float):
        self.sigma = float(sigma)

    def transform(self, ritz_val: NDArray, nev: int) -> None:
        ritz_val[:nev] = 1.0 / ritz_val[:nev] + self.sigma

    def __repr__(self):
        return f"{self.__class__.__name__}(sigma={self.sigma})"

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
