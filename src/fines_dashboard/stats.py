from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

# Abramowitz & Stegun 7.1.26, max absolute error about 1.5e-7.
ERF_A1 = 0.254829592
ERF_A2 = -0.284496736
ERF_A3 = 1.421413741
ERF_A4 = -1.453152027
ERF_A5 = 1.061405429
ERF_P = 0.3275911

ContingencyTable = Sequence[Sequence[float]]


@dataclass(frozen=True)
class ChiSquareResult:
    chi2: float
    p: float
    expected: list[list[float]]

    def to_dict(self) -> dict[str, object]:
        return {"chi2": self.chi2, "p": self.p, "expected": self.expected}


def erf_approx(x: float | np.ndarray) -> float | np.ndarray:
    """Rational approximation of the error function (A&S 7.1.26)."""
    values = np.asarray(x, dtype=float)
    sign = np.where(values >= 0.0, 1.0, -1.0)
    magnitude = np.abs(values)
    t = 1.0 / (1.0 + ERF_P * magnitude)
    poly = ((((ERF_A5 * t + ERF_A4) * t + ERF_A3) * t + ERF_A2) * t + ERF_A1) * t
    result = sign * (1.0 - poly * np.exp(-magnitude * magnitude))
    if result.ndim == 0:
        return float(result)
    return result


def _as_table(table: ContingencyTable) -> np.ndarray:
    observed = np.asarray(table, dtype=float)
    if observed.shape != (2, 2):
        raise ValueError(f"contingency table must be 2x2, got shape {observed.shape}")
    return observed


def chi_square_independence(table: ContingencyTable) -> ChiSquareResult:
    """Chi-square statistic for a 2x2 table with a normal-approximation p-value.

    The p-value is ``1 - erf(sqrt(chi2) / sqrt(2))``, which treats
    ``sqrt(chi2)`` as a standard normal deviate rather than evaluating the
    chi-square distribution with one degree of freedom.
    """
    observed = _as_table(table)
    total = float(observed.sum())
    if total == 0.0:
        return ChiSquareResult(chi2=0.0, p=1.0, expected=[[0.0, 0.0], [0.0, 0.0]])

    row_totals = observed.sum(axis=1)
    col_totals = observed.sum(axis=0)
    expected = np.outer(row_totals, col_totals) / total

    positive = expected > 0.0
    contributions = np.zeros_like(observed)
    contributions[positive] = (observed[positive] - expected[positive]) ** 2 / expected[positive]
    chi2 = float(contributions.sum())

    p_value = 1.0 - float(erf_approx(np.sqrt(chi2) / np.sqrt(2.0)))
    return ChiSquareResult(chi2=chi2, p=p_value, expected=expected.tolist())
