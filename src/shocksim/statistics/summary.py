"""
Risk statistics over a sample ensemble.

Given portfolio returns r_1..r_N (in any order, as written by parallel lanes):

    mean      = (1/N) Σ r
    std       = sqrt((1/N) Σ (r − mean)²)             # population, divisor N
    skewness  = ((1/N) Σ (r − mean)³) / std³          # 0 when std == 0
    VaR_q     = sort(r)[floor(N·q)]
    CVaR_q    = mean(sort(r)[0 .. floor(N·q)])        # inclusive of the VaR index
    tail_pct  = 100 · #{r < threshold} / N

CVaR averages the VaR element and everything below it, so CVaR ≤ VaR always.
"""

import logging
import math
from typing import Optional, Union

import numpy as np
from numpy.typing import NDArray

from shocksim.config import SummaryConfig
from shocksim.errors import InputValidationError
from shocksim.models import SampleEnsemble, SimStats


logger = logging.getLogger(__name__)


def _extract_returns(samples: Union[SampleEnsemble, NDArray[np.float64]]) -> NDArray[np.float64]:
    if isinstance(samples, SampleEnsemble):
        return np.asarray(samples.returns, dtype=np.float64)
    array = np.asarray(samples, dtype=np.float64)
    # (N, 2) arrays are (return, placement) pairs
    if array.ndim == 2 and array.shape[1] == 2:
        return array[:, 0]
    return array.reshape(-1)


def quantile_index(n_samples: int, quantile: float) -> int:
    """floor(N·q), the order-statistic index of VaR_q."""
    return int(math.floor(n_samples * quantile))


def summarize(
    samples: Union[SampleEnsemble, NDArray[np.float64]],
    quantile: float = 0.05,
    tail_threshold: float = -0.30,
) -> SimStats:
    """
    Compute risk statistics for a sample ensemble.

    Parameters
    ----------
    samples : SampleEnsemble or NDArray[np.float64]
        Ensemble, (N, 2) (return, placement) array, or (N,) returns.
    quantile : float
        VaR/CVaR quantile q in (0, 1). Default 0.05.
    tail_threshold : float
        Loss threshold for the tail percentage. Default −0.30.

    Returns
    -------
    SimStats
        Mean, population std, skewness, VaR, CVaR, min, max, tail percentage.

    Raises
    ------
    InputValidationError
        If the ensemble is empty or q is outside (0, 1).
    """
    if not (0.0 < quantile < 1.0):
        raise InputValidationError(f"quantile must be in (0, 1). Got {quantile}")

    returns = _extract_returns(samples)
    n = returns.shape[0]
    if n == 0:
        raise InputValidationError("Cannot summarize an empty sample ensemble")

    ordered = np.sort(returns)
    mean = float(np.mean(returns))
    # Constant ensemble: spread is exactly zero
    if ordered[0] == ordered[-1]:
        std_dev = 0.0
        skewness = 0.0
    else:
        deviations = returns - mean
        std_dev = math.sqrt(float(np.mean(deviations ** 2)))
        skewness = float(np.mean(deviations ** 3)) / std_dev ** 3

    idx = quantile_index(n, quantile)
    var = float(ordered[idx])
    # A mean of values tied at VaR can round one ulp above it
    cvar = min(float(np.mean(ordered[: idx + 1])), var)

    tail_pct = float(np.count_nonzero(returns < tail_threshold)) / n * 100.0

    logger.debug("Summarized %d samples: VaR(%.3f)=%.4f CVaR=%.4f", n, quantile, var, cvar)

    return SimStats(
        mean=mean,
        std_dev=std_dev,
        skewness=skewness,
        var=var,
        cvar=cvar,
        min=float(ordered[0]),
        max=float(ordered[-1]),
        tail_pct=tail_pct,
        quantile=quantile,
        tail_threshold=tail_threshold,
        n_samples=n,
    )


class DistributionSummarizer:
    """Summarizer bound to a quantile and tail threshold."""

    def __init__(self, config: Optional[SummaryConfig] = None) -> None:
        self.config = config or SummaryConfig()
        self.config.validate()

    def summarize(self, samples: Union[SampleEnsemble, NDArray[np.float64]]) -> SimStats:
        return summarize(samples, self.config.quantile, self.config.tail_threshold)

    def __repr__(self) -> str:
        return (
            f"DistributionSummarizer(quantile={self.config.quantile}, "
            f"tail_threshold={self.config.tail_threshold})"
        )
