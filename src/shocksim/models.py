"""
Value types passed between pipeline stages.

Each stage copies the arrays it receives so that no stage keeps a mutable
reference into another stage's buffers.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray


ArrayLike = Union[Sequence[float], NDArray[np.float64]]


def _as_vector(values: ArrayLike) -> NDArray[np.float64]:
    return np.array(values, dtype=np.float64, copy=True).reshape(-1)


def _as_square(values: ArrayLike, n: int) -> NDArray[np.float64]:
    matrix = np.array(values, dtype=np.float64, copy=True)
    # Row-major flattened N*N input is accepted as well
    if matrix.ndim == 1 and matrix.size == n * n:
        matrix = matrix.reshape(n, n)
    return matrix


@dataclass
class Portfolio:
    """
    Base state of a portfolio.

    Attributes
    ----------
    assets : list of str
        Asset names, in order.
    weights : NDArray[np.float64]
        Portfolio weights, shape (N,). Expected to sum to 1; never renormalized.
    base_drift : NDArray[np.float64]
        Annualized expected returns μ, shape (N,).
    base_vol : NDArray[np.float64]
        Annualized volatilities σ, shape (N,).
    base_correlation : NDArray[np.float64]
        Correlation matrix, shape (N, N). A flattened row-major list of
        length N*N is reshaped.
    """

    assets: List[str]
    weights: NDArray[np.float64]
    base_drift: NDArray[np.float64]
    base_vol: NDArray[np.float64]
    base_correlation: NDArray[np.float64]

    def __post_init__(self) -> None:
        self.assets = list(self.assets)
        self.weights = _as_vector(self.weights)
        self.base_drift = _as_vector(self.base_drift)
        self.base_vol = _as_vector(self.base_vol)
        self.base_correlation = _as_square(self.base_correlation, len(self.assets))

    @property
    def n_assets(self) -> int:
        return len(self.assets)


@dataclass
class MacroShock:
    """
    Perturbation applied to a portfolio.

    Attributes
    ----------
    delta_drift : NDArray[np.float64]
        Additive drift adjustments, shape (N,).
    vol_multiplier : NDArray[np.float64]
        Multiplicative volatility factors, shape (N,).
    correlation_skew : float
        Blend toward the all-ones correlation matrix, in [0, 1].
    jump_lambda : float
        Jump intensity (jumps per unit horizon).
    jump_mean : float
        Mean jump size.
    jump_vol : float
        Jump size volatility.
    """

    delta_drift: NDArray[np.float64]
    vol_multiplier: NDArray[np.float64]
    correlation_skew: float = 0.0
    jump_lambda: float = 0.0
    jump_mean: float = 0.0
    jump_vol: float = 0.0
    id: str = ""
    name: str = ""

    def __post_init__(self) -> None:
        self.delta_drift = _as_vector(self.delta_drift)
        self.vol_multiplier = _as_vector(self.vol_multiplier)
        self.correlation_skew = float(self.correlation_skew)
        self.jump_lambda = float(self.jump_lambda)
        self.jump_mean = float(self.jump_mean)
        self.jump_vol = float(self.jump_vol)

    @property
    def n_assets(self) -> int:
        return int(self.delta_drift.shape[0])


@dataclass(frozen=True)
class ProjectionResult:
    """Outcome of the nearest-correlation projection."""

    matrix: NDArray[np.float64]
    iterations: int
    converged: bool
    residual: float


@dataclass(frozen=True)
class EngineOutput:
    """
    Parameters handed from the covariance stage to the sampler.

    ``cholesky_l`` is the lower-triangular factor flattened row-major
    (length N*N); only the lower triangle is meaningful.
    """

    adjusted_drift: NDArray[np.float64]
    adjusted_vol: NDArray[np.float64]
    cholesky_l: NDArray[np.float64]
    n_assets: int
    jump_lambda: float
    jump_mean: float
    jump_vol: float
    correlation: Optional[NDArray[np.float64]] = None
    projection: Optional[ProjectionResult] = None

    def factor(self) -> NDArray[np.float64]:
        """Lower-triangular factor L as an (N, N) array."""
        return self.cholesky_l.reshape(self.n_assets, self.n_assets)

    def covariance(self) -> NDArray[np.float64]:
        """Covariance reconstructed from the factor, L Lᵀ."""
        L = self.factor()
        return L @ L.T


@dataclass(frozen=True)
class SampleEnsemble:
    """
    Write-once array of (portfolio_return, placement) pairs, one row per lane.

    ``placement`` is a presentation value only and has no statistical meaning.
    """

    data: NDArray[np.float64]
    generation: int
    seed: int

    @property
    def returns(self) -> NDArray[np.float64]:
        return self.data[:, 0]

    @property
    def placements(self) -> NDArray[np.float64]:
        return self.data[:, 1]

    def __len__(self) -> int:
        return int(self.data.shape[0])


@dataclass(frozen=True)
class SimStats:
    """Risk statistics over one sample ensemble."""

    mean: float
    std_dev: float
    skewness: float
    var: float
    cvar: float
    min: float
    max: float
    tail_pct: float
    quantile: float = 0.05
    tail_threshold: float = -0.30
    n_samples: int = 0

    def to_dict(self) -> Dict[str, float]:
        return {
            "mean": self.mean,
            "std_dev": self.std_dev,
            "skewness": self.skewness,
            "var": self.var,
            "cvar": self.cvar,
            "min": self.min,
            "max": self.max,
            "tail_pct": self.tail_pct,
            "quantile": self.quantile,
            "tail_threshold": self.tail_threshold,
            "n_samples": self.n_samples,
        }


@dataclass(frozen=True)
class ShockedParameters:
    """Adjusted drift/vol plus the (possibly indefinite) blended correlation."""

    adjusted_drift: NDArray[np.float64]
    adjusted_vol: NDArray[np.float64]
    candidate_correlation: NDArray[np.float64]
    correlation_skew: float
    jump_lambda: float
    jump_mean: float
    jump_vol: float

    @property
    def n_assets(self) -> int:
        return int(self.adjusted_drift.shape[0])


@dataclass
class ScenarioResult:
    """Engine output, ensemble and statistics for one shock."""

    shock_name: str
    engine_output: EngineOutput
    ensemble: SampleEnsemble
    stats: SimStats
    degraded: bool = False
    elapsed_ms: float = 0.0
