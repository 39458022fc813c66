"""
Per-lane jump-diffusion kernel.

Every lane produces one one-period portfolio return:

    Z   ~ N(0, I_N)                               # Box-Muller from the lane stream
    X   = L Z                                     # correlated shocks, Cov(X) = Σ
    r_i = (μ_i − ½σ_i²)·dt + σ_i·sqrt(dt)·X_i     # diffusion
        + 1{U_i < λ·dt} · (μ_J + σ_J·Z_J,i)       # at most one jump per asset
    R   = Σ_i w_i r_i                             # weights used as given

The jump is a single Bernoulli trial with probability λ·dt, a small-λ·dt
stand-in for a Poisson count. When λ·dt ≥ 1 every lane jumps exactly once.

Lanes are evaluated as numpy vectors: one array element per lane, one loop
iteration per asset. Every lane consumes the same number of uniforms whether
or not its jump fires, so a lane's stream depends only on (lane, seed):

    ceil(N/2) normal pairs for Z, then per asset one jump uniform and one
    normal pair for the jump size, then one uniform of placement jitter.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from shocksim.config import MAX_ASSETS
from shocksim.errors import InputValidationError
from shocksim.models import EngineOutput
from shocksim.simulation.pcg import Pcg32Lanes


@dataclass(frozen=True)
class KernelParams:
    """
    Read-only parameters shared by every lane of a dispatch.

    Attributes
    ----------
    drift : NDArray[np.float64]
        Shocked drift μ, shape (N,).
    vol : NDArray[np.float64]
        Shocked volatility σ, shape (N,).
    factor : NDArray[np.float64]
        Lower-triangular L, shape (N, N).
    weights : NDArray[np.float64]
        Portfolio weights, shape (N,).
    jump_lambda, jump_mean, jump_vol : float
        Jump intensity and jump size distribution.
    dt : float
        Horizon in years.
    num_particles : int
        Total lanes in the dispatch (for placement normalization).
    """

    drift: NDArray[np.float64]
    vol: NDArray[np.float64]
    factor: NDArray[np.float64]
    weights: NDArray[np.float64]
    jump_lambda: float
    jump_mean: float
    jump_vol: float
    dt: float
    num_particles: int

    @property
    def n_assets(self) -> int:
        return int(self.drift.shape[0])

    @classmethod
    def from_engine_output(
        cls,
        output: EngineOutput,
        weights: NDArray[np.float64],
        dt: float,
        num_particles: int,
    ) -> "KernelParams":
        """
        Copy an EngineOutput and weights into kernel parameters.

        Raises
        ------
        InputValidationError
            If the asset count exceeds MAX_ASSETS or weights don't match it.
        """
        n = output.n_assets
        if n < 1 or n > MAX_ASSETS:
            raise InputValidationError(
                f"Kernel supports 1..{MAX_ASSETS} assets. Got {n}"
            )
        weights = np.array(weights, dtype=np.float64, copy=True).reshape(-1)
        if weights.shape != (n,):
            raise InputValidationError(
                f"weights must have shape ({n},). Got {weights.shape}"
            )
        factor = np.array(output.cholesky_l, dtype=np.float64, copy=True).reshape(-1)
        if factor.size != n * n:
            raise InputValidationError(
                f"cholesky_l must have {n * n} entries for {n} assets. Got {factor.size}"
            )
        factor = factor.reshape(n, n)
        params = cls(
            drift=np.array(output.adjusted_drift, dtype=np.float64, copy=True),
            vol=np.array(output.adjusted_vol, dtype=np.float64, copy=True),
            factor=np.tril(factor),
            weights=weights,
            jump_lambda=float(output.jump_lambda),
            jump_mean=float(output.jump_mean),
            jump_vol=float(output.jump_vol),
            dt=float(dt),
            num_particles=int(num_particles),
        )
        for array in (params.drift, params.vol, params.factor, params.weights):
            array.setflags(write=False)
        return params


def draw_normals(rng: Pcg32Lanes, n_assets: int) -> NDArray[np.float64]:
    """
    Standard normals for every lane, shape (n_assets, n_lanes).

    Drawn in Box-Muller pairs; for odd n_assets the last sine value is dropped.
    """
    z = np.empty((n_assets, len(rng)), dtype=np.float64)
    for k in range(0, n_assets, 2):
        z0, z1 = rng.next_normal_pair()
        z[k] = z0
        if k + 1 < n_assets:
            z[k + 1] = z1
    return z


def correlate(factor: NDArray[np.float64], z: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    X = L Z for a lower-triangular L, column-wise over lanes.

    Each row starts from the diagonal term, so a diagonal L gives exactly
    X_i = L[i, i]·Z_i.

    Parameters
    ----------
    factor : NDArray[np.float64]
        Lower-triangular L, shape (N, N).
    z : NDArray[np.float64]
        Independent normals, shape (N, n_lanes).

    Returns
    -------
    NDArray[np.float64]
        Correlated shocks, shape (N, n_lanes).
    """
    n = factor.shape[0]
    x = np.empty_like(z)
    for i in range(n):
        acc = factor[i, i] * z[i]
        for j in range(i):
            acc = acc + factor[i, j] * z[j]
        x[i] = acc
    return x


def simulate_lanes(
    lanes: NDArray[np.uint64],
    params: KernelParams,
    seed: int,
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Run the kernel for a set of lanes.

    Parameters
    ----------
    lanes : NDArray[np.uint64]
        Global lane indices.
    params : KernelParams
        Shared read-only parameters.
    seed : int
        32-bit session seed.

    Returns
    -------
    returns : NDArray[np.float64]
        Portfolio return per lane, shape (n_lanes,)
    placements : NDArray[np.float64]
        Presentation coordinate per lane in [0, 1), shape (n_lanes,)
    """
    lanes = np.asarray(lanes, dtype=np.uint64)
    n = params.n_assets
    dt = params.dt
    sqrt_dt = np.sqrt(dt)
    jump_prob = params.jump_lambda * dt

    rng = Pcg32Lanes(lanes, seed)
    z = draw_normals(rng, n)
    x = correlate(params.factor, z)

    portfolio = np.zeros(len(lanes), dtype=np.float64)
    for i in range(n):
        mu = params.drift[i]
        sigma = params.vol[i]
        asset_return = (mu - 0.5 * sigma * sigma) * dt + sigma * sqrt_dt * x[i]

        jump_u = rng.next_uniform()
        jump_z = rng.next_normal()
        jumped = jump_u < jump_prob
        asset_return = asset_return + np.where(
            jumped, params.jump_mean + params.jump_vol * jump_z, 0.0
        )

        portfolio += params.weights[i] * asset_return

    jitter = rng.next_uniform()
    placements = (lanes.astype(np.float64) + 0.5 * jitter) / float(params.num_particles)
    return portfolio, placements


def run_chunk(
    buffer: NDArray[np.float64],
    start: int,
    stop: int,
    params: KernelParams,
    seed: int,
) -> int:
    """
    Fill rows [start, stop) of the ensemble buffer. Returns lanes written.

    Chunks write disjoint row ranges, so concurrent chunks never overlap.
    """
    lanes = np.arange(start, stop, dtype=np.uint64)
    returns, placements = simulate_lanes(lanes, params, seed)
    buffer[start:stop, 0] = returns
    buffer[start:stop, 1] = placements
    return stop - start
