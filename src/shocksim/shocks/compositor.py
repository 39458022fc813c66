"""
Shock composition: merge a base portfolio with a macroeconomic shock.

Mathematical formulation:
    μ' = μ_base + Δμ                     # additive drift shift
    σ' = σ_base ⊙ m                      # multiplicative vol scaling
    R' = (1 − s)·R_base + s·J            # blend toward perfect correlation

where J is the all-ones matrix and s ∈ [0, 1] is the correlation skew.
A convex blend of a valid correlation matrix with J is itself valid, but
R_base supplied by a caller may already be slightly indefinite, so R' is
treated as a candidate and repaired downstream by the projector.
"""

import logging

import numpy as np
from numpy.typing import NDArray

from shocksim.config import MAX_ASSETS
from shocksim.errors import InputValidationError
from shocksim.models import MacroShock, Portfolio, ShockedParameters


logger = logging.getLogger(__name__)


def validate_request(portfolio: Portfolio, shock: MacroShock) -> int:
    """
    Check that a portfolio and shock describe the same asset universe.

    Parameters
    ----------
    portfolio : Portfolio
        Base portfolio.
    shock : MacroShock
        Shock to apply.

    Returns
    -------
    int
        Number of assets N.

    Raises
    ------
    InputValidationError
        If weights are empty, the asset count exceeds MAX_ASSETS, any array
        length differs from N, the weights total is not positive, or a value
        is not finite.
    """
    n = portfolio.n_assets

    if portfolio.weights.size == 0:
        raise InputValidationError("Portfolio weights must not be empty")

    if n != portfolio.weights.size:
        raise InputValidationError(
            f"Portfolio lists {n} assets but {portfolio.weights.size} weights"
        )

    if n > MAX_ASSETS:
        raise InputValidationError(
            f"Portfolio has {n} assets; at most {MAX_ASSETS} are supported"
        )

    lengths = {
        "weights": portfolio.weights.shape[0],
        "base_drift": portfolio.base_drift.shape[0],
        "base_vol": portfolio.base_vol.shape[0],
        "delta_drift": shock.delta_drift.shape[0],
        "vol_multiplier": shock.vol_multiplier.shape[0],
    }
    mismatched = {name: size for name, size in lengths.items() if size != n}
    if mismatched:
        raise InputValidationError(
            f"Input length mismatch: expected N={n}, got {mismatched}"
        )

    if portfolio.base_correlation.shape != (n, n):
        raise InputValidationError(
            f"base_correlation must have shape ({n}, {n}). "
            f"Got {portfolio.base_correlation.shape}"
        )

    if not portfolio.weights.sum() > 0:
        raise InputValidationError(
            f"Portfolio weights must have a positive total. Got {portfolio.weights.sum()}"
        )

    arrays = (
        portfolio.weights, portfolio.base_drift, portfolio.base_vol,
        portfolio.base_correlation, shock.delta_drift, shock.vol_multiplier,
    )
    scalars = (shock.correlation_skew, shock.jump_lambda, shock.jump_mean, shock.jump_vol)
    if not all(np.all(np.isfinite(a)) for a in arrays) or not np.all(np.isfinite(scalars)):
        raise InputValidationError("Portfolio and shock values must be finite")

    if np.any(portfolio.base_vol <= 0) or np.any(shock.vol_multiplier <= 0):
        raise InputValidationError(
            f"Volatilities and volatility multipliers must be positive. "
            f"Got base_vol={portfolio.base_vol}, vol_multiplier={shock.vol_multiplier}"
        )

    if shock.jump_lambda < 0 or shock.jump_vol < 0:
        raise InputValidationError(
            f"jump_lambda and jump_vol must be >= 0. "
            f"Got jump_lambda={shock.jump_lambda}, jump_vol={shock.jump_vol}"
        )

    return n


def adjust_drift(base: NDArray[np.float64], delta: NDArray[np.float64]) -> NDArray[np.float64]:
    """μ' = μ_base + Δμ."""
    return base + delta


def adjust_vol(base: NDArray[np.float64], multiplier: NDArray[np.float64]) -> NDArray[np.float64]:
    """σ' = σ_base ⊙ m (element-wise)."""
    return base * multiplier


def blend_correlation(r_base: NDArray[np.float64], skew: float) -> NDArray[np.float64]:
    """
    Blend a correlation matrix toward the all-ones matrix.

    Parameters
    ----------
    r_base : NDArray[np.float64]
        Base correlation, shape (N, N).
    skew : float
        Blend factor, clamped to [0, 1].

    Returns
    -------
    NDArray[np.float64]
        Candidate correlation (1 − s)·R_base + s·J, shape (N, N).
    """
    s = float(np.clip(skew, 0.0, 1.0))
    ones = np.ones_like(r_base)
    return (1.0 - s) * r_base + s * ones


def compose_shock(portfolio: Portfolio, shock: MacroShock) -> ShockedParameters:
    """
    Apply a macro shock to a portfolio.

    Parameters
    ----------
    portfolio : Portfolio
        Base portfolio.
    shock : MacroShock
        Shock deltas and jump parameters.

    Returns
    -------
    ShockedParameters
        Adjusted drift and vol, candidate correlation (not guaranteed PSD)
        and echoed jump parameters.

    Raises
    ------
    InputValidationError
        See validate_request.
    """
    n = validate_request(portfolio, shock)
    skew = float(np.clip(shock.correlation_skew, 0.0, 1.0))
    if skew != shock.correlation_skew:
        logger.debug("correlation_skew %.4f clamped to %.4f", shock.correlation_skew, skew)

    params = ShockedParameters(
        adjusted_drift=adjust_drift(portfolio.base_drift, shock.delta_drift),
        adjusted_vol=adjust_vol(portfolio.base_vol, shock.vol_multiplier),
        candidate_correlation=blend_correlation(portfolio.base_correlation, skew),
        correlation_skew=skew,
        jump_lambda=shock.jump_lambda,
        jump_mean=shock.jump_mean,
        jump_vol=shock.jump_vol,
    )
    logger.debug("Composed shock %r over %d assets (skew=%.3f)", shock.name or shock.id, n, skew)
    return params
