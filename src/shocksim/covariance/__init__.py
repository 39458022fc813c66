"""
Correlation repair and covariance factorization.

This module implements:
- Higham nearest-correlation projection with Dykstra's correction
- Covariance rebuild Σ = diag(σ) R diag(σ)
- Row-wise Cholesky factorization with explicit pivot checks
"""

from shocksim.covariance.factorization import (
    CovarianceFactorizer,
    cholesky_lower,
    rebuild_covariance,
    reconstruction_error,
)
from shocksim.covariance.projection import (
    PositiveDefiniteProjector,
    nearest_correlation,
)

__all__ = [
    "PositiveDefiniteProjector",
    "nearest_correlation",
    "CovarianceFactorizer",
    "cholesky_lower",
    "rebuild_covariance",
    "reconstruction_error",
]
