"""
Covariance rebuild and Cholesky factorization.

Mathematical background:
    Covariance matrix Σ decomposes as

        Σ = D R D,   D = diag(σ)

    where σ are the shocked volatilities and R is the projected correlation
    matrix. Because R is positive definite after projection and σ > 0, Σ is
    positive definite and admits a unique lower-triangular L with

        Σ = L Lᵀ

    computed row by row (Cholesky–Banachiewicz):

        L[i][j] = (Σ[i][j] − Σ_{k<j} L[i][k] L[j][k]) / L[j][j]     j < i
        L[i][i] = sqrt(Σ[i][i] − Σ_{k<i} L[i][k]²)

    A non-positive pivot means the projector let a non-PD matrix through.
    That is an invariant violation, so it is raised as DecompositionFailure
    and never retried.
"""

import logging
from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from shocksim.errors import DecompositionFailure, InputValidationError


logger = logging.getLogger(__name__)


def rebuild_covariance(
    volatilities: NDArray[np.float64],
    correlation: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Σ = diag(σ) R diag(σ).

    Parameters
    ----------
    volatilities : NDArray[np.float64]
        Volatilities σ, shape (N,).
    correlation : NDArray[np.float64]
        Correlation matrix R, shape (N, N).

    Returns
    -------
    NDArray[np.float64]
        Covariance matrix, shape (N, N).
    """
    volatilities = np.asarray(volatilities, dtype=np.float64)
    correlation = np.asarray(correlation, dtype=np.float64)
    n = volatilities.shape[0]
    if correlation.shape != (n, n):
        raise InputValidationError(
            f"Correlation shape {correlation.shape} doesn't match (n_assets={n}, n_assets={n})"
        )
    return correlation * np.outer(volatilities, volatilities)


def cholesky_lower(covariance: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Lower-triangular Cholesky factor of a symmetric positive definite matrix.

    Parameters
    ----------
    covariance : NDArray[np.float64]
        Symmetric positive definite matrix Σ, shape (N, N).

    Returns
    -------
    NDArray[np.float64]
        L such that L Lᵀ = Σ, shape (N, N), zeros above the diagonal.

    Raises
    ------
    DecompositionFailure
        If a pivot is not strictly positive.
    """
    sigma = np.asarray(covariance, dtype=np.float64)
    n = sigma.shape[0]
    L = np.zeros((n, n), dtype=np.float64)

    for i in range(n):
        for j in range(i + 1):
            acc = sigma[i, j] - np.dot(L[i, :j], L[j, :j])
            if j < i:
                L[i, j] = acc / L[j, j]
            else:
                if not acc > 0.0:
                    logger.error(
                        "Cholesky pivot %d is %.3e; covariance is not positive definite", i, acc
                    )
                    raise DecompositionFailure(
                        f"Cholesky decomposition failed at row {i}: pivot {acc:.3e} "
                        f"is not positive (matrix is not positive definite)",
                        row=i,
                        pivot=float(acc),
                    )
                L[i, i] = np.sqrt(acc)

    return L


def reconstruction_error(L: NDArray[np.float64], covariance: NDArray[np.float64]) -> float:
    """max |L Lᵀ − Σ|."""
    return float(np.max(np.abs(L @ L.T - covariance)))


class CovarianceFactorizer:
    """Builds Σ from volatilities and correlation and factorizes it."""

    def factorize(
        self,
        volatilities: NDArray[np.float64],
        correlation: NDArray[np.float64],
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Parameters
        ----------
        volatilities : NDArray[np.float64]
            Shocked volatilities, shape (N,).
        correlation : NDArray[np.float64]
            Projected correlation, shape (N, N).

        Returns
        -------
        covariance : NDArray[np.float64]
            Σ, shape (N, N)
        cholesky : NDArray[np.float64]
            Lower-triangular L with L Lᵀ = Σ, shape (N, N)
        """
        covariance = rebuild_covariance(volatilities, correlation)
        L = cholesky_lower(covariance)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Factorized %dx%d covariance (reconstruction error %.2e)",
                L.shape[0], L.shape[0], reconstruction_error(L, covariance),
            )
        return covariance, L

    def __repr__(self) -> str:
        return "CovarianceFactorizer()"
