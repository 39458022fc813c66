"""
Nearest correlation matrix via Higham's alternating projections.

Given a symmetric candidate A (for example a correlation matrix blended toward
perfect correlation), find the closest valid correlation matrix in Frobenius
norm:

    min ||A − X||_F   subject to   X ⪰ 0,  diag(X) = 1

The feasible set is the intersection of two closed convex sets:

    S = {X : X ⪰ 0}                  # positive semi-definite cone
    U = {X : diag(X) = 1}            # unit-diagonal affine subspace

Alternating projections with Dykstra's correction (Higham, 2002) converge to
the nearest point of S ∩ U:

    R_k = Y_k − ΔS_k
    X_k = P_S(R_k)                   # clip eigenvalues at a small floor
    ΔS_{k+1} = X_k − R_k
    Y_{k+1} = P_U(X_k)               # reset the diagonal to 1

Clipping at a positive floor (rather than at 0) keeps the result strictly
positive definite, so the downstream Cholesky factorization has non-zero
pivots.

Reference:
    Higham, N. J. (2002). Computing the nearest correlation matrix: a problem
    from finance. IMA Journal of Numerical Analysis, 22(3), 329-343.
"""

import logging
import warnings
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import eigh

from shocksim.config import ProjectionConfig
from shocksim.errors import InputValidationError, NumericNonConvergence
from shocksim.models import ProjectionResult


logger = logging.getLogger(__name__)


def project_psd(matrix: NDArray[np.float64], floor: float) -> NDArray[np.float64]:
    """
    Project a symmetric matrix onto the PSD cone with an eigenvalue floor.

    Parameters
    ----------
    matrix : NDArray[np.float64]
        Symmetric matrix, shape (N, N).
    floor : float
        Eigenvalues below this value are raised to it.

    Returns
    -------
    NDArray[np.float64]
        V diag(max(λ, floor)) Vᵀ, symmetrized.
    """
    eigenvalues, eigenvectors = eigh(matrix)
    clipped = np.maximum(eigenvalues, floor)
    rebuilt = (eigenvectors * clipped) @ eigenvectors.T
    return 0.5 * (rebuilt + rebuilt.T)


def project_unit_diagonal(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Copy of the matrix with its diagonal reset to exactly 1."""
    out = matrix.copy()
    np.fill_diagonal(out, 1.0)
    return out


def rescale_to_unit_diagonal(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    D^{-1/2} X D^{-1/2} with D = diag(X).

    A congruence transform: a positive definite X stays positive definite
    while its diagonal becomes 1.
    """
    d = np.sqrt(np.diag(matrix))
    out = matrix / np.outer(d, d)
    out = 0.5 * (out + out.T)
    np.fill_diagonal(out, 1.0)
    return out


class PositiveDefiniteProjector:
    """
    Repairs a candidate correlation matrix into a valid one.

    Attributes
    ----------
    config : ProjectionConfig
        Tolerance, iteration cap and eigenvalue floor.
    """

    def __init__(self, config: Optional[ProjectionConfig] = None) -> None:
        self.config = config or ProjectionConfig()
        self.config.validate()

    def project(self, candidate: NDArray[np.float64]) -> ProjectionResult:
        """
        Find the nearest valid correlation matrix to ``candidate``.

        Parameters
        ----------
        candidate : NDArray[np.float64]
            Candidate correlation, shape (N, N). Need not be PSD; it is
            symmetrized before projecting.

        Returns
        -------
        ProjectionResult
            Projected matrix (symmetric, unit diagonal, PSD within tolerance),
            iteration count, convergence flag and final Frobenius change.

        Raises
        ------
        InputValidationError
            If the candidate is not a finite square matrix.

        Warns
        -----
        NumericNonConvergence
            If the iteration cap is reached. The best projection found so far
            is still returned.
        """
        candidate = np.asarray(candidate, dtype=np.float64)
        if candidate.ndim != 2 or candidate.shape[0] != candidate.shape[1]:
            raise InputValidationError(
                f"Candidate correlation must be square. Got shape {candidate.shape}"
            )
        if not np.all(np.isfinite(candidate)):
            raise InputValidationError("Candidate correlation must be finite")

        n = candidate.shape[0]
        tol = self.config.tolerance
        floor = self.config.eigenvalue_floor

        y = 0.5 * (candidate + candidate.T)
        if n == 1:
            return ProjectionResult(matrix=np.ones((1, 1)), iterations=0, converged=True, residual=0.0)

        correction = np.zeros_like(y)
        x = y
        residual = np.inf
        converged = False
        iterations = 0

        for iterations in range(1, self.config.max_iterations + 1):
            r = y - correction
            x = project_psd(r, floor)
            correction = x - r
            y_next = project_unit_diagonal(x)

            residual = float(np.linalg.norm(y_next - y, ord="fro"))
            y = y_next
            if residual < tol:
                converged = True
                break

        result = rescale_to_unit_diagonal(x)

        if not converged:
            logger.warning(
                "Nearest-correlation projection did not converge after %d iterations "
                "(last change %.3e, tolerance %.1e); using best available matrix",
                iterations, residual, tol,
            )
            warnings.warn(
                f"Nearest-correlation projection did not converge after {iterations} "
                f"iterations (last change {residual:.3e})",
                NumericNonConvergence,
                stacklevel=2,
            )
        else:
            logger.debug("Projection converged in %d iterations (change %.3e)", iterations, residual)

        return ProjectionResult(
            matrix=result,
            iterations=iterations,
            converged=converged,
            residual=residual,
        )

    def __repr__(self) -> str:
        return (
            f"PositiveDefiniteProjector(tolerance={self.config.tolerance}, "
            f"max_iterations={self.config.max_iterations})"
        )


def nearest_correlation(
    matrix: NDArray[np.float64],
    tolerance: float = 1e-8,
    max_iterations: int = 100,
    eigenvalue_floor: float = 1e-8,
) -> NDArray[np.float64]:
    """
    Nearest valid correlation matrix to ``matrix``.

    Shortcut for PositiveDefiniteProjector(...).project(matrix).matrix.
    """
    config = ProjectionConfig(
        tolerance=tolerance,
        max_iterations=max_iterations,
        eigenvalue_floor=eigenvalue_floor,
    )
    return PositiveDefiniteProjector(config).project(matrix).matrix
