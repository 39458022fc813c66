"""
Error taxonomy for the shock simulation pipeline.

Errors fall into two families:

- InputError: the request itself is malformed (caller's fault). Fixing the
  input and resubmitting is expected to succeed.
- ComputationError: a numeric or environment failure. Retrying with the same
  input will not help.

Non-convergence of the nearest-correlation projection is not an error at all;
it is reported through the ``warnings`` module with the NumericNonConvergence
category and the pipeline continues with the best available projection.
"""


class ShockSimError(Exception):
    """Base class for all shocksim errors."""

    correctable = False


class InputError(ShockSimError, ValueError):
    """The request is malformed and can be corrected by the caller."""

    correctable = True


class InputValidationError(InputError):
    """Malformed portfolio, shock or configuration."""


class ComputationError(ShockSimError, RuntimeError):
    """Numeric or environment failure, not fixable by resubmitting."""

    correctable = False


class DecompositionFailure(ComputationError):
    """Cholesky factorization met a non positive-definite matrix."""

    def __init__(self, message: str, row: int = -1, pivot: float = float("nan")) -> None:
        super().__init__(message)
        self.row = row
        self.pivot = pivot


class ExecutionContextUnavailable(ComputationError):
    """The parallel execution context could not be acquired."""


class StaleReadback(ComputationError):
    """A readback targeted an ensemble superseded by a later dispatch."""

    def __init__(self, generation: int, current_generation: int) -> None:
        super().__init__(
            f"Readback of generation {generation} is stale "
            f"(current generation is {current_generation}); result discarded"
        )
        self.generation = generation
        self.current_generation = current_generation


class NumericNonConvergence(RuntimeWarning):
    """Nearest-correlation projection exhausted its iteration budget."""
