"""
Monte Carlo samplers.

Two implementations share one interface and are chosen once, up front:

- ParallelPathSampler: full correlated jump-diffusion kernel, lanes split
  into chunks and run on an ExecutionContext.
- DiagonalSampler: degraded path for when no execution context can be
  acquired. Ignores correlation and jumps, runs synchronously on numpy's
  default Generator.

**Usage:**
```python
with ExecutionContext() as context:
    sampler = select_sampler(context, SamplerConfig(num_particles=100_000))
    handle = sampler.dispatch(engine_output, portfolio.weights)
    ensemble = handle.result()
```
"""

import logging
import secrets
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from shocksim.config import SamplerConfig
from shocksim.errors import ExecutionContextUnavailable
from shocksim.models import EngineOutput, SampleEnsemble
from shocksim.simulation.context import (
    ExecutionContext,
    GenerationCounter,
    SimulationHandle,
    gather,
)
from shocksim.simulation.kernel import KernelParams, run_chunk


logger = logging.getLogger(__name__)


class Sampler(ABC):
    """
    Draws a SampleEnsemble from an EngineOutput.

    Every dispatch allocates its own buffer and takes a new generation
    number, which marks all earlier handles from this sampler as stale.
    """

    degraded = False

    def __init__(self, config: Optional[SamplerConfig] = None) -> None:
        self.config = config or SamplerConfig()
        self.config.validate()
        self._generations = GenerationCounter()
        self._dispatch_lock = threading.Lock()

    @property
    def current_generation(self) -> int:
        return self._generations.current

    def session_seed(self, seed: Optional[int] = None) -> int:
        """Explicit seed, else the configured seed, else a fresh 32-bit seed."""
        if seed is not None:
            return int(seed) & 0xFFFFFFFF
        if self.config.seed is not None:
            return int(self.config.seed)
        return secrets.randbits(32)

    def dispatch(
        self,
        output: EngineOutput,
        weights: NDArray[np.float64],
        seed: Optional[int] = None,
    ) -> SimulationHandle:
        """
        Start a simulation and return immediately.

        Parameters
        ----------
        output : EngineOutput
            Shocked drift, volatility, Cholesky factor and jump parameters.
        weights : NDArray[np.float64]
            Portfolio weights, shape (N,). Used as given.
        seed : int, optional
            32-bit session seed for this dispatch.

        Returns
        -------
        SimulationHandle
            Resolves to the SampleEnsemble.

        Raises
        ------
        InputValidationError
            If the asset count exceeds MAX_ASSETS or weights don't match.
        """
        num_particles = self.config.num_particles
        params = KernelParams.from_engine_output(output, weights, self.config.dt, num_particles)
        session_seed = self.session_seed(seed)
        buffer = np.empty((num_particles, 2), dtype=np.float64)

        started = time.perf_counter()
        with self._dispatch_lock:
            generation = self._generations.current + 1
            future = self._submit(params, session_seed, buffer, generation)
            self._generations.advance(generation)

        def _log_completion(_: Future) -> None:
            logger.debug(
                "Generation %d finished in %.1f ms",
                generation, (time.perf_counter() - started) * 1000.0,
            )

        future.add_done_callback(_log_completion)
        logger.info(
            "Dispatched generation %d: %d lanes, %d assets, seed=%d%s",
            generation, num_particles, params.n_assets, session_seed,
            " (degraded)" if self.degraded else "",
        )

        return SimulationHandle(future, generation, session_seed, self._generations)

    @staticmethod
    def _finalize(buffer: NDArray[np.float64], generation: int, seed: int) -> SampleEnsemble:
        buffer.setflags(write=False)
        return SampleEnsemble(data=buffer, generation=generation, seed=seed)

    @abstractmethod
    def _submit(
        self,
        params: KernelParams,
        seed: int,
        buffer: NDArray[np.float64],
        generation: int,
    ) -> Future:
        """Start filling ``buffer``; the future resolves to a SampleEnsemble."""


class ParallelPathSampler(Sampler):
    """
    Correlated jump-diffusion sampler running lane chunks on a thread pool.

    Parameters
    ----------
    context : ExecutionContext
        Acquired execution context. The sampler does not own it.
    config : SamplerConfig, optional
        Particle count, horizon, chunk size and seed.
    """

    def __init__(self, context: ExecutionContext, config: Optional[SamplerConfig] = None) -> None:
        super().__init__(config)
        self.context = context

    def _submit(
        self,
        params: KernelParams,
        seed: int,
        buffer: NDArray[np.float64],
        generation: int,
    ) -> Future:
        num_particles = params.num_particles
        chunk = self.config.chunk_size
        futures = [
            self.context.submit(run_chunk, buffer, start, min(start + chunk, num_particles), params, seed)
            for start in range(0, num_particles, chunk)
        ]
        logger.debug("Generation %d split into %d chunks of <= %d lanes", generation, len(futures), chunk)
        return gather(futures, lambda: self._finalize(buffer, generation, seed))

    def __repr__(self) -> str:
        return (
            f"ParallelPathSampler(num_particles={self.config.num_particles}, "
            f"chunk_size={self.config.chunk_size}, context={self.context!r})"
        )


class DiagonalSampler(Sampler):
    """
    Degraded sampler: independent assets, no jumps, single-threaded.

    Each asset return is (μ_i − ½σ_i²)·dt + σ_i·sqrt(dt)·σ_i·Z_i, the same
    diffusion term the full kernel uses with a diagonal factor.
    """

    degraded = True

    def _submit(
        self,
        params: KernelParams,
        seed: int,
        buffer: NDArray[np.float64],
        generation: int,
    ) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()

        rng = np.random.default_rng(seed)
        n_particles = params.num_particles
        dt = params.dt
        z = rng.standard_normal(size=(n_particles, params.n_assets))
        x = z * params.vol
        asset_returns = (params.drift - 0.5 * params.vol ** 2) * dt + params.vol * np.sqrt(dt) * x
        buffer[:, 0] = asset_returns @ params.weights
        buffer[:, 1] = (np.arange(n_particles) + 0.5 * rng.random(n_particles)) / n_particles

        future.set_result(self._finalize(buffer, generation, seed))
        return future

    def __repr__(self) -> str:
        return f"DiagonalSampler(num_particles={self.config.num_particles})"


def select_sampler(
    context: Optional[ExecutionContext],
    config: Optional[SamplerConfig] = None,
) -> Sampler:
    """
    Pick the sampler once, based on whether the context can be acquired.

    Parameters
    ----------
    context : ExecutionContext or None
        Candidate parallel context. None forces the degraded sampler.
    config : SamplerConfig, optional
        Passed to the chosen sampler.

    Returns
    -------
    Sampler
        ParallelPathSampler if the context is usable, else DiagonalSampler.
    """
    if context is not None:
        try:
            context.acquire()
        except ExecutionContextUnavailable as exc:
            logger.warning("Falling back to diagonal sampler: %s", exc)
        else:
            return ParallelPathSampler(context, config)
    else:
        logger.warning("No execution context supplied; using diagonal sampler")
    return DiagonalSampler(config)
