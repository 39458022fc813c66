"""
Monte Carlo sampling of one-period portfolio returns.

- Pcg32Lanes: one PCG32 stream per lane
- simulate_lanes / run_chunk: correlated jump-diffusion kernel
- ExecutionContext: thread pool with acquire/release lifecycle
- ParallelPathSampler / DiagonalSampler: chosen once via select_sampler
- SimulationHandle: generation-tagged result of a dispatch
"""

from shocksim.simulation.context import ExecutionContext, SimulationHandle
from shocksim.simulation.kernel import KernelParams, run_chunk, simulate_lanes
from shocksim.simulation.pcg import Pcg32Lanes
from shocksim.simulation.sampler import (
    DiagonalSampler,
    ParallelPathSampler,
    Sampler,
    select_sampler,
)

__all__ = [
    "Pcg32Lanes",
    "KernelParams",
    "simulate_lanes",
    "run_chunk",
    "ExecutionContext",
    "SimulationHandle",
    "Sampler",
    "ParallelPathSampler",
    "DiagonalSampler",
    "select_sampler",
]
