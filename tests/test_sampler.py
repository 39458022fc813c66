"""
Unit tests for samplers, the execution context and dispatch handles.

Tests cover:
- ExecutionContext lifecycle and unavailability
- Sampler selection (parallel vs. diagonal fallback)
- Generation tagging and stale readback
- Determinism, chunk-size independence and read-only ensembles
- Awaiting a handle from asyncio
"""

import asyncio
import threading
from concurrent.futures import Future

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from shocksim.config import SamplerConfig
from shocksim.errors import ExecutionContextUnavailable, StaleReadback
from shocksim.models import EngineOutput, SampleEnsemble
from shocksim.simulation.context import ExecutionContext, GenerationCounter, gather
from shocksim.simulation.sampler import (
    DiagonalSampler,
    ParallelPathSampler,
    select_sampler,
)


WEIGHTS = np.array([0.6, 0.3, 0.1])


@pytest.fixture
def engine_output() -> EngineOutput:
    vol = np.array([0.234, 0.066, 0.264])
    corr = np.array([[1.0, 0.44, 0.51], [0.44, 1.0, 0.23], [0.51, 0.23, 1.0]])
    L = np.linalg.cholesky(corr * np.outer(vol, vol))
    return EngineOutput(
        adjusted_drift=np.array([0.06, 0.04, 0.04]),
        adjusted_vol=vol,
        cholesky_l=L.reshape(-1),
        n_assets=3,
        jump_lambda=0.5,
        jump_mean=-0.02,
        jump_vol=0.03,
    )


@pytest.fixture
def context():
    with ExecutionContext(max_workers=4) as ctx:
        yield ctx


class TestExecutionContext:
    """Tests for ExecutionContext."""

    def test_submit_requires_acquire(self) -> None:
        ctx = ExecutionContext(max_workers=1)
        with pytest.raises(ExecutionContextUnavailable, match="not acquired"):
            ctx.submit(sum, [1, 2])

    def test_lifecycle(self) -> None:
        ctx = ExecutionContext(max_workers=2)
        assert not ctx.acquired
        ctx.acquire()
        assert ctx.acquired
        assert ctx.submit(sum, [1, 2]).result() == 3
        ctx.release()
        assert not ctx.acquired
        with pytest.raises(ExecutionContextUnavailable):
            ctx.submit(sum, [1, 2])

    def test_acquire_is_idempotent(self) -> None:
        with ExecutionContext(max_workers=1) as ctx:
            assert ctx.acquire() is ctx
            assert ctx.acquired

    def test_invalid_pool_unavailable(self) -> None:
        with pytest.raises(ExecutionContextUnavailable):
            ExecutionContext(max_workers=0).acquire()

    def test_detect(self) -> None:
        assert ExecutionContext.detect(max_workers=1)
        assert not ExecutionContext.detect(max_workers=0)


class TestGather:
    """Tests for combining chunk futures."""

    def test_first_failure_propagates(self) -> None:
        ok: Future = Future()
        failed: Future = Future()
        combined = gather([ok, failed], lambda: "unused")
        ok.set_result(1)
        assert not combined.done()
        failed.set_exception(ValueError("chunk broke"))
        with pytest.raises(ValueError, match="chunk broke"):
            combined.result(timeout=1)

    def test_empty_resolves_immediately(self) -> None:
        assert gather([], lambda: "done").result(timeout=1) == "done"


class TestSelectSampler:
    """Tests for one-time sampler selection."""

    def test_parallel_when_context_usable(self, context) -> None:
        sampler = select_sampler(context)
        assert isinstance(sampler, ParallelPathSampler)
        assert not sampler.degraded

    def test_fallback_when_context_unavailable(self) -> None:
        sampler = select_sampler(ExecutionContext(max_workers=0))
        assert isinstance(sampler, DiagonalSampler)
        assert sampler.degraded

    def test_fallback_without_context(self) -> None:
        assert isinstance(select_sampler(None), DiagonalSampler)


class TestParallelPathSampler:
    """Tests for dispatch, generations and readback."""

    def test_ensemble_shape_and_seed(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=5000, chunk_size=1024))
        handle = sampler.dispatch(engine_output, WEIGHTS, seed=17)
        ensemble = handle.result(timeout=30)
        assert isinstance(ensemble, SampleEnsemble)
        assert ensemble.data.shape == (5000, 2)
        assert len(ensemble) == 5000
        assert ensemble.seed == 17 == handle.seed
        assert ensemble.generation == handle.generation == 1

    def test_ensemble_is_read_only(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=1000))
        ensemble = sampler.dispatch(engine_output, WEIGHTS, seed=1).result(timeout=30)
        assert not ensemble.data.flags.writeable
        with pytest.raises(ValueError):
            ensemble.data[0, 0] = 0.0

    def test_stale_readback(self, context, engine_output) -> None:
        """Test that a superseded dispatch never returns its data."""
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=2000, chunk_size=500))
        first = sampler.dispatch(engine_output, WEIGHTS, seed=1)
        second = sampler.dispatch(engine_output, WEIGHTS, seed=2)
        assert first.stale
        assert not second.stale
        with pytest.raises(StaleReadback) as info:
            first.result(timeout=30)
        assert info.value.generation == 1
        assert info.value.current_generation == 2
        assert second.result(timeout=30).generation == 2

    def test_buffers_not_shared_between_dispatches(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=1000))
        a = sampler.dispatch(engine_output, WEIGHTS, seed=3).result(timeout=30)
        b = sampler.dispatch(engine_output, WEIGHTS, seed=4).result(timeout=30)
        assert not np.shares_memory(a.data, b.data)
        assert not np.array_equal(a.returns, b.returns)

    def test_deterministic_for_seed(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=3000, chunk_size=700))
        a = sampler.dispatch(engine_output, WEIGHTS, seed=99).result(timeout=30)
        b = sampler.dispatch(engine_output, WEIGHTS, seed=99).result(timeout=30)
        assert_array_equal(a.data, b.data)

    def test_chunk_size_independent(self, context, engine_output) -> None:
        small = ParallelPathSampler(context, SamplerConfig(num_particles=3000, chunk_size=128))
        large = ParallelPathSampler(context, SamplerConfig(num_particles=3000, chunk_size=3000))
        a = small.dispatch(engine_output, WEIGHTS, seed=5).result(timeout=30)
        b = large.dispatch(engine_output, WEIGHTS, seed=5).result(timeout=30)
        assert_allclose(a.data, b.data, rtol=1e-12, atol=1e-15)

    def test_configured_seed_used(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=100, seed=1234))
        assert sampler.dispatch(engine_output, WEIGHTS).seed == 1234

    def test_random_seed_is_32_bit(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=100))
        seed = sampler.dispatch(engine_output, WEIGHTS).seed
        assert 0 <= seed <= 0xFFFFFFFF

    def test_done_callback_receives_handle(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=500))
        seen = []
        called = threading.Event()

        def on_done(h) -> None:
            seen.append(h)
            called.set()

        handle = sampler.dispatch(engine_output, WEIGHTS, seed=1)
        handle.add_done_callback(on_done)
        assert called.wait(timeout=30)
        assert seen == [handle]

    def test_await_handle(self, context, engine_output) -> None:
        sampler = ParallelPathSampler(context, SamplerConfig(num_particles=2000))

        async def run() -> SampleEnsemble:
            return await sampler.dispatch(engine_output, WEIGHTS, seed=8)

        ensemble = asyncio.run(run())
        assert len(ensemble) == 2000


class TestDiagonalSampler:
    """Tests for the degraded sampler."""

    def test_runs_without_context(self, engine_output) -> None:
        sampler = DiagonalSampler(SamplerConfig(num_particles=20_000))
        ensemble = sampler.dispatch(engine_output, WEIGHTS, seed=3).result()
        assert ensemble.data.shape == (20_000, 2)
        assert not ensemble.data.flags.writeable
        assert np.all((ensemble.placements >= 0.0) & (ensemble.placements < 1.0))

    def test_diffusion_only_mean(self, engine_output) -> None:
        """Test the mean matches Σ w (μ − ½σ²) with no jumps."""
        sampler = DiagonalSampler(SamplerConfig(num_particles=100_000))
        ensemble = sampler.dispatch(engine_output, WEIGHTS, seed=3).result()
        vol = engine_output.adjusted_vol
        expected = float(WEIGHTS @ (engine_output.adjusted_drift - 0.5 * vol ** 2))
        assert ensemble.returns.mean() == pytest.approx(expected, abs=1e-3)

    def test_stale_readback(self, engine_output) -> None:
        sampler = DiagonalSampler(SamplerConfig(num_particles=100))
        first = sampler.dispatch(engine_output, WEIGHTS, seed=1)
        sampler.dispatch(engine_output, WEIGHTS, seed=1)
        with pytest.raises(StaleReadback):
            first.result()


class TestGenerationCounter:
    """Tests for GenerationCounter."""

    def test_never_moves_backwards(self) -> None:
        counter = GenerationCounter()
        counter.advance(3)
        counter.advance(2)
        assert counter.current == 3
