"""
Unit tests for the per-lane PCG32 streams.

Tests cover:
- Bit-exact agreement with a scalar PCG32 XSH-RR reference
- Determinism per (lane, seed) and independence from the lane set
- Uniforms strictly inside (0, 1)
- Box-Muller normals: mean and variance over 100,000 lanes
"""

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from shocksim.simulation.pcg import Pcg32Lanes


MASK64 = (1 << 64) - 1
MASK32 = (1 << 32) - 1


def reference_outputs(lane: int, seed: int, count: int):
    """Scalar PCG32 XSH-RR on Python ints."""
    state = lane ^ seed
    for _ in range(2):
        state = (state * 6364136223846793005 + 1442695040888963407) & MASK64
    outputs = []
    for _ in range(count):
        old = state
        state = (old * 6364136223846793005 + 1442695040888963407) & MASK64
        xorshifted = (((old >> 18) ^ old) >> 27) & MASK32
        rot = old >> 59
        outputs.append(((xorshifted >> rot) | (xorshifted << ((-rot) & 31))) & MASK32)
    return outputs


class TestPcg32Lanes:
    """Tests for Pcg32Lanes."""

    def test_matches_scalar_reference(self) -> None:
        lanes = np.array([0, 1, 2, 17, 65535, 99999], dtype=np.uint64)
        seed = 0xDEADBEEF
        rng = Pcg32Lanes(lanes, seed)
        draws = np.stack([rng.next_uint32() for _ in range(8)], axis=1)
        for row, lane in enumerate(lanes):
            assert draws[row].tolist() == reference_outputs(int(lane), seed, 8)

    def test_uniform_formula(self) -> None:
        lanes = np.arange(4, dtype=np.uint64)
        raw = Pcg32Lanes(lanes, 123).next_uint32()
        uniforms = Pcg32Lanes(lanes, 123).next_uniform()
        expected = ((raw >> 8).astype(np.float64) + 0.5) / float(1 << 24)
        assert_array_equal(uniforms, expected)

    def test_deterministic_per_lane_and_seed(self) -> None:
        a = Pcg32Lanes(np.arange(1000, dtype=np.uint64), 42)
        b = Pcg32Lanes(np.arange(1000, dtype=np.uint64), 42)
        for _ in range(5):
            assert_array_equal(a.next_uint32(), b.next_uint32())

    def test_lane_stream_independent_of_lane_set(self) -> None:
        """Test that lane 500 draws the same values alone or among others."""
        full = Pcg32Lanes(np.arange(1000, dtype=np.uint64), 9)
        single = Pcg32Lanes(np.array([500], dtype=np.uint64), 9)
        for _ in range(5):
            assert full.next_uint32()[500] == single.next_uint32()[0]

    def test_seed_changes_stream(self) -> None:
        lanes = np.arange(100, dtype=np.uint64)
        a = Pcg32Lanes(lanes, 1).next_uint32()
        b = Pcg32Lanes(lanes, 2).next_uint32()
        assert np.count_nonzero(a != b) > 90

    def test_uniforms_strictly_inside_unit_interval(self) -> None:
        rng = Pcg32Lanes(np.arange(50_000, dtype=np.uint64), 31337)
        for _ in range(4):
            u = rng.next_uniform()
            assert u.min() > 0.0
            assert u.max() < 1.0

    def test_box_muller_moments(self) -> None:
        """Test |mean| < 0.01 and |var − 1| < 0.02 over 100,000 lanes."""
        rng = Pcg32Lanes(np.arange(100_000, dtype=np.uint64), 20240601)
        z0, z1 = rng.next_normal_pair()
        for z in (z0, z1):
            assert abs(z.mean()) < 0.01
            assert abs(z.var() - 1.0) < 0.02
        assert abs(np.corrcoef(z0, z1)[0, 1]) < 0.02

    def test_next_normal_discards_pair(self) -> None:
        lanes = np.arange(10, dtype=np.uint64)
        z0, _ = Pcg32Lanes(lanes, 5).next_normal_pair()
        assert_allclose(Pcg32Lanes(lanes, 5).next_normal(), z0)

    def test_len(self) -> None:
        assert len(Pcg32Lanes(np.arange(7, dtype=np.uint64), 0)) == 7
