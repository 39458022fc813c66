"""
Vectorized PCG32 (XSH-RR) streams, one independent stream per lane.

Each lane owns a 64-bit LCG state; the 32-bit output is a xorshift-high
followed by a random rotation of the pre-advance state (O'Neill, 2014):

    old    = state
    state  = old * 6364136223846793005 + 1442695040888963407   (mod 2^64)
    xs     = ((old >> 18) ^ old) >> 27                          (low 32 bits)
    rot    = old >> 59
    output = rotr32(xs, rot)

Lane i starts from ``i XOR seed`` and is advanced twice before its first
output so that low-entropy initial states (small lane indices) are mixed.
The state of a lane depends only on (lane index, seed), never on which other
lanes share the array, so results are identical for any chunking.

All arithmetic is done on numpy uint64/uint32 arrays, which wrap modulo 2^64
and 2^32 without warnings.
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray


PCG_MULTIPLIER = np.uint64(6364136223846793005)
PCG_INCREMENT = np.uint64(1442695040888963407)

_U18 = np.uint64(18)
_U27 = np.uint64(27)
_U59 = np.uint64(59)
_MASK32 = np.uint64(0xFFFFFFFF)
_U8 = np.uint32(8)
_U31 = np.uint32(31)
_U32 = np.uint32(32)

# Upper 24 bits of each output, centred in its bucket: (k + 0.5) / 2^24
UNIFORM_SCALE = 1.0 / float(1 << 24)
UNIFORM_OFFSET = 0.5

TWO_PI = 2.0 * np.pi


class Pcg32Lanes:
    """
    A bank of PCG32 generators, one per lane.

    Parameters
    ----------
    lanes : array of int
        Lane indices (global, not chunk-relative).
    seed : int
        32-bit session seed shared by all lanes of a dispatch.
    """

    def __init__(self, lanes: NDArray[np.uint64], seed: int) -> None:
        lanes = np.asarray(lanes, dtype=np.uint64)
        self.state: NDArray[np.uint64] = lanes ^ np.uint64(int(seed) & 0xFFFFFFFF)
        self.step()
        self.step()

    def __len__(self) -> int:
        return int(self.state.shape[0])

    def step(self) -> None:
        """Advance every lane's LCG state by one."""
        self.state = self.state * PCG_MULTIPLIER + PCG_INCREMENT

    def next_uint32(self) -> NDArray[np.uint32]:
        """Next 32-bit output of every lane."""
        old = self.state
        self.step()
        xorshifted = ((((old >> _U18) ^ old) >> _U27) & _MASK32).astype(np.uint32)
        rot = (old >> _U59).astype(np.uint32)
        return (xorshifted >> rot) | (xorshifted << ((_U32 - rot) & _U31))

    def next_uniform(self) -> NDArray[np.float64]:
        """Next uniform of every lane, strictly inside (0, 1)."""
        bits = (self.next_uint32() >> _U8).astype(np.float64)
        return (bits + UNIFORM_OFFSET) * UNIFORM_SCALE

    def next_normal_pair(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Two independent standard normals per lane (Box-Muller).

        Consumes two uniforms per lane:
            r  = sqrt(−2 ln U1)
            Z0 = r cos(2π U2),  Z1 = r sin(2π U2)
        """
        u1 = self.next_uniform()
        u2 = self.next_uniform()
        r = np.sqrt(-2.0 * np.log(u1))
        theta = TWO_PI * u2
        return r * np.cos(theta), r * np.sin(theta)

    def next_normal(self) -> NDArray[np.float64]:
        """One standard normal per lane; the paired sine value is discarded."""
        z0, _ = self.next_normal_pair()
        return z0
