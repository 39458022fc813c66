"""
Engine configuration.

Defaults live in DEFAULT_CONFIG as a nested dict. EngineConfig.from_dict
deep-merges user overrides onto those defaults, so callers only need to name
the values they change:

```python
config = EngineConfig.from_dict({"sampler": {"num_particles": 250_000}})
```
"""

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from shocksim.errors import InputValidationError


MAX_ASSETS: int = 16

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "projection": {
        "tolerance": 1e-8,
        "max_iterations": 100,
        "eigenvalue_floor": 1e-8,
    },
    "sampler": {
        "num_particles": 100_000,
        "dt": 1.0,
        "chunk_size": 16_384,
        "max_workers": None,
        "seed": None,
    },
    "summary": {
        "quantile": 0.05,
        "tail_threshold": -0.30,
    },
}


def _deep_merge(base, overrides):
    merged = deepcopy(base)
    _deep_merge_in_place(merged, overrides)
    return merged


def _deep_merge_in_place(target, overrides):
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge_in_place(target[key], value)
        else:
            target[key] = value


@dataclass(frozen=True)
class ProjectionConfig:
    """Nearest-correlation projection settings."""

    tolerance: float = 1e-8
    max_iterations: int = 100
    eigenvalue_floor: float = 1e-8

    def validate(self) -> None:
        if not self.tolerance > 0:
            raise InputValidationError(f"projection.tolerance must be > 0. Got {self.tolerance}")
        if self.max_iterations < 1:
            raise InputValidationError(
                f"projection.max_iterations must be >= 1. Got {self.max_iterations}"
            )
        if not self.eigenvalue_floor > 0:
            raise InputValidationError(
                f"projection.eigenvalue_floor must be > 0. Got {self.eigenvalue_floor}"
            )


@dataclass(frozen=True)
class SamplerConfig:
    """
    Monte Carlo sampler settings.

    Attributes
    ----------
    num_particles : int
        Lanes per dispatch (one portfolio-return sample per lane).
    dt : float
        Horizon in years. The original engine simulates one year.
    chunk_size : int
        Lanes evaluated per vectorized work item on the pool.
    max_workers : int, optional
        Pool size. None means os.cpu_count().
    seed : int, optional
        Fixed 32-bit session seed. None draws a fresh seed per dispatch.
    """

    num_particles: int = 100_000
    dt: float = 1.0
    chunk_size: int = 16_384
    max_workers: Optional[int] = None
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.num_particles < 1:
            raise InputValidationError(
                f"sampler.num_particles must be >= 1. Got {self.num_particles}"
            )
        if not self.dt > 0:
            raise InputValidationError(f"sampler.dt must be > 0. Got {self.dt}")
        if self.chunk_size < 1:
            raise InputValidationError(f"sampler.chunk_size must be >= 1. Got {self.chunk_size}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InputValidationError(
                f"sampler.max_workers must be >= 1. Got {self.max_workers}"
            )
        if self.seed is not None and not (0 <= self.seed <= 0xFFFFFFFF):
            raise InputValidationError(f"sampler.seed must be a 32-bit unsigned int. Got {self.seed}")


@dataclass(frozen=True)
class SummaryConfig:
    """Risk statistic settings."""

    quantile: float = 0.05
    tail_threshold: float = -0.30

    def validate(self) -> None:
        if not (0.0 < self.quantile < 1.0):
            raise InputValidationError(f"summary.quantile must be in (0, 1). Got {self.quantile}")


@dataclass(frozen=True)
class EngineConfig:
    """Full engine configuration."""

    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)

    @classmethod
    def from_dict(cls, overrides: Optional[Mapping[str, Any]] = None) -> "EngineConfig":
        merged = _deep_merge(DEFAULT_CONFIG, dict(overrides or {}))
        unknown = set(merged) - set(DEFAULT_CONFIG)
        if unknown:
            raise InputValidationError(f"Unknown config sections: {sorted(unknown)}")

        try:
            config = cls(
                projection=ProjectionConfig(**merged["projection"]),
                sampler=SamplerConfig(**merged["sampler"]),
                summary=SummaryConfig(**merged["summary"]),
            )
        except TypeError as exc:
            raise InputValidationError(f"Invalid config key: {exc}") from exc

        config.validate()
        return config

    def validate(self) -> None:
        self.projection.validate()
        self.sampler.validate()
        self.summary.validate()
