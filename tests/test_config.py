"""
Unit tests for engine configuration.
"""

import pytest

from shocksim.config import DEFAULT_CONFIG, EngineConfig, SamplerConfig
from shocksim.errors import InputValidationError


class TestEngineConfig:
    """Tests for EngineConfig.from_dict and validation."""

    def test_defaults(self) -> None:
        config = EngineConfig.from_dict()
        assert config == EngineConfig()
        assert config.projection.tolerance == 1e-8
        assert config.projection.max_iterations == 100
        assert config.sampler.num_particles == 100_000
        assert config.sampler.dt == 1.0
        assert config.summary.quantile == 0.05
        assert config.summary.tail_threshold == -0.30

    def test_partial_override(self) -> None:
        config = EngineConfig.from_dict({"sampler": {"num_particles": 5000}})
        assert config.sampler.num_particles == 5000
        assert config.sampler.chunk_size == DEFAULT_CONFIG["sampler"]["chunk_size"]
        assert DEFAULT_CONFIG["sampler"]["num_particles"] == 100_000

    def test_unknown_section(self) -> None:
        with pytest.raises(InputValidationError, match="Unknown config sections"):
            EngineConfig.from_dict({"gpu": {}})

    def test_unknown_key(self) -> None:
        with pytest.raises(InputValidationError, match="Invalid config key"):
            EngineConfig.from_dict({"sampler": {"particles": 10}})

    @pytest.mark.parametrize(
        "overrides, match",
        [
            ({"sampler": {"num_particles": 0}}, "num_particles"),
            ({"sampler": {"seed": 1 << 32}}, "seed"),
            ({"sampler": {"dt": 0.0}}, "dt"),
            ({"summary": {"quantile": 1.0}}, "quantile"),
            ({"projection": {"eigenvalue_floor": 0.0}}, "eigenvalue_floor"),
            ({"projection": {"max_iterations": 0}}, "max_iterations"),
        ],
    )
    def test_invalid_values(self, overrides, match) -> None:
        with pytest.raises(InputValidationError, match=match):
            EngineConfig.from_dict(overrides)

    def test_sampler_config_validate(self) -> None:
        with pytest.raises(InputValidationError, match="max_workers"):
            SamplerConfig(max_workers=0).validate()
