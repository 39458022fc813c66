"""
shocksim: Monte Carlo stress testing of portfolios under macroeconomic shocks.

Components:
- shocks: Apply a MacroShock to a Portfolio (drift, vol, correlation blend)
- covariance: Nearest-correlation projection and Cholesky factorization
- simulation: PCG32 lane streams, jump-diffusion kernel, parallel samplers
- statistics: VaR, CVaR, skewness, tail probability and scenario reports
- engine: ShockEngine tying the stages together

**Usage:**
```python
from shocksim import ShockEngine, DEFAULT_PORTFOLIO, SHOCK_PRESETS

with ShockEngine() as engine:
    result = engine.run(DEFAULT_PORTFOLIO, SHOCK_PRESETS["black_swan"])
```
"""

from shocksim.config import MAX_ASSETS, EngineConfig
from shocksim.engine import ShockEngine, compute_shock
from shocksim.errors import (
    ComputationError,
    DecompositionFailure,
    ExecutionContextUnavailable,
    InputError,
    InputValidationError,
    NumericNonConvergence,
    ShockSimError,
    StaleReadback,
)
from shocksim.models import (
    EngineOutput,
    MacroShock,
    Portfolio,
    SampleEnsemble,
    ScenarioResult,
    SimStats,
)
from shocksim.presets import DEFAULT_PORTFOLIO, SHOCK_PRESETS, adapt_shock, build_portfolio

__version__ = "0.1.0"

__all__ = [
    "MAX_ASSETS",
    "EngineConfig",
    "ShockEngine",
    "compute_shock",
    "ShockSimError",
    "InputError",
    "InputValidationError",
    "ComputationError",
    "DecompositionFailure",
    "ExecutionContextUnavailable",
    "StaleReadback",
    "NumericNonConvergence",
    "Portfolio",
    "MacroShock",
    "EngineOutput",
    "SampleEnsemble",
    "SimStats",
    "ScenarioResult",
    "DEFAULT_PORTFOLIO",
    "SHOCK_PRESETS",
    "adapt_shock",
    "build_portfolio",
]
