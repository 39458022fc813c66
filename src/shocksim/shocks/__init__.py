"""
Shock composition.

- compose_shock: shifted drift, scaled vol, correlation blended toward 1
- validate_request: portfolio/shock consistency checks
"""

from shocksim.shocks.compositor import (
    adjust_drift,
    adjust_vol,
    blend_correlation,
    compose_shock,
    validate_request,
)

__all__ = [
    "compose_shock",
    "validate_request",
    "adjust_drift",
    "adjust_vol",
    "blend_correlation",
]
