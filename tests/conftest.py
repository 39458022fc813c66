"""Shared fixtures: the three-asset reference portfolio and its two shocks."""

import numpy as np
import pytest

from shocksim.models import MacroShock, Portfolio


@pytest.fixture
def three_asset_portfolio() -> Portfolio:
    return Portfolio(
        assets=["Equities", "Bonds", "Commodities"],
        weights=[0.6, 0.3, 0.1],
        base_drift=[0.08, 0.03, 0.05],
        base_vol=[0.18, 0.06, 0.22],
        base_correlation=np.array([
            [1.0, 0.2, 0.3],
            [0.2, 1.0, -0.1],
            [0.3, -0.1, 1.0],
        ]),
    )


@pytest.fixture
def mild_shock() -> MacroShock:
    return MacroShock(
        delta_drift=[-0.02, 0.01, -0.01],
        vol_multiplier=[1.3, 1.1, 1.2],
        correlation_skew=0.3,
        jump_lambda=0.5,
        jump_mean=-0.02,
        jump_vol=0.03,
        name="Mild",
    )


@pytest.fixture
def severe_shock() -> MacroShock:
    return MacroShock(
        delta_drift=[-0.15, 0.05, -0.08],
        vol_multiplier=[3.0, 1.8, 2.5],
        correlation_skew=0.85,
        jump_lambda=4.0,
        jump_mean=-0.12,
        jump_vol=0.08,
        name="Severe",
    )

