"""
Built-in asset classes, portfolio presets and shock presets.

Portfolios are assembled from allocations over the asset-class catalogue;
shocks are resized to the selected classes with per-class drift/vol
adjustments.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping

import numpy as np

from shocksim.errors import InputValidationError
from shocksim.models import MacroShock, Portfolio


@dataclass(frozen=True)
class AssetClass:
    id: str
    name: str
    base_drift: float
    base_vol: float
    description: str = ""


ASSET_CLASSES: List[AssetClass] = [
    AssetClass("equities", "Equities", 0.08, 0.18, "Stocks & equity funds"),
    AssetClass("bonds", "Bonds", 0.03, 0.06, "Government & corporate bonds"),
    AssetClass("commodities", "Commodities", 0.05, 0.22, "Gold, oil, raw materials"),
    AssetClass("real_estate", "Real Estate", 0.06, 0.14, "REITs & property funds"),
    AssetClass("cash", "Cash", 0.02, 0.01, "Money market & savings"),
]

BASE_CORRELATIONS: Dict[str, Dict[str, float]] = {
    "equities": {"equities": 1.0, "bonds": 0.2, "commodities": 0.3, "real_estate": 0.6, "cash": 0.0},
    "bonds": {"equities": 0.2, "bonds": 1.0, "commodities": -0.1, "real_estate": 0.15, "cash": 0.3},
    "commodities": {"equities": 0.3, "bonds": -0.1, "commodities": 1.0, "real_estate": 0.2, "cash": 0.0},
    "real_estate": {"equities": 0.6, "bonds": 0.15, "commodities": 0.2, "real_estate": 1.0, "cash": 0.05},
    "cash": {"equities": 0.0, "bonds": 0.3, "commodities": 0.0, "real_estate": 0.05, "cash": 1.0},
}

PORTFOLIO_PRESETS: Dict[str, Dict[str, float]] = {
    "conservative": {"equities": 0.20, "bonds": 0.55, "commodities": 0.05, "real_estate": 0.10, "cash": 0.10},
    "balanced": {"equities": 0.60, "bonds": 0.30, "commodities": 0.10, "real_estate": 0.00, "cash": 0.00},
    "aggressive": {"equities": 0.80, "bonds": 0.05, "commodities": 0.10, "real_estate": 0.05, "cash": 0.00},
}

SHOCK_PRESETS: Dict[str, MacroShock] = {
    "rate_hike": MacroShock(
        id="rate_hike",
        name="Rate Hike",
        delta_drift=[-0.02, 0.01, -0.01],
        vol_multiplier=[1.3, 1.1, 1.2],
        correlation_skew=0.3,
        jump_lambda=0.5,
        jump_mean=-0.02,
        jump_vol=0.03,
    ),
    "black_swan": MacroShock(
        id="black_swan",
        name="Black Swan",
        delta_drift=[-0.15, 0.05, -0.08],
        vol_multiplier=[3.0, 1.8, 2.5],
        correlation_skew=0.85,
        jump_lambda=4.0,
        jump_mean=-0.12,
        jump_vol=0.08,
    ),
    "stagflation": MacroShock(
        id="stagflation",
        name="Stagflation",
        delta_drift=[-0.06, -0.02, 0.04],
        vol_multiplier=[1.8, 1.4, 2.0],
        correlation_skew=0.55,
        jump_lambda=1.5,
        jump_mean=-0.05,
        jump_vol=0.06,
    ),
}

# Per-class (delta_drift, vol_multiplier) for each shock preset
SHOCK_DEFAULTS_BY_CLASS: Dict[str, Dict[str, tuple]] = {
    "rate_hike": {
        "equities": (-0.02, 1.3),
        "bonds": (0.01, 1.1),
        "commodities": (-0.01, 1.2),
        "real_estate": (-0.03, 1.4),
        "cash": (0.005, 1.0),
    },
    "black_swan": {
        "equities": (-0.15, 3.0),
        "bonds": (0.05, 1.8),
        "commodities": (-0.08, 2.5),
        "real_estate": (-0.12, 2.8),
        "cash": (0.01, 1.0),
    },
    "stagflation": {
        "equities": (-0.06, 1.8),
        "bonds": (-0.02, 1.4),
        "commodities": (0.04, 2.0),
        "real_estate": (-0.04, 1.6),
        "cash": (0.005, 1.0),
    },
}

DEFAULT_DELTA_DRIFT = -0.02
DEFAULT_VOL_MULTIPLIER = 1.2


def _selected_classes(allocations: Mapping[str, float]) -> List[AssetClass]:
    unknown = set(allocations) - {ac.id for ac in ASSET_CLASSES}
    if unknown:
        raise InputValidationError(f"Unknown asset classes: {sorted(unknown)}")
    return [ac for ac in ASSET_CLASSES if allocations.get(ac.id, 0.0) > 0]


def build_portfolio(allocations: Mapping[str, float]) -> Portfolio:
    """
    Portfolio over the asset classes with a positive allocation.

    Classes with zero weight are dropped. An allocation with no positive
    weight falls back to the balanced preset. Weights are used as given.
    """
    selected = _selected_classes(allocations)
    if not selected:
        return build_portfolio(PORTFOLIO_PRESETS["balanced"])

    correlation = np.array(
        [[BASE_CORRELATIONS[a.id][b.id] for b in selected] for a in selected],
        dtype=np.float64,
    )
    return Portfolio(
        assets=[ac.name for ac in selected],
        weights=[allocations[ac.id] for ac in selected],
        base_drift=[ac.base_drift for ac in selected],
        base_vol=[ac.base_vol for ac in selected],
        base_correlation=correlation,
    )


def preset_portfolio(name: str) -> Portfolio:
    """Portfolio for one of PORTFOLIO_PRESETS."""
    try:
        allocations = PORTFOLIO_PRESETS[name]
    except KeyError:
        raise InputValidationError(
            f"Unknown portfolio preset {name!r}. Choose from {sorted(PORTFOLIO_PRESETS)}"
        ) from None
    return build_portfolio(allocations)


def adapt_shock(shock_id: str, allocations: Mapping[str, float]) -> MacroShock:
    """
    Resize a shock preset to the asset classes selected by ``allocations``.

    Jump and correlation parameters are kept; drift deltas and vol
    multipliers come from the per-class table (−0.02 / 1.2 when a class has
    no entry).
    """
    try:
        base = SHOCK_PRESETS[shock_id]
    except KeyError:
        raise InputValidationError(
            f"Unknown shock {shock_id!r}. Choose from {sorted(SHOCK_PRESETS)}"
        ) from None

    selected = _selected_classes(allocations)
    if not selected:
        selected = _selected_classes(PORTFOLIO_PRESETS["balanced"])
    defaults = SHOCK_DEFAULTS_BY_CLASS.get(shock_id, {})
    per_class = [defaults.get(ac.id, (DEFAULT_DELTA_DRIFT, DEFAULT_VOL_MULTIPLIER)) for ac in selected]

    return MacroShock(
        id=base.id,
        name=base.name,
        delta_drift=[d for d, _ in per_class],
        vol_multiplier=[m for _, m in per_class],
        correlation_skew=base.correlation_skew,
        jump_lambda=base.jump_lambda,
        jump_mean=base.jump_mean,
        jump_vol=base.jump_vol,
    )


# Three-asset default: equities / bonds / commodities at 60/30/10
DEFAULT_PORTFOLIO: Portfolio = Portfolio(
    assets=["Equities", "Bonds", "Commodities"],
    weights=[0.6, 0.3, 0.1],
    base_drift=[0.08, 0.03, 0.05],
    base_vol=[0.18, 0.06, 0.22],
    base_correlation=[
        1.0, 0.2, 0.3,
        0.2, 1.0, -0.1,
        0.3, -0.1, 1.0,
    ],
)
