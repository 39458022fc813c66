"""
Unit tests for severity labels and scenario comparison.
"""

import pytest

from shocksim.models import SimStats
from shocksim.statistics.report import (
    classify_severity,
    compare_scenarios,
    format_pct,
    format_table,
    narrative_summary,
)


def _stats(var: float, cvar: float, tail: float, mean: float = 0.02) -> SimStats:
    return SimStats(
        mean=mean, std_dev=0.1, skewness=-0.2, var=var, cvar=cvar,
        min=-0.9, max=0.6, tail_pct=tail, n_samples=1000,
    )


class TestSeverity:
    """Tests for classify_severity."""

    @pytest.mark.parametrize(
        "cvar, label",
        [(-0.01, "Low"), (-0.05, "Moderate"), (-0.19, "Moderate"), (-0.2, "High"), (-0.49, "High"), (-0.5, "Extreme")],
    )
    def test_bands(self, cvar: float, label: str) -> None:
        assert classify_severity(cvar) == label

    def test_format_pct(self) -> None:
        assert format_pct(0.042) == "+4.2%"
        assert format_pct(-0.12) == "-12.0%"
        assert format_pct(0.0) == "+0.0%"


class TestCompareScenarios:
    """Tests for compare_scenarios."""

    def test_needs_two_scenarios(self) -> None:
        assert compare_scenarios({"only": _stats(-0.1, -0.15, 1.0)}) == []

    def test_worst_flags(self) -> None:
        rows = compare_scenarios({
            "Rate Hike": _stats(-0.05, -0.08, 0.0),
            "Black Swan": _stats(-0.60, -0.75, 45.0),
            "Stagflation": _stats(-0.20, -0.28, 3.0),
        })
        assert [r.name for r in rows] == ["Rate Hike", "Black Swan", "Stagflation"]
        worst = rows[1]
        assert worst.worst_var and worst.worst_cvar and worst.worst_tail
        assert worst.severity == "Extreme"
        assert not any(r.worst_var for r in (rows[0], rows[2]))

    def test_table_and_narrative(self) -> None:
        rows = compare_scenarios({"A": _stats(-0.05, -0.08, 0.0), "B": _stats(-0.6, -0.7, 40.0)})
        table = format_table(rows)
        assert "Scenario" in table
        assert "-60.0%*" in table
        text = narrative_summary(_stats(-0.05, -0.08, 0.0), "Rate Hike")
        assert text.startswith("Rate Hike: Moderate risk.")
        assert "95% confidence" in text
