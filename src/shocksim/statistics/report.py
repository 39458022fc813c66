"""
Scenario reporting: severity labels, cross-scenario comparison, narrative text.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from shocksim.models import SimStats


# Upper bounds on |CVaR| (as a fraction) for each label, checked in order
SEVERITY_BANDS = (
    (0.05, "Low"),
    (0.20, "Moderate"),
    (0.50, "High"),
)


def classify_severity(cvar: float) -> str:
    """Low / Moderate / High / Extreme by the magnitude of CVaR."""
    magnitude = abs(cvar)
    for bound, label in SEVERITY_BANDS:
        if magnitude < bound:
            return label
    return "Extreme"


def format_pct(value: float) -> str:
    """Signed percentage with one decimal, e.g. +4.2% or -12.0%."""
    pct = f"{value * 100:.1f}"
    return f"+{pct}%" if value >= 0 else f"{pct}%"


@dataclass(frozen=True)
class ComparisonRow:
    """One scenario in a comparison, with worst-in-set flags."""

    name: str
    stats: SimStats
    severity: str
    worst_var: bool
    worst_cvar: bool
    worst_tail: bool


def compare_scenarios(results: Dict[str, SimStats]) -> List[ComparisonRow]:
    """
    Side-by-side comparison of several scenarios.

    Parameters
    ----------
    results : dict
        Scenario name -> SimStats, in display order.

    Returns
    -------
    list of ComparisonRow
        One row per scenario. The ``worst_*`` flags mark the lowest VaR,
        lowest CVaR and highest tail percentage across the set. Empty when
        fewer than two scenarios are given.
    """
    if len(results) < 2:
        return []

    all_stats = list(results.values())
    worst_var = min(s.var for s in all_stats)
    worst_cvar = min(s.cvar for s in all_stats)
    worst_tail = max(s.tail_pct for s in all_stats)

    return [
        ComparisonRow(
            name=name,
            stats=stats,
            severity=classify_severity(stats.cvar),
            worst_var=stats.var == worst_var,
            worst_cvar=stats.cvar == worst_cvar,
            worst_tail=stats.tail_pct == worst_tail,
        )
        for name, stats in results.items()
    ]


def narrative_summary(stats: SimStats, shock_name: str) -> str:
    """Plain-language summary of one scenario."""
    severity = classify_severity(stats.cvar)
    confidence = (1.0 - stats.quantile) * 100
    direction = "gain" if stats.mean >= 0 else "loss"
    return (
        f"{shock_name}: {severity} risk. "
        f"The average outcome is a {abs(stats.mean) * 100:.1f}% {direction}. "
        f"With {confidence:.0f}% confidence the portfolio does no worse than "
        f"{format_pct(stats.var)}; in the worst {stats.quantile * 100:.0f}% of outcomes "
        f"the average return is {format_pct(stats.cvar)}. "
        f"{stats.tail_pct:.1f}% of simulations fall below "
        f"{format_pct(stats.tail_threshold)}."
    )


def format_table(rows: Sequence[ComparisonRow]) -> str:
    """Fixed-width text table of a comparison, worst values starred."""
    header = f"{'Scenario':<16}{'Mean':>9}{'VaR':>10}{'CVaR':>10}{'Tail %':>9}  Severity"
    lines = [header, "-" * len(header)]
    for row in rows:
        s = row.stats
        var = format_pct(s.var) + ("*" if row.worst_var else " ")
        cvar = format_pct(s.cvar) + ("*" if row.worst_cvar else " ")
        tail = f"{s.tail_pct:.1f}" + ("*" if row.worst_tail else " ")
        lines.append(
            f"{row.name:<16}{format_pct(s.mean):>9}{var:>10}{cvar:>10}{tail:>9}  {row.severity}"
        )
    return "\n".join(lines)
