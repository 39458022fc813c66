"""
Command-line entry point.

    python -m shocksim --shock black_swan --portfolio aggressive --seed 42
    python -m shocksim --compare --json
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from shocksim.config import EngineConfig
from shocksim.engine import ShockEngine
from shocksim.errors import InputError, ShockSimError
from shocksim.logging_config import configure_logging
from shocksim.models import MacroShock, Portfolio
from shocksim.presets import (
    DEFAULT_PORTFOLIO,
    PORTFOLIO_PRESETS,
    SHOCK_PRESETS,
    adapt_shock,
    preset_portfolio,
)
from shocksim.statistics.report import (
    classify_severity,
    compare_scenarios,
    format_pct,
    format_table,
    narrative_summary,
)


logger = logging.getLogger("shocksim.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shocksim",
        description="Monte Carlo stress test of a portfolio under a macroeconomic shock",
    )
    parser.add_argument("--shock", default="stagflation", choices=sorted(SHOCK_PRESETS))
    parser.add_argument(
        "--portfolio",
        default="default",
        choices=["default"] + sorted(PORTFOLIO_PRESETS),
        help="Portfolio preset ('default' is equities/bonds/commodities 60/30/10)",
    )
    parser.add_argument("--particles", type=int, default=None, help="Monte Carlo lanes per run")
    parser.add_argument("--seed", type=int, default=None, help="32-bit session seed")
    parser.add_argument("--quantile", type=float, default=None, help="VaR/CVaR quantile, e.g. 0.05")
    parser.add_argument("--tail-threshold", type=float, default=None, help="Tail loss threshold, e.g. -0.30")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads for lane chunks")
    parser.add_argument(
        "--fallback",
        action="store_true",
        help="Force the degraded diagonal sampler (no correlation, no jumps)",
    )
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--compare", action="store_true", help="Run every shock preset and compare")
    return parser


def _config_from_args(args: argparse.Namespace) -> EngineConfig:
    overrides: Dict[str, Dict[str, object]] = {"sampler": {}, "summary": {}}
    if args.particles is not None:
        overrides["sampler"]["num_particles"] = args.particles
    if args.workers is not None:
        overrides["sampler"]["max_workers"] = args.workers
    if args.quantile is not None:
        overrides["summary"]["quantile"] = args.quantile
    if args.tail_threshold is not None:
        overrides["summary"]["tail_threshold"] = args.tail_threshold
    return EngineConfig.from_dict(overrides)


def _portfolio_and_shocks(name: str, shock_ids: List[str]):
    if name == "default":
        return DEFAULT_PORTFOLIO, {sid: SHOCK_PRESETS[sid] for sid in shock_ids}
    allocations = PORTFOLIO_PRESETS[name]
    portfolio: Portfolio = preset_portfolio(name)
    shocks: Dict[str, MacroShock] = {sid: adapt_shock(sid, allocations) for sid in shock_ids}
    return portfolio, shocks


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        print(f"shocksim: {exc}", file=sys.stderr)
        return 2

    shock_ids = sorted(SHOCK_PRESETS) if args.compare else [args.shock]

    try:
        config = _config_from_args(args)
        portfolio, shocks = _portfolio_and_shocks(args.portfolio, shock_ids)
        with ShockEngine(config, use_parallel=not args.fallback) as engine:
            results = engine.run_many(portfolio, shocks, seed=args.seed)
    except InputError as exc:
        print(f"shocksim: invalid input: {exc}", file=sys.stderr)
        return 2
    except ShockSimError as exc:
        logger.error("Simulation failed: %s", exc)
        print(f"shocksim: simulation failed: {exc}", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            key: {
                "shock": result.shock_name,
                "severity": classify_severity(result.stats.cvar),
                "degraded": result.degraded,
                "elapsed_ms": result.elapsed_ms,
                "seed": result.ensemble.seed,
                "stats": result.stats.to_dict(),
            }
            for key, result in results.items()
        }
        print(json.dumps(payload, indent=2))
        return 0

    if len(results) > 1:
        rows = compare_scenarios({r.shock_name: r.stats for r in results.values()})
        print(format_table(rows))
        return 0

    result = next(iter(results.values()))
    s = result.stats
    print(f"Shock:      {result.shock_name}{' (degraded sampler)' if result.degraded else ''}")
    print(f"Portfolio:  {', '.join(portfolio.assets)}")
    print(f"Samples:    {s.n_samples} (seed {result.ensemble.seed})")
    print(f"Mean:       {format_pct(s.mean)}")
    print(f"Std dev:    {s.std_dev * 100:.1f}%")
    print(f"Skewness:   {s.skewness:.3f}")
    print(f"VaR:        {format_pct(s.var)}")
    print(f"CVaR:       {format_pct(s.cvar)}")
    print(f"Min / Max:  {format_pct(s.min)} / {format_pct(s.max)}")
    print(f"Tail:       {s.tail_pct:.2f}% below {format_pct(s.tail_threshold)}")
    print()
    print(narrative_summary(s, result.shock_name))
    return 0


if __name__ == "__main__":
    sys.exit(main())
