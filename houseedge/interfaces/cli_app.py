"""
HOUSEEDGE Command Line Interface
================================

Usage:
    houseedge demo --seed 42
    houseedge status
    houseedge performance
    houseedge variance
    houseedge compare
    houseedge history --market match_result --days 7
    houseedge settle <bet_id> won
"""

import click
import dataclasses
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional
import json

import numpy as np

from houseedge.config import get_config, setup_logging
from houseedge.data.feed import MockFeed
from houseedge.data.schemas import BetResult
from houseedge.exceptions import HouseEdgeError
from houseedge.slips import format_slip_for_display
from houseedge.utils.identifiers import utc_now
from houseedge.utils.stats import format_currency, format_ev, format_roi, percentage

logger = logging.getLogger(__name__)

RULE = "=" * 50


def _header(title: str) -> None:
    click.echo(f"\n{RULE}")
    click.echo(title)
    click.echo(f"{RULE}\n")


def _house(ctx):
    """Build the HouseEdge instance once per invocation."""
    if "house" not in ctx.obj:
        from houseedge.pipelines import HouseEdge

        config = get_config()
        if ctx.obj.get("ledger"):
            config = dataclasses.replace(config, ledger_path=Path(ctx.obj["ledger"]))
        try:
            ctx.obj["house"] = HouseEdge.from_config(config, persist=not ctx.obj.get("memory"))
        except HouseEdgeError as e:
            click.echo(f"❌ Error: {e}", err=True)
            ctx.exit(1)
    return ctx.obj["house"]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--ledger", "-l", type=click.Path(dir_okay=False), help="Ledger file path")
@click.option("--memory", is_flag=True, help="Keep the ledger in memory only")
@click.pass_context
def cli(ctx, verbose: bool, ledger: Optional[str], memory: bool):
    """HOUSEEDGE - Sports Betting Analytics Engine"""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["ledger"] = ledger
    ctx.obj["memory"] = memory

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.option("--seed", "-s", type=int, default=42, help="Mock feed seed")
@click.option("--matches", "-m", type=int, default=2, help="Fixtures per league")
@click.option("--place/--no-place", default=True, help="Record recommended slips as bets")
@click.option("--settle/--no-settle", default=True, help="Simulate results for placed bets")
@click.pass_context
def demo(ctx, seed: int, matches: int, place: bool, settle: bool):
    """Run the full pipeline on a mock slate."""
    _header("🎯 HOUSEEDGE Demo Slate")

    try:
        house = _house(ctx)
        feed = MockFeed(house.config, seed=seed)
        slate = feed.generate_slate(matches_per_league=matches)

        click.echo(f"📊 Analysing {len(slate)} fixtures (seed {seed})...\n")
        result = house.run_slate(slate, place_bets=place)

        if not result.slips:
            click.echo("❌ No slips met the criteria")
        else:
            click.echo(f"✅ {result.recommended_slips} of {result.total_slips} slips recommended:\n")
            for i, slip in enumerate(result.slips, 1):
                view = format_slip_for_display(slip)
                click.echo(f"{i}. {view['match']} ({view['league']})")
                click.echo(f"   {view['selection']} @ {view['odds']} [{view['bookmaker']}]")
                click.echo(f"   Stake: {view['stake']}  EV: {view['ev']}  Confidence: {view['confidence']}")
                click.echo(f"   {view['rationale']}")
                if view["sharp_signals"]:
                    click.echo(f"   Sharp signals: {view['sharp_signals']}")
                click.echo()

        if place and settle and result.slips:
            settled = house.settle_from_simulation(slate, np.random.default_rng(seed))
            won = sum(1 for b in settled if b.result == BetResult.WON)
            click.echo(f"🏁 Settled {len(settled)} bets: {won} won, {len(settled) - won} lost")
            click.echo(f"   Bankroll: {format_currency(house.ledger.current_bankroll())}")

    except HouseEdgeError as e:
        click.echo(f"❌ Error: {e}", err=True)
        ctx.exit(1)


@cli.command()
@click.pass_context
def status(ctx):
    """Show bankroll and risk status."""
    _header("📋 HOUSEEDGE Status")

    house = _house(ctx)

    snap = house.ledger.snapshot()
    risk = house.staking.check_loss_limits()
    dd = house.staking.current_drawdown()

    click.echo(f"Balance:       {format_currency(snap.balance)}")
    click.echo(f"Peak:          {format_currency(snap.peak_balance)}")
    click.echo(f"Drawdown:      {format_currency(dd.drawdown)} ({percentage(dd.drawdown_percentage)})")
    click.echo(f"Settled bets:  {snap.bet_count}")
    click.echo(f"Pending bets:  {len(house.ledger.pending_bets())}")
    click.echo(f"ROI:           {format_roi(snap.roi)}")
    click.echo(f"Risk:          {risk.alert.value.upper()} - {risk.message}")
    click.echo(f"Strategy:      {house.config.bankroll.default_strategy}")


@cli.command()
@click.option("--by", type=click.Choice(["market", "strategy", "selection"]), default="market")
@click.option("--output", "-o", type=click.Path(), help="Write metrics JSON here")
@click.pass_context
def performance(ctx, by: str, output: Optional[str]):
    """Show performance metrics for the whole ledger."""
    _header("📈 HOUSEEDGE Performance")

    house = _house(ctx)
    bets = house.ledger.bets
    metrics = house.analyzer.performance_metrics(bets)

    click.echo(f"Total Bets:    {metrics.total_bets} ({metrics.won}W / {metrics.lost}L / {metrics.void}V)")
    click.echo(f"Win Rate:      {metrics.win_rate:.1%}")
    click.echo(f"Total Staked:  {format_currency(metrics.total_staked)}")
    click.echo(f"Total Profit:  {format_currency(metrics.total_profit)}")
    click.echo(f"ROI:           {format_roi(metrics.roi)}")
    click.echo(f"Yield:         {format_currency(metrics.yield_per_bet)} per bet")
    click.echo(f"Avg Odds:      {metrics.avg_odds:.2f}")
    click.echo(f"Sharpe Ratio:  {metrics.sharpe_ratio:.2f}")
    click.echo(f"Max Drawdown:  {format_currency(metrics.max_drawdown)}")

    if metrics.sample_warning:
        click.echo(f"\n⚠️  {metrics.sample_warning}")

    breakdown = house.analyzer.breakdown(bets, by=by)
    if breakdown:
        click.echo(f"\nBy {by}:")
        for key, row in breakdown.items():
            click.echo(f"  {key:<20} {row['bets']:>4} bets  {format_currency(row['profit']):>12}  {format_roi(row['roi'])}")

    if output:
        Path(output).write_text(json.dumps(metrics.to_dict(), indent=2))
        click.echo(f"\n💾 Saved to {output}")


@cli.command()
@click.pass_context
def variance(ctx):
    """Compare realized profit with EV expectations."""
    _header("🎲 HOUSEEDGE Variance Analysis")

    house = _house(ctx)
    report = house.analyzer.variance_analysis(house.ledger.bets)

    click.echo(f"Expected Profit: {format_currency(report.expected_profit)}")
    click.echo(f"Actual Profit:   {format_currency(report.actual_profit)}")
    click.echo(f"Delta:           {format_currency(report.variance_delta)}")
    click.echo(f"Std Dev:         {format_currency(report.standard_deviation)}")
    click.echo(f"Std Devs Away:   {report.std_devs_away:+.2f}")
    click.echo(f"\n{'✅' if report.within_expectations else '⚠️ '} {report.analysis}")


@cli.command()
@click.pass_context
def compare(ctx):
    """Replay the ledger under every staking policy."""
    _header("🔀 HOUSEEDGE Strategy Comparison")

    house = _house(ctx)
    results = house.staking.compare_strategies()

    click.echo(f"{'Strategy':<12} {'Final':>12} {'ROI':>10} {'Max DD':>12}")
    for r in results:
        marker = " *" if r.is_current else ""
        click.echo(
            f"{r.strategy.value:<12} {format_currency(r.final_bankroll):>12} "
            f"{format_roi(r.roi):>10} {format_currency(r.max_drawdown):>12}{marker}"
        )
    click.echo("\n* current strategy")


@cli.command()
@click.option("--market", help="Filter by market")
@click.option("--strategy", help="Filter by staking strategy")
@click.option("--days", type=int, help="Only bets from the last N days")
@click.option("--limit", type=int, default=20, help="Max rows to show")
@click.pass_context
def history(ctx, market: Optional[str], strategy: Optional[str], days: Optional[int], limit: int):
    """Query the bet history."""
    _header("📜 HOUSEEDGE Bet History")

    house = _house(ctx)
    end = utc_now()
    start = end - timedelta(days=days) if days else None

    bets = house.analyzer.query_history(
        house.ledger.bets,
        market=market,
        strategy=strategy,
        start=start,
        end=end if start else None,
    )

    if not bets:
        click.echo("No bets found")
        return

    click.echo(f"{len(bets)} bets (showing {min(limit, len(bets))}):\n")
    for bet in bets[-limit:]:
        profit = format_currency(bet.profit) if bet.profit is not None else "-"
        click.echo(
            f"{bet.timestamp:%Y-%m-%d %H:%M}  {bet.id[:8]}  {bet.match_id:<40} "
            f"{bet.selection:<6} @ {bet.odds:.2f}  {format_currency(bet.stake):>10}  "
            f"{bet.result.value:<7} {profit:>10}  EV {format_ev(bet.ev)}"
        )


@cli.command()
@click.argument("bet_id")
@click.argument("result", type=click.Choice([r.value for r in BetResult if r.is_settled]))
@click.option("--profit", type=float, help="Override realized profit")
@click.pass_context
def settle(ctx, bet_id: str, result: str, profit: Optional[float]):
    """Settle a pending bet."""
    try:
        house = _house(ctx)
        bet = house.ledger.settle(bet_id, BetResult(result), profit=profit)
    except HouseEdgeError as e:
        click.echo(f"❌ Error: {e}", err=True)
        ctx.exit(1)

    if bet is None:
        click.echo(f"❌ Bet not found: {bet_id}", err=True)
        ctx.exit(1)

    click.echo(f"✅ Settled {bet.id}: {bet.result.value}, profit {format_currency(bet.profit)}")
    click.echo(f"   Bankroll: {format_currency(house.ledger.current_bankroll())}")


def main():
    """Entry point for CLI."""
    config = get_config()
    setup_logging(config.log_level)
    cli()


if __name__ == "__main__":
    main()
