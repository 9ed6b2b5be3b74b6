#!/usr/bin/env python3
"""
Casino Game Engine — Developer CLI

Usage:
    python -m tools.casino_cli config
    python -m tools.casino_cli rtp
    python -m tools.casino_cli simulate plinko --risk high --rounds 200000
    python -m tools.casino_cli play roulette --bet-type number --bet-value 17 --amount 100
    python -m tools.casino_cli play blackjack --client-seed my-seed --reveal
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import BetLimits, configure_logging
from game_engine import GAME_TYPES, GameEngine, InvalidBet, ProvablyFairSource, get_game_engine
from game_engine.models import Phase
from game_engine.validators import require_valid_bet
from tools.rtp_validator import RtpValidator

console = Console()


def _sample_bet(args):
    engine = get_game_engine(args.game_type)
    kw = {"user_id": "cli"}
    if args.game_type == "roulette":
        kw["bet_type"] = args.bet_type
        if args.bet_value is not None:
            value = args.bet_value
            kw["bet_value"] = int(value) if value.isascii() and value.isdecimal() else value
    elif args.game_type == "plinko":
        kw["risk_level"] = args.risk
    elif args.game_type == "case_opening":
        kw["case_id"] = args.case
    if args.game_type != "case_opening" and getattr(args, "amount", None) is not None:
        kw["amount"] = args.amount
    try:
        bet = engine.sample_bet(**kw)
    except (KeyError, ValidationError) as e:
        raise InvalidBet(str(e)) from e
    return require_valid_bet(bet, args.game_type)


def cmd_config(args):
    engine = GameEngine()

    board = engine.get_board_config()
    table = Table(title=f"Plinko ({board['rows']} rows, {board['slots']} slots)")
    table.add_column("Risk")
    for slot in range(board["slots"]):
        table.add_column(str(slot), justify="right")
    for risk, mults in engine.get_multiplier_table().items():
        table.add_row(risk, *[f"{m:g}" for m in mults])
    console.print(table)

    table = Table(title="Roulette bet types")
    for col in ("Type", "Payout", "Description"):
        table.add_column(col)
    for name, info in engine.get_bet_types().items():
        table.add_row(name, info["payout"], info["description"])
    console.print(table)

    table = Table(title="Cases")
    for col in ("Id", "Name", "Price", "Legendary %"):
        table.add_column(col)
    for case in engine.get_case_types():
        table.add_row(case["id"], case["name"], f"{case['price']:,.0f}",
                      f"{case['rarity_distribution']['legendary']:g}")
    console.print(table)

    rules = engine.get_game_info("blackjack")["rules"]
    console.print(Panel(
        "\n".join(f"{k}: {v}" for k, v in rules.items())
        + f"\n\nBet limits: {BetLimits.MIN_BET_AMOUNT:g} - {BetLimits.MAX_BET_AMOUNT:g}",
        title="Blackjack rules", border_style="cyan",
    ))


def cmd_rtp(args):
    table = Table(title="Return to player")
    for col in ("Game", "Bet", "RTP", "House edge"):
        table.add_column(col)

    roulette = get_game_engine("roulette")
    for bet_type, rtp in roulette.rtp_table().items():
        table.add_row("roulette", bet_type, f"{rtp:.4%}", f"{1 - rtp:.4%}")
    plinko = get_game_engine("plinko")
    for risk, info in plinko.get_risk_level_info().items():
        rtp = info["expected_return"]
        table.add_row("plinko", risk, f"{rtp:.4%}", f"{1 - rtp:.4%}")
    cases = get_game_engine("case_opening")
    for case_id in ("scav", "pmc", "labs"):
        rtp = cases.compute_rtp(cases.sample_bet(case_id=case_id))
        table.add_row("case_opening", case_id, f"{rtp:.4%}", f"{1 - rtp:.4%}")
    rtp = get_game_engine("blackjack").compute_rtp()
    table.add_row("blackjack", "hit below 17 (estimate)", f"{rtp:.4%}", f"{1 - rtp:.4%}")
    console.print(table)


def cmd_simulate(args):
    report = RtpValidator().validate(args.game_type, bet=_sample_bet(args),
                                     rounds=args.rounds, seed=args.seed,
                                     tolerance=args.tolerance)
    if args.json:
        print(report.to_json())
        return
    color = "green" if report.within_tolerance else "red"
    console.print(Panel(
        f"Rounds: {report.rounds:,}\n"
        f"Theoretical RTP: {report.theoretical_rtp:.4%}\n"
        f"Measured RTP: {report.measured_rtp:.4%} "
        f"(95% CI {report.ci_lower:.4%} - {report.ci_upper:.4%})\n"
        f"Hit frequency: {report.hit_frequency:.2%}\n"
        f"Max return: {report.max_mult:g}x\n"
        f"Status: [{color}]{report.status}[/{color}]",
        title=f"Simulation: {args.game_type}", border_style=color,
    ))


def cmd_play(args):
    rng = ProvablyFairSource.new(client_seed=args.client_seed)
    engine = GameEngine(rng=rng)
    console.print(f"[dim]Server seed hash: {rng.server_seed_hash}[/dim]")

    bet = _sample_bet(args)
    result = engine.play(bet)
    # Demo blackjack: stand on whatever was dealt
    while result.success and result.state is not None and result.state.phase != Phase.RESOLVED:
        result = engine.act(result.state, "stand")

    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        return 1
    console.print_json(result.result_data.model_dump_json())
    console.print(f"[bold]Bet {result.bet_amount or bet.amount:g} -> won {result.win_amount:g}[/bold]")
    if args.reveal:
        console.print_json(data=rng.audit(reveal=True))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Casino game engine tools")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("config", help="Print static game configuration")
    sub.add_parser("rtp", help="Print exact RTP tables")

    for name in ("simulate", "play"):
        p = sub.add_parser(name)
        p.add_argument("game_type", choices=GAME_TYPES)
        p.add_argument("--amount", type=float, default=None)
        p.add_argument("--bet-type", default="red")
        p.add_argument("--bet-value", default=None)
        p.add_argument("--risk", default="medium", choices=["low", "medium", "high"])
        p.add_argument("--case", default="scav")
        if name == "simulate":
            p.add_argument("--rounds", type=int, default=100_000)
            p.add_argument("--seed", type=int, default=42)
            p.add_argument("--tolerance", type=float, default=None)
            p.add_argument("--json", action="store_true")
        else:
            p.add_argument("--client-seed", default=None)
            p.add_argument("--reveal", action="store_true", help="Print the seed audit")

    args = parser.parse_args()
    configure_logging(args.log_level)

    handlers = {"config": cmd_config, "rtp": cmd_rtp,
                "simulate": cmd_simulate, "play": cmd_play}
    try:
        return handlers[args.command](args) or 0
    except InvalidBet as e:
        console.print(f"[red]{e}: {e.detail}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
