"""
PTCG Rules Engine - Command Line.

Plays automated matches between two heuristic agents using the built-in
card library.

Usage:
    python -m ptcg.main simulate --games 10 --seed 7
    python -m ptcg.main simulate --verbose
    python -m ptcg.main cards

Commands:
    simulate - Play AI vs AI matches and print the results
    cards    - List the built-in card library
"""

import argparse
import logging
import sys
import time
from collections import Counter
from typing import List, Optional, Sequence

from pydantic import BaseModel

from ptcg.agents import HeuristicAgent, PlayerAgent
from ptcg.cards import build_deck, load_standard_catalog
from ptcg.config import EngineConfig
from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)


# =============================================================================
# BANNER
# =============================================================================

BANNER = """
================================================================================

    PTCG RULES ENGINE - Automated Match Runner

================================================================================"""


# =============================================================================
# MATCH LOOP
# =============================================================================

class MatchResult(BaseModel):
    winner_index: int
    win_reason: Optional[str] = None
    turns: int
    seed: Optional[int] = None


def play_match(engine: GameEngine, agents: Sequence[PlayerAgent], max_turns: int = 200) -> MatchResult:
    """
    Drive a started game until it ends or the turn limit is reached.

    Args:
        engine: Engine on which start_game() has succeeded
        agents: One agent per seat
        max_turns: Round limit; the match is a draw past it

    Returns:
        MatchResult (winner_index -1 for a draw or an aborted setup)
    """
    for index, agent in enumerate(agents):
        agent.on_game_start(engine, index)

    delay = engine.config.ai_action_delay
    while not engine.state.is_game_over() and engine.state.turn_count <= max_turns:
        agent = agents[engine.state.current_player_index]
        result = agent.play_turn(engine)
        if result.is_pending:
            raise RuntimeError(f"{agent.name} is waiting on a decision nobody will answer")
        if delay:
            time.sleep(delay)

    for agent in agents:
        agent.on_game_end(engine)

    state = engine.state
    return MatchResult(
        winner_index=state.winner_index,
        win_reason=state.win_reason.value if state.win_reason else None,
        turns=state.turn_count,
        seed=engine.random_seed,
    )


def run_simulation(games: int, seed: Optional[int] = None, max_turns: int = 200,
                   config: Optional[EngineConfig] = None) -> List[MatchResult]:
    """Play ``games`` matches with the standard deck on both sides."""
    catalog = load_standard_catalog()
    results = []
    for game in range(games):
        game_seed = None if seed is None else seed + game
        engine = GameEngine(catalog=catalog, config=config, random_seed=game_seed,
                            player_names=("Bot A", "Bot B"))
        setup = engine.start_game(build_deck(catalog), build_deck(catalog))
        if not setup:
            logger.warning(f"[Match] game {game + 1}: {setup.reason}")
            results.append(MatchResult(winner_index=-1, win_reason=engine.state.win_reason.value,
                                       turns=0, seed=game_seed))
            continue

        agents = [HeuristicAgent(name="Bot A"), HeuristicAgent(name="Bot B")]
        results.append(play_match(engine, agents, max_turns=max_turns))
    return results


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_simulate(args):
    """Play AI vs AI matches."""
    print(BANNER)

    config = EngineConfig.from_json(args.config) if args.config else EngineConfig()
    if args.delay is not None:
        config = config.model_copy(update={"ai_action_delay": args.delay})

    results = run_simulation(args.games, seed=args.seed, max_turns=args.max_turns, config=config)

    print()
    print("=" * 80)
    print("RESULTS")
    print("=" * 80)
    for number, result in enumerate(results, start=1):
        winner = "draw" if result.winner_index < 0 else f"Bot {'AB'[result.winner_index]}"
        print(f"  Game {number:3d}: {winner:<6} ({result.win_reason or 'turn limit'}, "
              f"{result.turns} turns, seed={result.seed})")

    wins = Counter(r.winner_index for r in results)
    print("-" * 80)
    print(f"  Bot A: {wins[0]}   Bot B: {wins[1]}   No result: {wins[-1]}")
    print("=" * 80)


def cmd_cards(args):
    """List the built-in card library."""
    catalog = load_standard_catalog()
    for card in catalog:
        print(f"  {card.id:<20} {card.kind:<8} {card.name}")
    print(f"\n  {len(catalog)} cards")


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        description='PTCG Rules Engine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Show the engine log (every action, decision and knockout)'
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # -------------------------------------------------------------------------
    # Simulate subcommand
    # -------------------------------------------------------------------------
    simulate_parser = subparsers.add_parser('simulate', help='Play AI vs AI matches')
    simulate_parser.add_argument(
        '--games', type=int, default=1,
        help='Number of matches to play (default: 1)'
    )
    simulate_parser.add_argument(
        '--seed', type=int, default=None,
        help='Base random seed; game N uses seed + N (default: random)'
    )
    simulate_parser.add_argument(
        '--max-turns', type=int, default=200,
        help='Round limit before a match is declared a draw (default: 200)'
    )
    simulate_parser.add_argument(
        '--config', type=str, default=None,
        help='JSON file with EngineConfig overrides'
    )
    simulate_parser.add_argument(
        '--delay', type=float, default=None,
        help='Seconds to wait between AI turns'
    )
    simulate_parser.set_defaults(func=cmd_simulate)

    # -------------------------------------------------------------------------
    # Cards subcommand
    # -------------------------------------------------------------------------
    cards_parser = subparsers.add_parser('cards', help='List the built-in card library')
    cards_parser.set_defaults(func=cmd_cards)

    # -------------------------------------------------------------------------
    # Parse and execute
    # -------------------------------------------------------------------------
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='[%(levelname)s] %(message)s',
    )

    if args.command is None:
        parser.print_help()
        print()
        print("Run 'python -m ptcg.main <command> --help' for more info on a command.")
        sys.exit(0)

    args.func(args)


if __name__ == '__main__':
    main()
