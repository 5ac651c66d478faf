"""
PTCG Rules Engine - Agent System

Usage:
    from ptcg.agents import HeuristicAgent

    agent = HeuristicAgent(name="Bot")
    agent.on_game_start(engine, 1)
    agent.play_turn(engine)
"""

from ptcg.agents.base import PlayerAgent
from ptcg.agents.heuristic import HeuristicAgent

__all__ = [
    'PlayerAgent',
    'HeuristicAgent',
]
