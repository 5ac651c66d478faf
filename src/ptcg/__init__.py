"""
PTCG Rules Engine

A rules engine for a two-player Pokémon-TCG-style card game: turn structure,
combat, energy and retreat, evolution, abilities and trainers, decision
points for human or automated players, and a heuristic AI.

Usage:
    from ptcg import GameEngine, load_standard_catalog, build_deck

    catalog = load_standard_catalog()
    engine = GameEngine(catalog=catalog, random_seed=42)
    engine.start_game(build_deck(catalog), build_deck(catalog))
"""

from ptcg.cards import CardCatalog, build_deck, load_standard_catalog
from ptcg.config import EngineConfig
from ptcg.decisions import AutoResolver, InteractiveResolver, ScriptedResolver
from ptcg.engine import GameEngine
from ptcg.errors import CatalogIntegrityError, DecisionError, DeckOutError, PTCGError
from ptcg.events import EventBus, EventType, GameEvent
from ptcg.models import ActionResult, DecisionRequest, GameState

__version__ = "0.1.0"

__all__ = [
    'ActionResult',
    'AutoResolver',
    'CardCatalog',
    'CatalogIntegrityError',
    'DecisionError',
    'DecisionRequest',
    'DeckOutError',
    'EngineConfig',
    'EventBus',
    'EventType',
    'GameEngine',
    'GameEvent',
    'GameState',
    'InteractiveResolver',
    'PTCGError',
    'ScriptedResolver',
    'build_deck',
    'load_standard_catalog',
]
