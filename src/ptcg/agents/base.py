"""
PTCG Rules Engine - Base Agent Interface

Abstract base class for all player agents.
An agent plays a whole turn through the engine's public operations and
answers the decision requests addressed to its seat.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from ptcg.decisions import AutoResolver, DecisionResolver
from ptcg.models import ActionResult

if TYPE_CHECKING:
    from ptcg.engine import GameEngine


class PlayerAgent(ABC):
    """
    Abstract base class for player agents.

    Attributes:
        name: Display name for this agent
        player_index: Seat (0 or 1) - assigned by on_game_start
    """

    def __init__(self, name: str = "Agent"):
        """
        Initialize agent.

        Args:
            name: Display name for this agent
        """
        self.name = name
        self.player_index: Optional[int] = None

    @abstractmethod
    def play_turn(self, engine: "GameEngine") -> ActionResult:
        """
        Play the current turn for this agent's seat.

        Returns:
            ActionResult of the last operation; pending if the turn is
            waiting on another seat's decision
        """
        pass

    def decision_resolver(self) -> DecisionResolver:
        """Resolver that answers this agent's decision requests."""
        return AutoResolver()

    def on_game_start(self, engine: "GameEngine", player_index: int):
        """
        Called when the game starts: records the seat and registers the resolver.

        Args:
            engine: Game engine
            player_index: This agent's seat (0 or 1)
        """
        self.player_index = player_index
        engine.set_resolver(player_index, self.decision_resolver())

    def on_game_end(self, engine: "GameEngine"):
        """Called when the game ends (optional hook)."""
        pass

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}', player_index={self.player_index})"
