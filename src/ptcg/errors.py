"""
PTCG Rules Engine - Exceptions (errors.py)

Only faults that indicate a broken engine or a corrupted card catalog are
raised. Rule violations ("attach a second energy", "evolve a fresh Basic")
are reported through ActionResult and never raise.
"""


class PTCGError(Exception):
    """Base class for all engine errors."""
    pass


class CatalogIntegrityError(PTCGError):
    """
    Raised when a card id cannot be resolved against the catalog, or a
    catalog record is malformed.

    This is fatal: the engine never catches it.
    """
    pass


class DecisionError(PTCGError):
    """
    Raised when the decision API is misused, e.g. resolving when nothing is
    pending or answering with the wrong number of picks.
    """
    pass


class DeckOutError(PTCGError):
    """
    Raised by draw primitives when the deck cannot satisfy a draw request.
    The engine catches this and awards the game to the opponent.
    """

    def __init__(self, player_index: int, requested: int, available: int):
        self.player_index = player_index
        self.requested = requested
        self.available = available
        super().__init__(
            f"Player {player_index} cannot draw {requested} card(s) - "
            f"deck has {available}"
        )
