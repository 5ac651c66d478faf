"""
PTCG Rules Engine - Deck Lists

Deck lists are (card id, count) pairs resolved through a CardCatalog.
"""

from typing import List, Sequence, Tuple

from ptcg.cards.catalog import CardCatalog
from ptcg.models import Card

DECK_SIZE = 60

DeckList = List[Tuple[str, int]]

# Gardevoir ex / Munkidori list built from the bundled card set
GARDEVOIR_DECK: DeckList = [
    # Pokémon (15)
    ("Ralts", 4),
    ("Kirlia", 3),
    ("GardevoirEX", 2),
    ("Drifloon", 2),
    ("Mew", 1),
    ("MewEX", 1),
    ("Munkidori", 1),
    ("LilliesClefairyEX", 1),
    # Trainers (30)
    ("Research", 3),
    ("Iono", 3),
    ("Boss", 2),
    ("Pepper", 1),
    ("NestBall", 3),
    ("LevelBall", 1),
    ("UltraBall", 3),
    ("RareCandy", 3),
    ("EarthenVessel", 2),
    ("EscapeRope", 1),
    ("SuperRod", 1),
    ("CounterCatcher", 1),
    ("LostVacuum", 1),
    ("BraveryCharm", 2),
    ("Artazon", 2),
    ("BeachCourt", 1),
    # Energy (15)
    ("BasicPsychic", 12),
    ("BasicDarkness", 2),
    ("ReversalEnergy", 1),
]


def deck_size(deck_list: Sequence[Tuple[str, int]]) -> int:
    return sum(count for _, count in deck_list)


def build_deck(catalog: CardCatalog, deck_list: Sequence[Tuple[str, int]] = GARDEVOIR_DECK) -> List[Card]:
    """
    Resolve a deck list into card definitions.

    Args:
        catalog: Catalog to resolve ids against
        deck_list: (card id, count) pairs; defaults to the Gardevoir list

    Returns:
        Unshuffled list of cards

    Raises:
        CatalogIntegrityError: If an id is unknown
        ValueError: If the list is not exactly 60 cards
    """
    size = deck_size(deck_list)
    if size != DECK_SIZE:
        raise ValueError(f"Deck must contain {DECK_SIZE} cards, got {size}")
    return catalog.build_deck(deck_list)
