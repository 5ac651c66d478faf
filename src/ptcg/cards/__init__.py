"""
PTCG Rules Engine - Cards

Usage:
    from ptcg.cards import load_standard_catalog, build_deck

    catalog = load_standard_catalog()
    deck = build_deck(catalog)
"""

from ptcg.cards.catalog import CardCatalog
from ptcg.cards.decks import GARDEVOIR_DECK, build_deck
from ptcg.cards.library import load_standard_catalog

__all__ = [
    'CardCatalog',
    'GARDEVOIR_DECK',
    'build_deck',
    'load_standard_catalog',
]
