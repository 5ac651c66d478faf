"""
PTCG Rules Engine - Built-in Card Library

Loads the bundled standard_cards.json into a CardCatalog. The catalog is
built fresh on every call so each engine owns its own instance.
"""

import os

from ptcg.cards.catalog import CardCatalog

STANDARD_CARDS_PATH = os.path.join(os.path.dirname(__file__), "standard_cards.json")


def load_standard_catalog() -> CardCatalog:
    """
    Load the built-in card set.

    Raises:
        CatalogIntegrityError: If the bundled data is malformed
    """
    return CardCatalog.from_json(STANDARD_CARDS_PATH)
