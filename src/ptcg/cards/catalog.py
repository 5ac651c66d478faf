"""
PTCG Rules Engine - Card Catalog
Read-only lookup of immutable card definitions keyed by card id.

Usage:
    catalog = CardCatalog.from_json("standard_cards.json")
    ralts = catalog.lookup("Ralts")
    deck = catalog.build_deck([("Ralts", 4), ("BasicPsychic", 10)])
"""

import json
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from ptcg.errors import CatalogIntegrityError
from ptcg.models import Card, PokemonCard, Stage

_CARD_ADAPTER = TypeAdapter(Card)


class CardCatalog:
    """
    Immutable card database.

    Cards are validated once on load; any malformed record or duplicate id
    raises CatalogIntegrityError.
    """

    def __init__(self, cards: Iterable[Card]):
        self._cards: Dict[str, Card] = {}
        for card in cards:
            if card.id in self._cards:
                raise CatalogIntegrityError(f"Duplicate card id '{card.id}'")
            self._cards[card.id] = card

    # ========================================================================
    # Loading
    # ========================================================================

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "CardCatalog":
        """
        Build a catalog from plain dict records (as found in the JSON file).

        Raises:
            CatalogIntegrityError: If a record fails validation
        """
        cards = []
        for record in records:
            try:
                cards.append(_CARD_ADAPTER.validate_python(record))
            except ValidationError as e:
                raise CatalogIntegrityError(f"Invalid card record {record.get('id', '?')!r}: {e}") from e
        return cls(cards)

    @classmethod
    def from_json(cls, path: str) -> "CardCatalog":
        """Load a catalog file of the form {"cards": [record, ...]}."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_records(data.get("cards", []))

    # ========================================================================
    # Lookup
    # ========================================================================

    def lookup(self, card_id: str) -> Card:
        """
        Get a card definition by id.

        Raises:
            CatalogIntegrityError: If the id is unknown
        """
        card = self._cards.get(card_id)
        if card is None:
            raise CatalogIntegrityError(f"Card id '{card_id}' not found in catalog")
        return card

    def find_by_name(self, name: str, stage: Optional[Stage] = None) -> Optional[PokemonCard]:
        """First Pokémon card with the given name (and stage, if given)."""
        for card in self._cards.values():
            if isinstance(card, PokemonCard) and card.name == name:
                if stage is None or card.stage == stage:
                    return card
        return None

    def build_deck(self, deck_list: Sequence[Tuple[str, int]]) -> List[Card]:
        """
        Expand (card id, count) pairs into a list of card definitions.

        Raises:
            CatalogIntegrityError: If an id is unknown
        """
        deck: List[Card] = []
        for card_id, count in deck_list:
            deck.extend([self.lookup(card_id)] * count)
        return deck

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards.values())

    def __len__(self) -> int:
        return len(self._cards)

    def ids(self) -> List[str]:
        return list(self._cards)
