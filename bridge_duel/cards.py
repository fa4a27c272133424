# bridge_duel/cards.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import random

SUITS: Tuple[str, ...] = ("C", "D", "H", "S")
RANKS: Tuple[str, ...] = (
    "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A",
)
RANK_VALUES: Dict[str, int] = {rank: i + 2 for i, rank in enumerate(RANKS)}

SUIT_SYMBOLS: Dict[str, str] = {"C": "♣", "D": "♦", "H": "♥", "S": "♠"}

# Display order only; legality never looks at it.
DISPLAY_SUIT_ORDER: Dict[str, int] = {"S": 0, "H": 1, "D": 2, "C": 3}

DECK_SIZE = 52
DISCARD_COUNT = 14
HAND_SIZE = 19
DEALT_CARDS = 2 * HAND_SIZE


@dataclass(frozen=True)
class Card:
    """
    A single playing card.

    `id` is the stable "<suit>-<rank>" composite used on the wire, `value`
    runs from 2 (deuce) to 14 (ace).
    """
    suit: str
    rank: str

    def __post_init__(self) -> None:
        if self.suit not in SUITS:
            raise ValueError(f"Unknown suit {self.suit!r}")
        if self.rank not in RANK_VALUES:
            raise ValueError(f"Unknown rank {self.rank!r}")

    @property
    def id(self) -> str:
        return f"{self.suit}-{self.rank}"

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    def __str__(self) -> str:
        return f"{self.rank}{SUIT_SYMBOLS[self.suit]}"


def card_from_id(card_id: str) -> Card:
    """Parse a "<suit>-<rank>" id back into a Card."""
    suit, sep, rank = card_id.partition("-")
    if not sep:
        raise ValueError(f"Malformed card id {card_id!r}")
    return Card(suit, rank)


def card_to_dict(card: Card) -> Dict[str, Any]:
    """Convert a Card to a JSON-serializable dict."""
    return {
        "id": card.id,
        "suit": card.suit,
        "rank": card.rank,
        "value": card.value,
    }


def dict_to_card(data: Dict[str, Any]) -> Card:
    """Convert a dict back into a Card. `id` and `value` are derived."""
    card = Card(str(data["suit"]), str(data["rank"]))
    if "id" in data and data["id"] != card.id:
        raise ValueError(f"Card id {data['id']!r} does not match {card.id!r}")
    return card


def generate_deck() -> List[Card]:
    """Build the 52 unique cards, suit by suit, ranks ascending."""
    return [Card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffle_deck(
    deck: Sequence[Card],
    rng: Optional[random.Random] = None,
) -> List[Card]:
    """
    Return a shuffled copy of `deck` (Fisher–Yates).

    `rng` supplies the randomness so callers can make dealing deterministic.
    """
    rng = rng or random.Random()
    cards = list(deck)
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randrange(i + 1)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


def sort_hand(hand: Sequence[Card]) -> List[Card]:
    """Sort for display: spades, hearts, diamonds, clubs; high rank first."""
    return sorted(hand, key=lambda c: (DISPLAY_SUIT_ORDER[c.suit], -c.value))


class Deck:
    """
    The 52-card pack used for one deal.

    Dealing discards the first DISCARD_COUNT cards of the shuffled pack and
    hands HAND_SIZE cards to each player from what is left.
    """

    def __init__(self) -> None:
        self.cards: List[Card] = generate_deck()

        if len(self.cards) != DECK_SIZE or len(set(self.cards)) != DECK_SIZE:
            raise RuntimeError("Deck must contain exactly 52 unique cards")

    def shuffle(self, rng: Optional[random.Random] = None) -> None:
        """Shuffle the deck in place. Uses provided RNG if given."""
        self.cards = shuffle_deck(self.cards, rng)

    def deal(self) -> Tuple[List[Card], List[Card]]:
        """
        Deal two hands.

        Returns (first_hand, second_hand), each sorted for display. The
        discarded cards are never seen again.
        """
        playing = self.cards[DISCARD_COUNT:]
        if len(playing) < DEALT_CARDS:
            raise ValueError("Not enough cards in deck to deal")
        first = sort_hand(playing[:HAND_SIZE])
        second = sort_hand(playing[HAND_SIZE:DEALT_CARDS])
        return first, second
