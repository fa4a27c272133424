# tests/test_cards.py
import random

import pytest

from bridge_duel.cards import (
    DEALT_CARDS,
    DISCARD_COUNT,
    HAND_SIZE,
    SUITS,
    Card,
    Deck,
    card_from_id,
    card_to_dict,
    dict_to_card,
    generate_deck,
    shuffle_deck,
    sort_hand,
)


def test_deck_composition():
    deck = Deck()
    assert len(deck.cards) == 52
    assert len({c.id for c in deck.cards}) == 52

    for suit in SUITS:
        values = sorted(c.value for c in deck.cards if c.suit == suit)
        assert values == list(range(2, 15))


def test_deal_discards_first_fourteen_and_splits_the_rest():
    deck = Deck()
    deck.shuffle(random.Random(123))
    host, peer = deck.deal()

    assert len(host) == HAND_SIZE
    assert len(peer) == HAND_SIZE
    assert not set(host) & set(peer)
    assert set(host) | set(peer) == set(deck.cards[DISCARD_COUNT:])
    assert len(set(host) | set(peer)) == DEALT_CARDS


def test_shuffle_determinism_with_seed():
    d1 = Deck()
    d2 = Deck()
    d1.shuffle(random.Random(42))
    d2.shuffle(random.Random(42))

    assert [c.id for c in d1.cards] == [c.id for c in d2.cards]


def test_shuffle_deck_returns_permutation_and_leaves_input_alone():
    deck = generate_deck()
    original = list(deck)
    shuffled = shuffle_deck(deck, random.Random(7))

    assert deck == original
    assert shuffled != original
    assert sorted(c.id for c in shuffled) == sorted(c.id for c in original)


def test_sort_hand_orders_spades_hearts_diamonds_clubs_high_first():
    hand = [card_from_id(i) for i in ("C-2", "S-A", "H-K", "S-3", "D-10")]
    assert [c.id for c in sort_hand(hand)] == ["S-A", "S-3", "H-K", "D-10", "C-2"]


def test_card_id_and_value():
    card = Card("H", "10")
    assert card.id == "H-10"
    assert card.value == 10
    assert Card("S", "A").value == 14
    assert Card("C", "J").value == 11
    assert card_from_id("H-10") == card


@pytest.mark.parametrize("suit,rank", [("X", "2"), ("S", "1"), ("NT", "A")])
def test_card_rejects_unknown_suit_or_rank(suit, rank):
    with pytest.raises(ValueError):
        Card(suit, rank)


def test_card_from_id_rejects_malformed_id():
    with pytest.raises(ValueError):
        card_from_id("HA")


def test_card_dict_carries_wire_fields():
    data = card_to_dict(Card("D", "Q"))
    assert data == {"id": "D-Q", "suit": "D", "rank": "Q", "value": 12}
    assert dict_to_card(data) == Card("D", "Q")

    with pytest.raises(ValueError):
        dict_to_card({"id": "D-K", "suit": "D", "rank": "Q"})
