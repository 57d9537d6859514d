from dataclasses import dataclass
from typing import Dict, List, Optional

RANKS = ['ACE', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'JACK', 'QUEEN', 'KING']
SUITS = ['SPADES', 'HEARTS', 'DIAMONDS', 'CLUBS']
DECK_SIZE = 52
SET_SIZE = 4
TOTAL_SETS = len(RANKS)

_RANK_ORDER: Dict[str, int] = {rank: idx + 1 for idx, rank in enumerate(RANKS)}


def normalize_rank(rank) -> str:
    return str(rank).strip().upper()


def rank_order(rank) -> int:
    # Unknown ranks sort last rather than failing the whole hand
    return _RANK_ORDER.get(normalize_rank(rank), len(RANKS) + 1)


@dataclass(frozen=True)
class Card:
    value: str
    suit: str
    code: str
    image: Optional[str] = None

    @property
    def rank(self) -> str:
        return normalize_rank(self.value)

    def to_dict(self):
        data = {'code': self.code, 'value': self.value, 'suit': self.suit}
        if self.image:
            data['image'] = self.image
        return data

    @classmethod
    def from_dict(cls, data) -> 'Card':
        value = str(data['value'])
        suit = str(data.get('suit') or '')
        code = data.get('code') or card_code(value, suit)
        return cls(value=value, suit=suit, code=code, image=data.get('image'))


def card_code(value: str, suit: str) -> str:
    """Build the deckofcardsapi style code, e.g. ``0H`` for the ten of hearts."""
    rank = normalize_rank(value)
    head = '0' if rank == '10' else rank[0]
    return f"{head}{suit[:1].upper()}"


def full_deck() -> List[Card]:
    return [Card(value=rank, suit=suit, code=card_code(rank, suit)) for suit in SUITS for rank in RANKS]


def sort_hand(hand: List[Card]) -> List[Card]:
    return sorted(hand, key=lambda c: rank_order(c.value))
