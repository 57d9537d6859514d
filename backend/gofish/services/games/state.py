from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .cards import Card, DECK_SIZE

AI_PLAYER_ID = 'AI_PLAYER'
AI_PLAYER_NAME = 'Computer'
MAX_SEATS = 2

WAITING = 'waiting'
IN_PROGRESS = 'in_progress'
FINISHED = 'finished'


@dataclass
class Player:
    id: str
    name: str = 'Anonymous'
    hand: List[Card] = field(default_factory=list)
    sets: List[List[Card]] = field(default_factory=list)
    is_ai: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.id[:5]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'hand': [c.to_dict() for c in self.hand],
            'sets': [[c.to_dict() for c in group] for group in self.sets],
            'is_ai': self.is_ai,
        }

    @classmethod
    def from_dict(cls, player_id, data) -> 'Player':
        return cls(
            id=player_id,
            name=data.get('name') or 'Anonymous',
            hand=[Card.from_dict(c) for c in data.get('hand') or []],
            sets=[[Card.from_dict(c) for c in group] for group in data.get('sets') or []],
            is_ai=bool(data.get('is_ai')),
        )


@dataclass
class Session:
    """One Go Fish game. ``players`` keeps seat order: first joined is seat 0."""

    id: str
    players: Dict[str, Player] = field(default_factory=dict)
    started: bool = False
    turn: Optional[str] = None
    deck_id: Optional[str] = None
    remaining: int = DECK_SIZE
    winner: Optional[str] = None
    vs_ai: bool = False

    @property
    def status(self) -> str:
        if self.winner:
            return FINISHED
        if self.started:
            return IN_PROGRESS
        return WAITING

    @property
    def seats(self) -> List[str]:
        return list(self.players.keys())

    def seat_of(self, player_id: str) -> int:
        return self.seats.index(player_id)

    def opponent_of(self, player_id: str) -> Optional[str]:
        for pid in self.players:
            if pid != player_id:
                return pid
        return None

    def has_humans(self) -> bool:
        return any(not p.is_ai for p in self.players.values())

    def total_sets(self) -> int:
        return sum(len(p.sets) for p in self.players.values())

    def cards_accounted(self) -> int:
        """Cards in hands, cards locked in sets and undrawn cards."""
        in_hands = sum(len(p.hand) for p in self.players.values())
        in_sets = sum(len(group) for p in self.players.values() for group in p.sets)
        return in_hands + in_sets + self.remaining

    def to_dict(self):
        return {
            'id': self.id,
            'players': {pid: p.to_dict() for pid, p in self.players.items()},
            'seats': self.seats,
            'started': self.started,
            'status': self.status,
            'turn': self.turn,
            'deck_id': self.deck_id,
            'remaining': self.remaining,
            'winner': self.winner,
            'vs_ai': self.vs_ai,
        }

    @classmethod
    def from_dict(cls, data) -> 'Session':
        players_data = data.get('players') or {}
        order = data.get('seats') or list(players_data.keys())
        players = {pid: Player.from_dict(pid, players_data[pid]) for pid in order if pid in players_data}
        return cls(
            id=data['id'],
            players=players,
            started=bool(data.get('started')),
            turn=data.get('turn'),
            deck_id=data.get('deck_id'),
            remaining=int(data.get('remaining', DECK_SIZE)),
            winner=data.get('winner'),
            vs_ai=bool(data.get('vs_ai')),
        )
