"""Deck providers.

The game never owns a deck itself: it asks a provider for a shuffled deck
id and then draws from it. ``HttpDeckProvider`` talks to deckofcardsapi.com,
``LocalDeckProvider`` keeps decks in memory for tests and offline play.
"""
import logging
import random
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from .cards import Card, full_deck
from .errors import DeckProviderFailure

logger = logging.getLogger(__name__)

DEFAULT_DECK_API_URL = 'https://deckofcardsapi.com/api/deck'


@dataclass
class DrawResult:
    cards: List[Card] = field(default_factory=list)
    remaining: int = 0


class DeckProvider:
    def new_deck(self) -> str:
        raise NotImplementedError

    def draw(self, deck_id: str, count: int) -> DrawResult:
        raise NotImplementedError

    def discard(self, deck_id: str) -> None:
        """Forget a deck once its session is gone."""


class HttpDeckProvider(DeckProvider):
    def __init__(self, base_url: str = DEFAULT_DECK_API_URL, timeout: float = 5.0, http=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = http or requests.Session()

    def _get(self, path: str, params=None):
        url = f"{self.base_url}/{path}"
        try:
            response = self.http.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"[deck-error] url={url} error={e}")
            raise DeckProviderFailure(f"Deck service unavailable: {e}") from e
        except ValueError as e:
            logger.error(f"[deck-error] url={url} bad json: {e}")
            raise DeckProviderFailure('Deck service returned invalid JSON') from e

    def new_deck(self) -> str:
        data = self._get('new/shuffle/', params={'deck_count': 1})
        deck_id = data.get('deck_id')
        if not deck_id:
            raise DeckProviderFailure('Deck service did not return a deck id')
        return deck_id

    def draw(self, deck_id: str, count: int) -> DrawResult:
        data = self._get(f"{deck_id}/draw/", params={'count': count})
        # An exhausted deck answers success=false with whatever cards were left
        try:
            cards = [Card.from_dict(c) for c in data.get('cards') or []]
            remaining = int(data.get('remaining', 0))
        except (KeyError, TypeError, ValueError) as e:
            raise DeckProviderFailure(f"Malformed draw response: {e}") from e
        return DrawResult(cards=cards, remaining=remaining)


class LocalDeckProvider(DeckProvider):
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._decks: Dict[str, List[Card]] = {}
        self._queued: List[List[Card]] = []
        self._lock = threading.Lock()

    def queue_deck(self, cards: List[Card]) -> None:
        """Use ``cards`` in this exact order (top first) for the next new deck."""
        with self._lock:
            self._queued.append(list(cards))

    def new_deck(self) -> str:
        with self._lock:
            if self._queued:
                cards = self._queued.pop(0)
            else:
                cards = full_deck()
                self.rng.shuffle(cards)
            deck_id = uuid.uuid4().hex[:12]
            self._decks[deck_id] = cards
        return deck_id

    def draw(self, deck_id: str, count: int) -> DrawResult:
        with self._lock:
            pile = self._decks.get(deck_id)
            if pile is None:
                raise DeckProviderFailure(f"Unknown deck {deck_id}")
            drawn, self._decks[deck_id] = pile[:count], pile[count:]
            return DrawResult(cards=drawn, remaining=len(self._decks[deck_id]))

    def discard(self, deck_id: str) -> None:
        with self._lock:
            self._decks.pop(deck_id, None)


def provider_from_config(config) -> DeckProvider:
    kind = str(config.get('DECK_PROVIDER', 'http')).lower()
    if kind == 'local':
        seed = config.get('DECK_SEED')
        return LocalDeckProvider(random.Random(seed) if seed is not None else None)
    return HttpDeckProvider(
        base_url=config.get('DECK_API_URL', DEFAULT_DECK_API_URL),
        timeout=float(config.get('DECK_API_TIMEOUT_SEC', 5)),
    )
